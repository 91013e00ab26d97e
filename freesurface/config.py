"""
Taichi runtime setup for free-surface runs.

Environment variables:
    FREESURFACE_BACKEND: 'cuda', 'vulkan', 'cpu', or 'auto' (default)
    FREESURFACE_DEBUG: '1' for bounds-checked kernels

`init_taichi` starts the runtime and returns the Architecture that kernels
launch on. Starting a new runtime invalidates every Taichi field, so the
per-grid metric cache is emptied as part of initialization.
"""

import logging
import os
import shutil
import subprocess

import taichi as ti

from freesurface.architectures import Architecture, architecture_for
from freesurface.core.dtypes import DTYPE
from freesurface.core.metrics import clear_grid_metrics

logger = logging.getLogger(__name__)

# Backend name -> Taichi arch
TAICHI_ARCHS = {"cuda": ti.cuda, "vulkan": ti.vulkan, "cpu": ti.cpu}


def _cuda_available() -> bool:
    if shutil.which("nvidia-smi") is None:
        return False
    try:
        result = subprocess.run(["nvidia-smi", "-L"], capture_output=True, text=True, timeout=5)
    except subprocess.TimeoutExpired:
        return False
    return result.returncode == 0 and "GPU" in result.stdout


def get_backend() -> str:
    """Backend name from FREESURFACE_BACKEND; 'auto' picks cuda when a GPU is visible."""
    env = os.environ.get("FREESURFACE_BACKEND", "auto").lower()
    if env in TAICHI_ARCHS:
        return env
    if env != "auto":
        raise ValueError(f"Invalid FREESURFACE_BACKEND: {env}")
    return "cuda" if _cuda_available() else "cpu"


def debug_enabled() -> bool:
    return os.environ.get("FREESURFACE_DEBUG", "0") == "1"


def init_taichi(
    backend: str | None = None,
    debug: bool | None = None,
    kernel_profiler: bool = False,
) -> Architecture:
    """Start Taichi in float64 and return the matching Architecture.

    Args:
        backend: 'cpu', 'cuda' or 'vulkan'; None reads FREESURFACE_BACKEND
        debug: Bounds-checked kernels; None reads FREESURFACE_DEBUG
        kernel_profiler: Enable Taichi's kernel profiler

    Raises:
        ValueError: If the backend is unknown
    """
    if backend is None:
        backend = get_backend()
    if backend not in TAICHI_ARCHS:
        raise ValueError(f"Unknown backend: {backend}. Available: {list(TAICHI_ARCHS)}")
    if debug is None:
        debug = debug_enabled()

    ti.init(
        arch=TAICHI_ARCHS[backend],
        default_fp=DTYPE,
        debug=debug,
        offline_cache=True,
        random_seed=42,
        kernel_profiler=kernel_profiler,
    )
    clear_grid_metrics()
    logger.info("Taichi initialized on %s (debug=%s)", backend, debug)
    return architecture_for(backend)
