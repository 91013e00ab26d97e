"""Pytest fixtures and test utilities for freesurface."""

import numpy as np
import pytest

from freesurface.architectures import CPU
from freesurface.config import init_taichi
from freesurface.core.grid import RectilinearGrid


@pytest.fixture(scope="session", autouse=True)
def taichi_init():
    """Initialize Taichi once per test session with CPU backend."""
    init_taichi(backend="cpu", debug=True)
    yield


@pytest.fixture
def arch():
    """Device for kernel launches."""
    return CPU


@pytest.fixture
def channel_grid():
    """128×1×5 channel: 1000 km long, 400 m deep, walls in x, periodic in y."""
    return RectilinearGrid(
        size=(128, 1, 5),
        x=(0, 1_000_000),
        y=(0, 1),
        z=(-400, 0),
        topology=("Bounded", "Periodic", "Bounded"),
    )


@pytest.fixture
def box_grid():
    """Small unit-spaced grid with walls in x and z, periodic in y."""
    return RectilinearGrid(
        size=(4, 3, 2),
        x=(0, 4),
        y=(0, 3),
        z=(-2, 0),
        topology=("Bounded", "Periodic", "Bounded"),
    )


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)


def ghost(parent: np.ndarray, field, i=None, j=None, k=None) -> np.ndarray:
    """Index the parent array of a field with field (offset) indices.

    Unspecified axes select the interior.
    """
    index = []
    for a, idx in enumerate((i, j, k)):
        h, n = field.halos[a], field.sizes[a]
        index.append(slice(h, h + n) if idx is None else idx + h)
    return parent[tuple(index)]
