"""
Parameter management for freesurface.

This module provides:
- Validated, immutable parameter containers (schema.py)
- YAML loading utilities (loader.py)
"""

from freesurface.params.schema import (
    FreeSurfaceParams,
    GridParams,
    SimulationConfig,
    TimestepParams,
    ValidationError,
)
from freesurface.params.loader import (
    load_config,
    load_config_with_overrides,
    merge_configs,
    save_config,
)

__all__ = [
    # Schema classes
    "GridParams",
    "FreeSurfaceParams",
    "TimestepParams",
    "SimulationConfig",
    "ValidationError",
    # Loader functions
    "load_config",
    "load_config_with_overrides",
    "merge_configs",
    "save_config",
]
