"""Core infrastructure: types, errors, grid geometry and metrics."""

from freesurface.core.dtypes import DTYPE
from freesurface.core.errors import ConfigurationError, NonConvergenceWarning
from freesurface.core.grid import (
    AXES,
    AxisCoordinates,
    Center,
    Face,
    Location,
    RectilinearGrid,
    Topology,
    axis_index,
)
from freesurface.core.metrics import (
    GridMetrics,
    boundary_index,
    clear_grid_metrics,
    grid_metrics,
    horizontal_area,
    volume,
)

__all__ = [
    "AXES",
    "DTYPE",
    "AxisCoordinates",
    "Center",
    "ConfigurationError",
    "Face",
    "GridMetrics",
    "Location",
    "NonConvergenceWarning",
    "RectilinearGrid",
    "Topology",
    "axis_index",
    "boundary_index",
    "clear_grid_metrics",
    "grid_metrics",
    "horizontal_area",
    "volume",
]
