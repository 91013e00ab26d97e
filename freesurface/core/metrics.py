"""Grid metrics uploaded to Taichi fields.

Geometry accessors used inside kernels are pure functions of the grid and an
index. The coordinate arrays of a RectilinearGrid are uploaded once into 1D
Taichi fields with the same halo offsets as the fields they describe.
"""

from functools import lru_cache

import taichi as ti

from freesurface.core.dtypes import DTYPE
from freesurface.core.grid import Location, RectilinearGrid, axis_index


def _axis_field(values, halo: int):
    f = ti.field(DTYPE, shape=(values.shape[0],), offset=(-halo,))
    f.from_numpy(values)
    return f


class GridMetrics:
    """Taichi-side spacings and coordinates of a RectilinearGrid.

    Attributes:
        grid: The grid these metrics describe
        widths: Per-axis cell widths (Center spacing)
        spacings: Per-axis center-to-center distances (Face spacing)
        centers: Per-axis center coordinates
        faces: Per-axis face coordinates

    Each entry is a 1D ti.field indexed -H .. N+H.
    """

    def __init__(self, grid: RectilinearGrid):
        self.grid = grid
        self.widths = []
        self.spacings = []
        self.centers = []
        self.faces = []
        for coords in grid.coordinates:
            self.widths.append(_axis_field(coords.widths, coords.halo))
            self.spacings.append(_axis_field(coords.spacings, coords.halo))
            self.centers.append(_axis_field(coords.centers, coords.halo))
            self.faces.append(_axis_field(coords.faces, coords.halo))

    def spacing(self, axis: int | str, location: Location):
        """Spacing field for points at `location` along `axis`."""
        a = axis_index(axis)
        return self.widths[a] if location == Location.CENTER else self.spacings[a]

    def nodes(self, axis: int | str, location: Location):
        """Coordinate field for points at `location` along `axis`."""
        a = axis_index(axis)
        return self.centers[a] if location == Location.CENTER else self.faces[a]


@lru_cache(maxsize=None)
def grid_metrics(grid: RectilinearGrid) -> GridMetrics:
    """Get the GridMetrics of a grid, built once per grid.

    The cache holds the Taichi fields for the life of the process. Fields
    belong to the Taichi runtime that allocated them, so `init_taichi`
    calls `clear_grid_metrics` after every (re)initialization.
    """
    return GridMetrics(grid)


def clear_grid_metrics() -> None:
    """Drop all cached GridMetrics; the next lookup allocates new fields."""
    grid_metrics.cache_clear()


# =============================================================================
# Taichi helper functions for use in kernels
# =============================================================================


@ti.func
def boundary_index(axis: ti.template(), n, a, b):
    """Index vector of point `n` along `axis` with tangential indices (a, b).

    Tangential indices are ordered (y, z) for x, (x, z) for y, (x, y) for z.
    """
    I = ti.Vector([n, a, b])
    if ti.static(axis == 1):
        I = ti.Vector([a, n, b])
    elif ti.static(axis == 2):
        I = ti.Vector([a, b, n])
    return I


@ti.func
def horizontal_area(dx: ti.template(), dy: ti.template(), i, j):
    """Horizontal (z-normal) area of cell (i, j) from x and y spacings."""
    return dx[i] * dy[j]


@ti.func
def volume(dx: ti.template(), dy: ti.template(), dz: ti.template(), i, j, k):
    """Volume of cell (i, j, k) from spacings at the field's location."""
    return dx[i] * dy[j] * dz[k]

