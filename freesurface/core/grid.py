"""Rectilinear grid geometry for freesurface.

This module centralizes all spatial indexing logic:
- Topology: per-axis boundary topology (Periodic, Bounded, Flat)
- Location: sub-cell alignment of a field along one axis (Center, Face)
- RectilinearGrid: Immutable dataclass holding sizes, halos and coordinates
- AxisCoordinates: Coordinate and spacing arrays of one axis, including halos

Index layout along one axis with N cells and halo H:

    ghost      interior                 ghost
    -H .. -1   0 .. N-1  (centers)      N .. N+H-1
               0 .. N    (faces)        N+1 .. N+H

A Face-located field on a Bounded axis owns N+1 points; the first and last
lie on the physical boundary. On a Periodic axis face N is face 0, so Face and
Center fields both own N points.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from functools import cached_property
from typing import Any

import numpy as np

from freesurface.core.errors import ConfigurationError

AXES = ("x", "y", "z")


class Topology(Enum):
    """Boundary topology of one grid axis."""

    PERIODIC = "Periodic"
    BOUNDED = "Bounded"
    FLAT = "Flat"

    @classmethod
    def from_name(cls, value: "Topology | str") -> "Topology":
        """Parse a topology from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).lower() == member.value.lower():
                return member
        raise ConfigurationError(
            f"Unknown topology: {value!r}. "
            f"Available: {[member.value for member in cls]}"
        )


class Location(IntEnum):
    """Location of field points along one axis.

    The integer values are used as compile-time kernel arguments.
    """

    CENTER = 0
    FACE = 1


Center = Location.CENTER
Face = Location.FACE


def axis_index(axis: int | str) -> int:
    """Convert 'x'/'y'/'z' or 0/1/2 to an axis index."""
    if isinstance(axis, str):
        if axis not in AXES:
            raise ValueError(f"axis must be one of {AXES}, got {axis!r}")
        return AXES.index(axis)
    if axis not in (0, 1, 2):
        raise ValueError(f"axis must be 0, 1 or 2, got {axis}")
    return axis


@dataclass(frozen=True)
class AxisCoordinates:
    """Coordinates of one axis over the padded index range -H .. N+H.

    Attributes:
        size: Number of cells N
        halo: Halo width H
        topology: Axis topology
        widths: Cell widths (spacing of Center-located points)
        spacings: Center-to-center distances at faces (spacing of Face points)
        centers: Cell center coordinates
        faces: Face coordinates

    Array element ``p + H`` holds the value at index ``p``. Halo values repeat
    the spacing periodically on Periodic axes and repeat the boundary spacing
    on Bounded axes.
    """

    size: int
    halo: int
    topology: Topology
    widths: np.ndarray
    spacings: np.ndarray
    centers: np.ndarray
    faces: np.ndarray

    def spacing(self, location: Location) -> np.ndarray:
        """Spacing array for points at the given location."""
        return self.widths if location == Center else self.spacings

    def nodes(self, location: Location) -> np.ndarray:
        """Coordinate array for points at the given location."""
        return self.centers if location == Center else self.faces

    @property
    def interior_widths(self) -> np.ndarray:
        """Widths of the N interior cells."""
        return self.widths[self.halo:self.halo + self.size]

    @property
    def extent(self) -> float:
        """Physical length of the axis."""
        return float(self.faces[self.halo + self.size] - self.faces[self.halo])

    def is_uniform(self, rtol: float = 1e-12) -> bool:
        """Whether all interior cells have the same width."""
        w = self.interior_widths
        return bool(np.allclose(w, w[0], rtol=rtol, atol=0.0))


def _axis_coordinates(
    spec: tuple[float, ...], n: int, h: int, topology: Topology, name: str
) -> AxisCoordinates:
    if len(spec) == 2:
        faces = np.linspace(spec[0], spec[1], n + 1)
    elif len(spec) == n + 1:
        faces = np.asarray(spec, dtype=np.float64)
    else:
        raise ConfigurationError(
            f"{name} must be (start, stop) or {n + 1} face coordinates, "
            f"got {len(spec)} values"
        )

    widths = np.diff(faces)
    if np.any(widths <= 0):
        raise ConfigurationError(f"{name} face coordinates must be increasing")

    # Cells -H-1 .. N+H; one extra cell on each side for face spacings
    cells = np.arange(-h - 1, n + h + 1)
    if topology == Topology.PERIODIC:
        ext = widths[cells % n]
    else:
        ext = widths[np.clip(cells, 0, n - 1)]

    ext_faces = faces[0] - ext[:h + 1].sum() + np.concatenate(([0.0], np.cumsum(ext)))

    return AxisCoordinates(
        size=n,
        halo=h,
        topology=topology,
        widths=ext[1:].copy(),
        spacings=0.5 * (ext[1:] + ext[:-1]),
        centers=0.5 * (ext_faces[1:-1] + ext_faces[2:]),
        faces=ext_faces[1:-1].copy(),
    )


@dataclass(frozen=True)
class RectilinearGrid:
    """Immutable rectilinear grid with per-axis topology and halos.

    Attributes:
        size: Cell counts (Nx, Ny, Nz)
        x: (start, stop) for uniform spacing, or Nx+1 face coordinates [m]
        y: (start, stop) for uniform spacing, or Ny+1 face coordinates [m]
        z: (start, stop) for uniform spacing, or Nz+1 face coordinates [m]
        topology: Topology per axis (enum members or names)
        halo: Halo widths (Hx, Hy, Hz); forced to 0 on Flat axes

    Example:
        grid = RectilinearGrid(
            size=(128, 1, 5),
            x=(0, 1_000_000), y=(0, 1), z=(-400, 0),
            topology=("Bounded", "Periodic", "Bounded"),
        )
    """

    size: tuple[int, int, int]
    x: tuple[float, ...] = (0.0, 1.0)
    y: tuple[float, ...] = (0.0, 1.0)
    z: tuple[float, ...] = (-1.0, 0.0)
    topology: tuple[Any, Any, Any] = (
        Topology.PERIODIC,
        Topology.PERIODIC,
        Topology.BOUNDED,
    )
    halo: tuple[int, int, int] = (1, 1, 1)

    def __post_init__(self):
        """Normalize and validate grid specification."""
        if len(self.size) != 3 or len(self.topology) != 3 or len(self.halo) != 3:
            raise ConfigurationError("size, topology and halo must have 3 entries")

        topology = tuple(Topology.from_name(t) for t in self.topology)
        size = tuple(int(n) for n in self.size)
        halo = tuple(
            0 if t == Topology.FLAT else int(h) for t, h in zip(topology, self.halo)
        )

        for name, n, h, t in zip(AXES, size, halo, topology):
            if n < 1:
                raise ConfigurationError(f"N{name} must be >= 1, got {n}")
            if t == Topology.FLAT:
                if n != 1:
                    raise ConfigurationError(f"Flat axis {name} must have size 1, got {n}")
                continue
            if not 1 <= h <= n:
                raise ConfigurationError(
                    f"H{name} must be in [1, N{name}={n}], got {h}"
                )

        object.__setattr__(self, "size", size)
        object.__setattr__(self, "halo", halo)
        object.__setattr__(self, "topology", topology)
        for name in AXES:
            spec = tuple(float(v) for v in getattr(self, name))
            object.__setattr__(self, name, spec)

        # Build coordinates eagerly so invalid specs fail at construction
        _ = self.coordinates

    @cached_property
    def coordinates(self) -> tuple[AxisCoordinates, AxisCoordinates, AxisCoordinates]:
        """Coordinate arrays for the x, y and z axes."""
        return tuple(
            _axis_coordinates(getattr(self, name), n, h, t, name)
            for name, n, h, t in zip(AXES, self.size, self.halo, self.topology)
        )

    def axis(self, axis: int | str) -> AxisCoordinates:
        """Coordinates of one axis."""
        return self.coordinates[axis_index(axis)]

    @property
    def Nx(self) -> int:
        return self.size[0]

    @property
    def Ny(self) -> int:
        return self.size[1]

    @property
    def Nz(self) -> int:
        return self.size[2]

    @property
    def total_depth(self) -> float:
        """Total fluid depth (z extent) [m]."""
        return self.coordinates[2].extent

    @property
    def is_horizontally_uniform(self) -> bool:
        """Whether x and y spacings are constant."""
        return self.coordinates[0].is_uniform() and self.coordinates[1].is_uniform()

    def interior_size(self, axis: int | str, location: Location | None) -> int:
        """Number of interior points of a field along an axis.

        Args:
            axis: Axis index or name
            location: Center, Face, or None for a reduced axis

        Returns:
            N+1 for Face on a Bounded axis, 1 for a reduced axis, else N
        """
        a = axis_index(axis)
        if location is None:
            return 1
        if location == Face and self.topology[a] == Topology.BOUNDED:
            return self.size[a] + 1
        return self.size[a]

    def halo_size(self, axis: int | str, location: Location | None) -> int:
        """Halo width of a field along an axis (0 for reduced axes)."""
        a = axis_index(axis)
        return 0 if location is None else self.halo[a]
