"""
Boundary condition variants and per-field boundary condition sets.

A boundary condition is one variant of a closed sum type:

    Periodic    wrap from the opposite side of the domain
    Value       prescribed boundary value (Dirichlet)
    Gradient    prescribed boundary-normal derivative (Neumann)
    Flux        prescribed flux through the boundary, added to tendencies
    NormalFlow  prescribed normal velocity on a boundary face
    ZeroFlux    no flux through the boundary

`None` is the "absent" sentinel for axes that carry no condition (Flat axes
and the reduced axis of vertically integrated fields).

Conditions may be a number, an array over the interior tangential points,
or a callable evaluated with NumPy index arrays:

    condition(a, b, grid, *args)

where (a, b) are the tangential indices: (j, k) on west/east, (i, k) on
south/north and (i, j) on bottom/top.
"""

from dataclasses import dataclass, fields
from enum import Enum, auto
from typing import Any

import numpy as np

from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import (
    AXES,
    Face,
    Location,
    RectilinearGrid,
    Topology,
    axis_index,
)

SIDES = ("west", "east", "south", "north", "bottom", "top")
AXIS_SIDES = (("west", "east"), ("south", "north"), ("bottom", "top"))

# Tangential axes of each boundary-normal axis
TANGENTIAL_AXES = ((1, 2), (0, 2), (0, 1))


class BoundaryConditionKind(Enum):
    """Available boundary condition variants."""

    PERIODIC = auto()
    VALUE = auto()
    GRADIENT = auto()
    FLUX = auto()
    NORMAL_FLOW = auto()
    ZERO_FLUX = auto()


_NO_PAYLOAD = (BoundaryConditionKind.PERIODIC, BoundaryConditionKind.ZERO_FLUX)


@dataclass(frozen=True, eq=False)
class BoundaryCondition:
    """Boundary condition on one face of a field.

    Attributes:
        kind: Variant of the condition
        condition: Number, array or callable payload (None for Periodic
            and ZeroFlux)
    """

    kind: BoundaryConditionKind
    condition: Any = None

    def __post_init__(self):
        """Validate payload against kind."""
        if self.kind in _NO_PAYLOAD:
            if self.condition is not None:
                raise ConfigurationError(
                    f"{self.kind.name} boundary condition takes no condition"
                )
        elif self.condition is None:
            raise ConfigurationError(
                f"{self.kind.name} boundary condition requires a condition"
            )

    @property
    def is_periodic(self) -> bool:
        return self.kind == BoundaryConditionKind.PERIODIC

    @property
    def is_callable(self) -> bool:
        """Whether the condition must be re-evaluated on every use."""
        return callable(self.condition)

    def __repr__(self) -> str:
        if self.condition is None:
            return f"{self.kind.name}"
        if callable(self.condition):
            name = getattr(self.condition, "__name__", "function")
            return f"{self.kind.name}({name})"
        if np.ndim(self.condition) == 0:
            return f"{self.kind.name}({self.condition})"
        return f"{self.kind.name}(array{np.shape(self.condition)})"


def PeriodicBoundaryCondition() -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.PERIODIC)


def ValueBoundaryCondition(value: Any) -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.VALUE, value)


def GradientBoundaryCondition(gradient: Any) -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.GRADIENT, gradient)


def FluxBoundaryCondition(flux: Any) -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.FLUX, flux)


def NormalFlowBoundaryCondition(normal_flow: Any = 0.0) -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.NORMAL_FLOW, normal_flow)


def ZeroFluxBoundaryCondition() -> BoundaryCondition:
    return BoundaryCondition(BoundaryConditionKind.ZERO_FLUX)


@dataclass(frozen=True)
class FieldBoundaryConditions:
    """Boundary conditions on the six faces of a field.

    Attributes:
        west, east: x-normal faces (left, right)
        south, north: y-normal faces
        bottom, top: z-normal faces

    Use `FieldBoundaryConditions.default(grid, location, **overrides)` to get
    the conditions implied by the grid topology with selected faces replaced.
    """

    west: BoundaryCondition | None = None
    east: BoundaryCondition | None = None
    south: BoundaryCondition | None = None
    north: BoundaryCondition | None = None
    bottom: BoundaryCondition | None = None
    top: BoundaryCondition | None = None

    def pair(self, axis: int | str) -> tuple[BoundaryCondition | None, BoundaryCondition | None]:
        """(left, right) conditions along an axis."""
        left, right = AXIS_SIDES[axis_index(axis)]
        return getattr(self, left), getattr(self, right)

    def sides(self) -> dict[str, BoundaryCondition | None]:
        """Mapping of side name to condition."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def default(
        cls,
        grid: RectilinearGrid,
        location: tuple[Location | None, ...],
        **overrides: BoundaryCondition | None,
    ) -> "FieldBoundaryConditions":
        """Boundary conditions implied by grid topology and field location.

        Periodic axes get Periodic conditions; Bounded axes get NormalFlow(0)
        for Face locations and ZeroFlux for Center locations; Flat and reduced
        axes get none.

        Args:
            grid: The grid
            location: (LX, LY, LZ); LZ is None for reduced fields
            **overrides: Side name -> condition replacing the default

        Raises:
            ConfigurationError: If an override names an unknown side
        """
        unknown = set(overrides) - set(SIDES)
        if unknown:
            raise ConfigurationError(
                f"Unknown boundary side(s): {sorted(unknown)}. Available: {list(SIDES)}"
            )

        conditions = {}
        for a, (left, right) in enumerate(AXIS_SIDES):
            topology = grid.topology[a]
            loc = location[a]
            if loc is None or topology == Topology.FLAT:
                bc = None
            elif topology == Topology.PERIODIC:
                bc = PeriodicBoundaryCondition()
            elif loc == Face:
                bc = NormalFlowBoundaryCondition(0.0)
            else:
                bc = ZeroFluxBoundaryCondition()
            conditions[left] = bc
            conditions[right] = bc

        conditions.update(overrides)
        return cls(**conditions)

    def validate(
        self, grid: RectilinearGrid, location: tuple[Location | None, ...]
    ) -> None:
        """Check the conditions are consistent with the grid topology.

        Raises:
            ConfigurationError: If a Periodic condition is unpaired or sits on
                a non-periodic axis, a periodic axis has a non-periodic
                condition, or a Flat/reduced axis carries a condition
        """
        for a, name in enumerate(AXES):
            left, right = self.pair(a)
            topology = grid.topology[a]

            if location[a] is None or topology == Topology.FLAT:
                if left is not None or right is not None:
                    raise ConfigurationError(
                        f"Axis {name} is {'reduced' if location[a] is None else 'Flat'} "
                        f"and takes no boundary conditions"
                    )
                continue

            periodic = [bc is not None and bc.is_periodic for bc in (left, right)]
            if topology == Topology.PERIODIC:
                if not all(periodic):
                    raise ConfigurationError(
                        f"Periodic axis {name} requires Periodic boundary conditions "
                        f"on both sides, got {left!r} and {right!r}"
                    )
            elif any(periodic):
                raise ConfigurationError(
                    f"Periodic boundary condition on {topology.value} axis {name}"
                )


def tangential_extents(
    grid: RectilinearGrid, axis: int, location: tuple[Location | None, ...]
) -> tuple[tuple[int, int], tuple[int, int]]:
    """(interior size, halo) of the two tangential axes of a boundary."""
    ta, tb = TANGENTIAL_AXES[axis]
    return (
        (grid.interior_size(ta, location[ta]), grid.halo_size(ta, location[ta])),
        (grid.interior_size(tb, location[tb]), grid.halo_size(tb, location[tb])),
    )


def evaluate_condition(
    bc: BoundaryCondition,
    grid: RectilinearGrid,
    axis: int,
    location: tuple[Location | None, ...],
    *args: Any,
) -> np.ndarray:
    """Evaluate a boundary condition over the padded tangential extent.

    Returns:
        Array of shape (na + 2ha, nb + 2hb); element [a + ha, b + hb] holds
        the condition at tangential index (a, b)

    Raises:
        ConfigurationError: If an array condition has the wrong shape
    """
    (na, ha), (nb, hb) = tangential_extents(grid, axis, location)
    shape = (na + 2 * ha, nb + 2 * hb)
    condition = bc.condition

    if callable(condition):
        a = np.arange(-ha, na + ha).reshape(-1, 1)
        b = np.arange(-hb, nb + hb).reshape(1, -1)
        values = np.asarray(condition(a, b, grid, *args), dtype=np.float64)
        return np.broadcast_to(values, shape).copy()

    if np.ndim(condition) == 0:
        return np.full(shape, float(condition))

    values = np.asarray(condition, dtype=np.float64)
    if values.shape != (na, nb):
        raise ConfigurationError(
            f"Boundary condition array must have shape {(na, nb)}, got {values.shape}"
        )
    ta, tb = TANGENTIAL_AXES[axis]
    for dim, (t, h) in enumerate(((ta, ha), (tb, hb))):
        pad = [(0, 0), (0, 0)]
        pad[dim] = (h, h)
        mode = "wrap" if grid.topology[t] == Topology.PERIODIC else "edge"
        values = np.pad(values, pad, mode=mode)
    return values
