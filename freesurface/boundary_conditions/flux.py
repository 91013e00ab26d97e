"""
Flux boundary conditions: add boundary flux divergence to tendencies.

A Flux condition on a side contributes to the tendency of the first (or last)
interior point along the boundary-normal axis:

    west/south:  G[0]   += f / Δ[0]
    east/north:  G[n-1] -= f / Δ[n-1]
    bottom:      G[.., 0]    += f Az / V
    top:         G[.., Nz-1] -= f Az / V

where Δ is the spacing of the tendency's location along the axis, Az the
horizontal area and V the cell volume. Every other kind is a no-op.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import taichi as ti

from freesurface.architectures import Architecture
from freesurface.boundary_conditions.conditions import (
    AXIS_SIDES,
    BoundaryConditionKind,
    FieldBoundaryConditions,
    tangential_extents,
)
from freesurface.boundary_conditions.halo import condition_buffer, refresh_condition
from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import RectilinearGrid
from freesurface.core.metrics import boundary_index, grid_metrics, horizontal_area, volume


@ti.kernel
def apply_lateral_flux(
    G: ti.template(), west: ti.template(), east: ti.template(), d: ti.template(),
    axis: ti.template(), has_west: ti.template(), has_east: ti.template(),
    n: int, na: int, nb: int,
):
    """Flux divergence through the two faces of a horizontal axis."""
    for a, b in ti.ndrange(na, nb):
        if ti.static(has_west):
            G[boundary_index(axis, 0, a, b)] += west[a, b] / d[0]
        if ti.static(has_east):
            G[boundary_index(axis, n - 1, a, b)] -= east[a, b] / d[n - 1]


@ti.kernel
def apply_vertical_flux(
    G: ti.template(), bottom: ti.template(), top: ti.template(),
    dx: ti.template(), dy: ti.template(), dz: ti.template(),
    has_bottom: ti.template(), has_top: ti.template(),
    nz: int, nx: int, ny: int,
):
    """Flux divergence through the bottom and top faces."""
    for i, j in ti.ndrange(nx, ny):
        if ti.static(has_bottom):
            G[i, j, 0] += bottom[i, j] * horizontal_area(dx, dy, i, j) / volume(dx, dy, dz, i, j, 0)
        if ti.static(has_top):
            G[i, j, nz - 1] -= top[i, j] * horizontal_area(dx, dy, i, j) / volume(dx, dy, dz, i, j, nz - 1)


@dataclass
class AxisFlux:
    """Flux routine for the two sides of one axis."""

    axis: int
    conditions: tuple
    buffers: tuple
    kernel: Any
    args: tuple


class FluxBoundaryConditionApplicator:
    """Adds flux boundary contributions to a tendency field.

    Built once per (location, boundary conditions). Only Flux sides are
    resolved; an applicator without Flux sides launches nothing.

    Example:
        bcs = FieldBoundaryConditions.default(grid, loc, west=FluxBoundaryCondition(1.0))
        applicator = FluxBoundaryConditionApplicator(grid, loc, bcs)
        applicator.apply(Gc, CPU)
    """

    def __init__(
        self,
        grid: RectilinearGrid,
        location: tuple,
        boundary_conditions: FieldBoundaryConditions,
    ):
        self.grid = grid
        self.location = location
        self.boundary_conditions = boundary_conditions
        self.sizes = tuple(grid.interior_size(a, loc) for a, loc in enumerate(location))
        self.axes = [a for a in (0, 1, 2) if self._flux_sides(a) != (None, None)]

        self._routines: list[AxisFlux] = []
        for axis in self.axes:
            self._routines.append(self._resolve(axis))

    def _flux_sides(self, axis: int):
        return tuple(
            bc if bc is not None and bc.kind == BoundaryConditionKind.FLUX else None
            for bc in self.boundary_conditions.pair(axis)
        )

    def _resolve(self, axis: int) -> AxisFlux:
        grid, location = self.grid, self.location
        conditions = self._flux_sides(axis)
        buffers = tuple(
            None if bc is None else condition_buffer(bc, grid, axis, location)
            for bc in conditions
        )
        # A missing side still needs some field for its template slot
        placeholder = next(b for b in buffers if b is not None)
        left, right = (placeholder if b is None else b for b in buffers)
        has_left, has_right = (bc is not None for bc in conditions)

        metrics = grid_metrics(grid)
        n = self.sizes[axis]
        (na, _), (nb, _) = tangential_extents(grid, axis, location)

        if axis == 2:
            spacings = [metrics.spacing(a, location[a]) for a in range(3)]
            kernel = apply_vertical_flux
            args = (left, right, *spacings, has_left, has_right, n, na, nb)
        else:
            kernel = apply_lateral_flux
            d = metrics.spacing(axis, location[axis])
            args = (left, right, d, axis, has_left, has_right, n, na, nb)

        return AxisFlux(axis=axis, conditions=conditions, buffers=buffers, kernel=kernel, args=args)

    @property
    def flux_sides(self) -> tuple[str, ...]:
        """Names of the sides carrying a Flux condition."""
        names = []
        for axis in self.axes:
            for name, bc in zip(AXIS_SIDES[axis], self._flux_sides(axis)):
                if bc is not None:
                    names.append(name)
        return tuple(names)

    def apply(self, tendency, arch: Architecture, *args: Any) -> None:
        """Add boundary flux divergence to a tendency field.

        Args:
            tendency: Field at this applicator's location
            arch: Device to launch on
            *args: Extra arguments passed to callable flux conditions

        Raises:
            ConfigurationError: If the tendency does not match the location
        """
        if not self._routines:
            return
        if tuple(tendency.location) != tuple(self.location):
            raise ConfigurationError(
                f"Tendency location {tendency.location} does not match "
                f"boundary condition location {self.location}"
            )
        for routine in self._routines:
            for bc, buf in zip(routine.conditions, routine.buffers):
                if bc is not None:
                    refresh_condition(buf, bc, self.grid, routine.axis, self.location, *args)
            event = arch.launch(routine.kernel, tendency.data, *routine.args)
            arch.wait(event)


def apply_flux_bcs(tendencies, fields, arch: Architecture, *args: Any) -> None:
    """Apply the flux conditions of `fields` to the matching `tendencies`.

    Args:
        tendencies: Tendency field, or mapping of name -> tendency field
        fields: Field (or mapping) whose boundary conditions are applied
        arch: Device to launch on
        *args: Extra arguments passed to callable flux conditions
    """
    if isinstance(tendencies, Mapping):
        for name, G in tendencies.items():
            if name in fields:
                apply_flux_bcs(G, fields[name], arch, *args)
        return
    fields.flux_applicator.apply(tendencies, arch, *args)
