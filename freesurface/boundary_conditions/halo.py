"""
Halo exchange: fill the ghost points of a field from its boundary conditions.

Each field owns one HaloExchangeEngine, built when the field is constructed.
The engine resolves every (axis, side, kind) into a side fill holding the
Taichi kernel and its arguments, so filling never inspects condition kinds.

Ghost and mirror indices along an axis with interior size n:

    side    edge    ghost g (1..H)    mirror (Center)    mirror (Face)
    left    0       -g                g - 1              g
    right   n - 1   n - 1 + g         n - g              n - 1 - g

On a Bounded axis the edge point of a Face-located field lies on the
boundary, so the mirror skips it.

Axis pairs are filled in the order z, y, x with periodic pairs moved last,
so edge and corner ghosts end up consistent with the periodic wrap.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import taichi as ti

from freesurface.architectures import Architecture, NoneEvent
from freesurface.boundary_conditions.conditions import (
    AXIS_SIDES,
    BoundaryCondition,
    BoundaryConditionKind,
    evaluate_condition,
    tangential_extents,
)
from freesurface.core.dtypes import DTYPE
from freesurface.core.grid import AXES, Face
from freesurface.core.metrics import boundary_index, grid_metrics

logger = logging.getLogger(__name__)

LEFT, RIGHT = 0, 1


# =============================================================================
# Fill kernels
# =============================================================================


@ti.kernel
def fill_periodic(
    c: ti.template(), axis: ti.template(),
    n: int, h: int, edge: int, sign: int,
    a0: int, a1: int, b0: int, b1: int,
):
    """Copy ghosts from the opposite interior boundary."""
    for a, b in ti.ndrange((a0, a1), (b0, b1)):
        for g in range(1, h + 1):
            ghost = edge + sign * g
            c[boundary_index(axis, ghost, a, b)] = c[boundary_index(axis, ghost - sign * n, a, b)]


@ti.kernel
def fill_value(
    c: ti.template(), v: ti.template(), axis: ti.template(),
    h: int, edge: int, sign: int, shift: int, on_boundary: int,
    a0: int, a1: int, b0: int, b1: int,
):
    """Reflect about the boundary value: ghost = 2v - mirror."""
    for a, b in ti.ndrange((a0, a1), (b0, b1)):
        value = v[a, b]
        if on_boundary:
            c[boundary_index(axis, edge, a, b)] = value
        for g in range(1, h + 1):
            ghost = edge + sign * g
            mirror = edge - sign * (g - shift)
            c[boundary_index(axis, ghost, a, b)] = 2.0 * value - c[boundary_index(axis, mirror, a, b)]


@ti.kernel
def fill_gradient(
    c: ti.template(), v: ti.template(), x: ti.template(), axis: ti.template(),
    h: int, edge: int, sign: int, shift: int,
    a0: int, a1: int, b0: int, b1: int,
):
    """Extrapolate with a prescribed derivative: ghost = mirror + g (x_ghost - x_mirror)."""
    for a, b in ti.ndrange((a0, a1), (b0, b1)):
        gradient = v[a, b]
        for g in range(1, h + 1):
            ghost = edge + sign * g
            mirror = edge - sign * (g - shift)
            c[boundary_index(axis, ghost, a, b)] = (
                c[boundary_index(axis, mirror, a, b)] + gradient * (x[ghost] - x[mirror])
            )


@ti.kernel
def fill_mirror(
    c: ti.template(), axis: ti.template(),
    h: int, edge: int, sign: int, shift: int,
    a0: int, a1: int, b0: int, b1: int,
):
    """Zero-gradient fill: ghost = mirror."""
    for a, b in ti.ndrange((a0, a1), (b0, b1)):
        for g in range(1, h + 1):
            ghost = edge + sign * g
            mirror = edge - sign * (g - shift)
            c[boundary_index(axis, ghost, a, b)] = c[boundary_index(axis, mirror, a, b)]


# Kernel per condition kind; ZeroFlux writes nothing
FILL_KERNELS = {
    BoundaryConditionKind.PERIODIC: fill_periodic,
    BoundaryConditionKind.VALUE: fill_value,
    BoundaryConditionKind.GRADIENT: fill_gradient,
    BoundaryConditionKind.FLUX: fill_mirror,
    BoundaryConditionKind.NORMAL_FLOW: fill_value,
    BoundaryConditionKind.ZERO_FLUX: None,
}

# Kinds whose condition is read by the fill kernel
_CONDITION_KINDS = (
    BoundaryConditionKind.VALUE,
    BoundaryConditionKind.GRADIENT,
    BoundaryConditionKind.NORMAL_FLOW,
)


def condition_buffer(bc: BoundaryCondition, grid, axis: int, location):
    """Allocate the Taichi buffer holding a condition over the padded tangential extent.

    Constant and array conditions are uploaded here; callable conditions are
    evaluated by `refresh_condition` before every use.
    """
    (na, ha), (nb, hb) = tangential_extents(grid, axis, location)
    buf = ti.field(DTYPE, shape=(na + 2 * ha, nb + 2 * hb), offset=(-ha, -hb))
    if not bc.is_callable:
        buf.from_numpy(evaluate_condition(bc, grid, axis, location))
    return buf


def refresh_condition(buf, bc: BoundaryCondition, grid, axis: int, location, *args) -> None:
    if bc.is_callable:
        buf.from_numpy(evaluate_condition(bc, grid, axis, location, *args))


@dataclass
class SideFill:
    """A resolved fill routine for one side of one axis.

    Attributes:
        axis: Boundary-normal axis index
        side: LEFT or RIGHT
        bc: The boundary condition
        kernel: Fill kernel from FILL_KERNELS
        args: Kernel arguments
        buffer: Condition buffer (None for kinds without a condition)
    """

    axis: int
    side: int
    bc: BoundaryCondition
    kernel: Any
    args: tuple
    buffer: Any = None

    def launch(self, arch: Architecture, field, *args):
        if self.buffer is not None:
            refresh_condition(self.buffer, self.bc, field.grid, self.axis, field.location, *args)
        return arch.launch(self.kernel, *self.args)


@dataclass
class PairFill:
    """Fills for the two sides of one axis, joined by one barrier."""

    axis: int
    left: SideFill | None
    right: SideFill | None

    @property
    def periodic(self) -> bool:
        return any(s is not None and s.bc.is_periodic for s in (self.left, self.right))


def _resolve_side(field, axis: int, side: int, bc: BoundaryCondition | None) -> SideFill | None:
    if bc is None:
        return None
    kernel = FILL_KERNELS[bc.kind]
    if kernel is None:
        return None

    grid, location = field.grid, field.location
    n, h = field.sizes[axis], field.halos[axis]
    if h == 0:
        return None

    edge, sign = (0, -1) if side == LEFT else (n - 1, 1)
    (na, ha), (nb, hb) = tangential_extents(grid, axis, location)
    extent = (-ha, na + ha, -hb, nb + hb)
    face = location[axis] == Face
    shift = 0 if face else 1

    buf = None
    if bc.kind in _CONDITION_KINDS:
        buf = condition_buffer(bc, grid, axis, location)

    c = field.data
    if bc.kind == BoundaryConditionKind.PERIODIC:
        args = (c, axis, n, h, edge, sign) + extent
    elif kernel is fill_value:
        args = (c, buf, axis, h, edge, sign, shift, int(face)) + extent
    elif kernel is fill_gradient:
        x = grid_metrics(grid).nodes(axis, location[axis])
        args = (c, buf, x, axis, h, edge, sign, shift) + extent
    else:
        args = (c, axis, h, edge, sign, shift) + extent

    return SideFill(axis=axis, side=side, bc=bc, kernel=kernel, args=args, buffer=buf)


class HaloExchangeEngine:
    """Fills the ghost points of one field.

    Attributes:
        field: The field whose halos are filled
        pairs: Resolved axis pairs in fill order

    Example:
        engine = HaloExchangeEngine(field)
        engine.fill(CPU)
        engine.fill_order  # ('z', 'x', 'y') on a (Bounded, Periodic, Bounded) grid
    """

    def __init__(self, field):
        self.field = field
        pairs = []
        for axis in (2, 1, 0):
            left, right = field.boundary_conditions.pair(axis)
            pair = PairFill(
                axis=axis,
                left=_resolve_side(field, axis, LEFT, left),
                right=_resolve_side(field, axis, RIGHT, right),
            )
            if pair.left is None and pair.right is None:
                continue
            pairs.append(pair)
        # sorted() is stable: periodic pairs last, otherwise z, y, x
        self.pairs = sorted(pairs, key=lambda p: p.periodic)
        logger.debug("Halo fill order for %s: %s", field.name or "unnamed", self.fill_order)

    @property
    def fill_order(self) -> tuple[str, ...]:
        """Axis names in the order their halos are filled."""
        return tuple(AXES[p.axis] for p in self.pairs)

    def fill(self, arch: Architecture, *args: Any) -> None:
        """Fill all halos of the field.

        Args:
            arch: Device to launch on
            *args: Extra arguments passed to callable conditions
        """
        for pair in self.pairs:
            events = [
                NoneEvent() if s is None else s.launch(arch, self.field, *args)
                for s in (pair.left, pair.right)
            ]
            arch.wait(*events)

    def __repr__(self) -> str:
        sides = []
        for pair in self.pairs:
            names = AXIS_SIDES[pair.axis]
            for name, s in zip(names, (pair.left, pair.right)):
                if s is not None:
                    sides.append(f"{name}={s.bc!r}")
        return f"HaloExchangeEngine({self.field.name or 'unnamed'}: {', '.join(sides)})"


def fill_halo_regions(fields, arch: Architecture, *args: Any) -> None:
    """Fill halos of a field, or of every field in a (nested) sequence or mapping.

    `None` entries are skipped.

    Args:
        fields: Field, None, or a sequence/mapping of them
        arch: Device to launch on
        *args: Extra arguments passed to callable conditions
    """
    if fields is None:
        return
    if hasattr(fields, "halo_engine"):
        fields.halo_engine.fill(arch, *args)
        return
    if isinstance(fields, Mapping):
        fields = fields.values()
    for f in fields:
        fill_halo_regions(f, arch, *args)
