"""Static field specifications and factory.

Static fields are computed once from the grid and remain constant:
- ax: Vertically integrated x-face area, Δy·H at (Face, Center, Nothing) [m²]
- ay: Vertically integrated y-face area, Δx·H at (Center, Face, Nothing) [m²]
- az: Horizontal cell area, Δx·Δy at (Center, Center, Nothing) [m²]

The lateral areas take NormalFlow(0) conditions on Bounded axes, so the
areas of wall faces are zero once their halos are filled.
"""

import taichi as ti

from freesurface.architectures import Architecture
from freesurface.core.dtypes import DTYPE
from freesurface.core.grid import Center, Face, RectilinearGrid
from freesurface.core.metrics import grid_metrics, horizontal_area
from freesurface.fields.base import (
    NO_BOUNDARY_CONDITIONS,
    Field,
    FieldContainer,
    FieldRole,
    FieldSpec,
)


def create_static_specs() -> list[FieldSpec]:
    """Create specifications for the area fields.

    Returns:
        List of FieldSpec for static fields
    """
    return [
        FieldSpec(
            name="ax",
            location=(Face, Center, None),
            role=FieldRole.STATIC,
            description="Vertically integrated x-face area [m²]",
        ),
        FieldSpec(
            name="ay",
            location=(Center, Face, None),
            role=FieldRole.STATIC,
            description="Vertically integrated y-face area [m²]",
        ),
        FieldSpec(
            name="az",
            location=(Center, Center, None),
            role=FieldRole.STATIC,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Horizontal cell area [m²]",
        ),
    ]


@ti.kernel
def compute_areas(
    ax: ti.template(), ay: ti.template(), az: ti.template(),
    dx: ti.template(), dy: ti.template(), depth: DTYPE,
):
    """Fill lateral and horizontal areas, halos included."""
    for i, j, k in ax:
        ax[i, j, k] = dy[j] * depth
    for i, j, k in ay:
        ay[i, j, k] = dx[i] * depth
    for i, j, k in az:
        az[i, j, k] = horizontal_area(dx, dy, i, j)


class StaticFields:
    """Convenience wrapper for accessing the area fields.

    Example:
        static = StaticFields(container)
        static.initialize(CPU)
        total_area = static.az.interior().sum()
    """

    def __init__(self, container: FieldContainer):
        """Initialize with field container.

        Args:
            container: Allocated FieldContainer with static fields
        """
        self._container = container

    @property
    def ax(self) -> Field:
        """Vertically integrated x-face area [m²]."""
        return self._container["ax"]

    @property
    def ay(self) -> Field:
        """Vertically integrated y-face area [m²]."""
        return self._container["ay"]

    @property
    def az(self) -> Field:
        """Horizontal cell area [m²]."""
        return self._container["az"]

    def initialize(self, arch: Architecture) -> None:
        """Compute areas from the grid and zero the wall faces."""
        grid = self._container.grid
        metrics = grid_metrics(grid)
        event = arch.launch(
            compute_areas,
            self.ax.data, self.ay.data, self.az.data,
            metrics.widths[0], metrics.widths[1], grid.total_depth,
        )
        arch.wait(event)
        self.ax.fill_halo_regions(arch)
        self.ay.fill_halo_regions(arch)


def create_static_container(grid: RectilinearGrid, arch: Architecture) -> FieldContainer:
    """Create a container with initialized area fields.

    Args:
        grid: The grid
        arch: Device used for the initialization kernel

    Returns:
        Allocated FieldContainer with static fields
    """
    container = FieldContainer(grid)
    container.register_many(create_static_specs())
    container.allocate()
    StaticFields(container).initialize(arch)
    return container
