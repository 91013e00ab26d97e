"""State field specifications and factory.

State fields are the prognostic variables of the model:
- u: Zonal velocity at (Face, Center, Center) [m/s]
- v: Meridional velocity at (Center, Face, Center) [m/s]
- eta: Free-surface elevation at (Center, Center, Nothing) [m]

The velocities belong to the model; eta is owned by the free surface.
"""

from typing import Any

from freesurface.architectures import Architecture
from freesurface.boundary_conditions.conditions import FieldBoundaryConditions
from freesurface.core.grid import Center, Face, RectilinearGrid
from freesurface.fields.base import Field, FieldContainer, FieldRole, FieldSpec

U_LOCATION = (Face, Center, Center)
V_LOCATION = (Center, Face, Center)
ETA_LOCATION = (Center, Center, None)


def create_state_specs(
    u_bcs: FieldBoundaryConditions | None = None,
    v_bcs: FieldBoundaryConditions | None = None,
) -> list[FieldSpec]:
    """Create specifications for the velocity fields.

    Args:
        u_bcs: Boundary conditions for u (default from grid topology)
        v_bcs: Boundary conditions for v (default from grid topology)

    Returns:
        List of FieldSpec for state fields
    """
    return [
        FieldSpec(
            name="u",
            location=U_LOCATION,
            role=FieldRole.STATE,
            boundary_conditions=u_bcs,
            description="Zonal velocity [m/s]",
        ),
        FieldSpec(
            name="v",
            location=V_LOCATION,
            role=FieldRole.STATE,
            boundary_conditions=v_bcs,
            description="Meridional velocity [m/s]",
        ),
    ]


def create_free_surface_specs(
    eta_bcs: FieldBoundaryConditions | None = None,
) -> list[FieldSpec]:
    """Create the specification for the free-surface elevation."""
    return [
        FieldSpec(
            name="eta",
            location=ETA_LOCATION,
            role=FieldRole.STATE,
            boundary_conditions=eta_bcs,
            description="Free-surface elevation [m]",
        ),
    ]


class ModelState:
    """Velocities of a model on one architecture.

    Example:
        model = create_model_state(grid, CPU)
        model.u.set(1.0)
        fill_halo_regions(model.velocities, model.architecture)
    """

    def __init__(self, container: FieldContainer, architecture: Architecture):
        """Initialize with field container.

        Args:
            container: Allocated FieldContainer with state fields
            architecture: Device the model runs on
        """
        self._container = container
        self.architecture = architecture

    @property
    def grid(self) -> RectilinearGrid:
        return self._container.grid

    @property
    def u(self) -> Field:
        """Zonal velocity field [m/s]."""
        return self._container["u"]

    @property
    def v(self) -> Field:
        """Meridional velocity field [m/s]."""
        return self._container["v"]

    @property
    def velocities(self) -> dict[str, Any]:
        """Velocity fields by name."""
        return {"u": self.u, "v": self.v}


def create_model_state(
    grid: RectilinearGrid,
    architecture: Architecture,
    u_bcs: FieldBoundaryConditions | None = None,
    v_bcs: FieldBoundaryConditions | None = None,
) -> ModelState:
    """Allocate velocity fields and wrap them in a ModelState.

    Args:
        grid: The grid
        architecture: Device the model runs on
        u_bcs: Boundary conditions for u
        v_bcs: Boundary conditions for v

    Returns:
        ModelState with zero velocities
    """
    container = FieldContainer(grid)
    container.register_many(create_state_specs(u_bcs, v_bcs))
    container.allocate()
    return ModelState(container, architecture)
