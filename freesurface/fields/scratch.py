"""Scratch and derived field specifications and factory.

Derived fields are recomputed from the state every step:
- qu: Vertically integrated x transport at (Face, Center, Nothing) [m³/s]
- qv: Vertically integrated y transport at (Center, Face, Nothing) [m³/s]
- rhs: Right-hand side of the implicit free-surface equation [m³]

Scratch fields are conjugate gradient workspace, reused every solve:
- r: Residual
- z: Preconditioned residual
- p: Search direction (halo-filled before every operator application)
- q: Operator applied to the search direction
- diag: Jacobi preconditioner diagonal
"""

from freesurface.boundary_conditions.conditions import FieldBoundaryConditions
from freesurface.core.grid import Center, Face, RectilinearGrid
from freesurface.fields.base import (
    NO_BOUNDARY_CONDITIONS,
    Field,
    FieldContainer,
    FieldRole,
    FieldSpec,
)

REDUCED = (Center, Center, None)


def create_derived_specs() -> list[FieldSpec]:
    """Create specifications for the transports and the right-hand side.

    Returns:
        List of FieldSpec for derived fields
    """
    return [
        FieldSpec(
            name="qu",
            location=(Face, Center, None),
            role=FieldRole.DERIVED,
            description="Vertically integrated x transport [m³/s]",
        ),
        FieldSpec(
            name="qv",
            location=(Center, Face, None),
            role=FieldRole.DERIVED,
            description="Vertically integrated y transport [m³/s]",
        ),
        FieldSpec(
            name="rhs",
            location=REDUCED,
            role=FieldRole.DERIVED,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Implicit free-surface right-hand side [m³]",
        ),
    ]


def create_scratch_specs(
    eta_bcs: FieldBoundaryConditions | None = None,
) -> list[FieldSpec]:
    """Create specifications for the conjugate gradient workspace.

    Args:
        eta_bcs: Boundary conditions of eta, shared by the search direction

    Returns:
        List of FieldSpec for scratch fields
    """
    return [
        FieldSpec(
            name="r",
            location=REDUCED,
            role=FieldRole.SCRATCH,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Residual",
        ),
        FieldSpec(
            name="z",
            location=REDUCED,
            role=FieldRole.SCRATCH,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Preconditioned residual",
        ),
        FieldSpec(
            name="p",
            location=REDUCED,
            role=FieldRole.SCRATCH,
            boundary_conditions=eta_bcs,
            description="Search direction",
        ),
        FieldSpec(
            name="q",
            location=REDUCED,
            role=FieldRole.SCRATCH,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Operator applied to the search direction",
        ),
        FieldSpec(
            name="diag",
            location=REDUCED,
            role=FieldRole.SCRATCH,
            boundary_conditions=NO_BOUNDARY_CONDITIONS,
            description="Jacobi preconditioner diagonal",
        ),
    ]


class ScratchFields:
    """Convenience wrapper for accessing the conjugate gradient workspace."""

    def __init__(self, container: FieldContainer):
        self._container = container

    @property
    def r(self) -> Field:
        return self._container["r"]

    @property
    def z(self) -> Field:
        return self._container["z"]

    @property
    def p(self) -> Field:
        return self._container["p"]

    @property
    def q(self) -> Field:
        return self._container["q"]

    @property
    def diag(self) -> Field:
        return self._container["diag"]


def create_scratch_container(
    grid: RectilinearGrid, eta_bcs: FieldBoundaryConditions | None = None
) -> FieldContainer:
    """Create a container with conjugate gradient workspace only."""
    container = FieldContainer(grid)
    container.register_many(create_scratch_specs(eta_bcs))
    container.allocate()
    return container

