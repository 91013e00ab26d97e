"""Boundary conditions, halo exchange and flux application."""

from freesurface.boundary_conditions.conditions import (
    AXIS_SIDES,
    SIDES,
    BoundaryCondition,
    BoundaryConditionKind,
    FieldBoundaryConditions,
    FluxBoundaryCondition,
    GradientBoundaryCondition,
    NormalFlowBoundaryCondition,
    PeriodicBoundaryCondition,
    ValueBoundaryCondition,
    ZeroFluxBoundaryCondition,
    evaluate_condition,
)
from freesurface.boundary_conditions.flux import (
    FluxBoundaryConditionApplicator,
    apply_flux_bcs,
)
from freesurface.boundary_conditions.halo import (
    HaloExchangeEngine,
    fill_halo_regions,
)

__all__ = [
    "AXIS_SIDES",
    "SIDES",
    "BoundaryCondition",
    "BoundaryConditionKind",
    "FieldBoundaryConditions",
    "FluxBoundaryCondition",
    "FluxBoundaryConditionApplicator",
    "GradientBoundaryCondition",
    "HaloExchangeEngine",
    "NormalFlowBoundaryCondition",
    "PeriodicBoundaryCondition",
    "ValueBoundaryCondition",
    "ZeroFluxBoundaryCondition",
    "apply_flux_bcs",
    "evaluate_condition",
    "fill_halo_regions",
]
