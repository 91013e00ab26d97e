"""Field management for freesurface.

This module provides halo-padded Taichi fields with location tags and
boundary conditions, plus declarative containers for named field groups.

Main classes:
- Field: Halo-padded Taichi field with boundary conditions
- FieldSpec: Declarative field specification
- FieldRole: Field categorization (STATE, STATIC, DERIVED, SCRATCH)
- FieldContainer: Manages Field lifecycle

Convenience wrappers:
- ModelState: Access to the velocities u, v
- StaticFields: Access to the areas ax, ay, az
- ScratchFields: Access to conjugate gradient workspace

Factory functions:
- create_model_state, create_static_container, create_scratch_container
"""

from freesurface.fields.base import (
    NO_BOUNDARY_CONDITIONS,
    Field,
    FieldContainer,
    FieldRole,
    FieldSpec,
)
from freesurface.fields.scratch import (
    ScratchFields,
    create_derived_specs,
    create_scratch_container,
    create_scratch_specs,
)
from freesurface.fields.state import (
    ETA_LOCATION,
    U_LOCATION,
    V_LOCATION,
    ModelState,
    create_free_surface_specs,
    create_model_state,
    create_state_specs,
)
from freesurface.fields.static import (
    StaticFields,
    create_static_container,
    create_static_specs,
)

__all__ = [
    # Core classes
    "Field",
    "FieldContainer",
    "FieldRole",
    "FieldSpec",
    "NO_BOUNDARY_CONDITIONS",
    # Locations
    "ETA_LOCATION",
    "U_LOCATION",
    "V_LOCATION",
    # Convenience wrappers
    "ModelState",
    "StaticFields",
    "ScratchFields",
    # Factory functions
    "create_model_state",
    "create_state_specs",
    "create_free_surface_specs",
    "create_static_specs",
    "create_static_container",
    "create_derived_specs",
    "create_scratch_specs",
    "create_scratch_container",
]
