"""Base field, field specification and container classes.

Fields are declared by spec and allocated per grid:
- Field: Halo-padded Taichi field with location tags and boundary conditions
- FieldSpec: Describes a field's name, location, role and boundary conditions
- FieldRole: Enum categorizing field usage patterns
- FieldContainer: Manages field lifecycle and allocation

Usage:
    container = FieldContainer(grid)
    container.register(FieldSpec("eta", (Center, Center, None), FieldRole.STATE))
    container.allocate()
    eta = container["eta"]
    eta.set(0.0)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from functools import cached_property
from typing import Any, Callable

import numpy as np
import taichi as ti

from freesurface.boundary_conditions.conditions import FieldBoundaryConditions
from freesurface.boundary_conditions.flux import FluxBoundaryConditionApplicator
from freesurface.boundary_conditions.halo import HaloExchangeEngine
from freesurface.core.dtypes import DTYPE
from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import Location, RectilinearGrid

# Boundary condition set for fields whose halos are never filled
NO_BOUNDARY_CONDITIONS = FieldBoundaryConditions()


def _normalize_location(location) -> tuple[Location | None, Location | None, Location | None]:
    if len(location) != 3:
        raise ConfigurationError(f"location must have 3 entries, got {location}")
    lx, ly, lz = (None if loc is None else Location(loc) for loc in location)
    if lx is None or ly is None:
        raise ConfigurationError("Only the z axis of a field can be reduced")
    return lx, ly, lz


class Field:
    """A halo-padded finite-volume field on a RectilinearGrid.

    The data is a Taichi field with offset indexing: interior points along an
    axis run 0 .. n-1 and ghost points sit at -H .. -1 and n .. n+H-1. A z
    location of None marks a vertically reduced (2D) field with a single
    z point at k = 0 and no z halo.

    Attributes:
        grid: The grid
        location: (LX, LY, LZ) location tags
        boundary_conditions: Face conditions, or NO_BOUNDARY_CONDITIONS
        name: Field identifier
        data: The Taichi field
        sizes: Interior size per axis
        halos: Halo width per axis

    Example:
        eta = Field(grid, (Center, Center, None), name="eta")
        eta.set(lambda x, y, z: np.exp(-x**2))
        eta.fill_halo_regions(CPU)
    """

    def __init__(
        self,
        grid: RectilinearGrid,
        location=(Location.CENTER, Location.CENTER, Location.CENTER),
        boundary_conditions: FieldBoundaryConditions | None = None,
        name: str = "",
        dtype: Any = DTYPE,
    ):
        """Allocate a field.

        Args:
            grid: The grid
            location: Location per axis; z may be None for reduced fields
            boundary_conditions: Face conditions (defaults from grid topology)
            name: Field identifier
            dtype: Taichi data type

        Raises:
            ConfigurationError: If the boundary conditions are inconsistent
                with the grid topology or location
        """
        self.grid = grid
        self.location = _normalize_location(location)
        self.name = name

        if boundary_conditions is None:
            boundary_conditions = FieldBoundaryConditions.default(grid, self.location)
        if boundary_conditions is not NO_BOUNDARY_CONDITIONS:
            boundary_conditions.validate(grid, self.location)
        self.boundary_conditions = boundary_conditions

        self.sizes = tuple(grid.interior_size(a, loc) for a, loc in enumerate(self.location))
        self.halos = tuple(grid.halo_size(a, loc) for a, loc in enumerate(self.location))

        self.data = ti.field(
            dtype=dtype,
            shape=tuple(n + 2 * h for n, h in zip(self.sizes, self.halos)),
            offset=tuple(-h for h in self.halos),
        )

        self.halo_engine = HaloExchangeEngine(self)

    @property
    def is_reduced(self) -> bool:
        """Whether this is a vertically reduced (2D) field."""
        return self.location[2] is None

    @property
    def interior_slices(self) -> tuple[slice, slice, slice]:
        """Slices selecting the interior of `parent()`."""
        return tuple(slice(h, h + n) for n, h in zip(self.sizes, self.halos))

    def parent(self) -> np.ndarray:
        """Copy of the full array, halos included."""
        return self.data.to_numpy()

    def interior(self) -> np.ndarray:
        """Copy of the interior points."""
        return self.parent()[self.interior_slices]

    def nodes(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Interior node coordinates, broadcastable to the interior shape."""
        nodes = []
        for a, (loc, n, h) in enumerate(zip(self.location, self.sizes, self.halos)):
            coords = self.grid.coordinates[a]
            if loc is None:
                values = coords.faces[coords.halo + coords.size:][:1]
            else:
                values = coords.nodes(loc)[coords.halo:coords.halo + n]
            shape = [1, 1, 1]
            shape[a] = values.shape[0]
            nodes.append(values.reshape(shape))
        return tuple(nodes)

    def set(self, value: float | np.ndarray | Callable[..., Any]) -> None:
        """Set interior points; halos are left untouched.

        Args:
            value: Scalar, interior-shaped array, or callable f(x, y, z) of
                node coordinates
        """
        if callable(value):
            value = np.broadcast_to(np.asarray(value(*self.nodes()), dtype=np.float64), self.sizes)
        arr = self.parent()
        arr[self.interior_slices] = value
        self.data.from_numpy(arr)

    def fill(self, value: float) -> None:
        """Set every point, halos included."""
        self.data.fill(value)

    def fill_halo_regions(self, arch, *args) -> None:
        """Fill ghost points according to the boundary conditions."""
        self.halo_engine.fill(arch, *args)

    @cached_property
    def flux_applicator(self) -> FluxBoundaryConditionApplicator:
        """Applicator adding this field's flux conditions to its tendency."""
        return FluxBoundaryConditionApplicator(self.grid, self.location, self.boundary_conditions)

    def __repr__(self) -> str:
        loc = ", ".join("Nothing" if l is None else l.name.title() for l in self.location)
        size = "×".join(str(n) for n in self.sizes)
        return f"Field({self.name or 'unnamed'}, {size}, ({loc}))"


class FieldRole(Enum):
    """How a field is used during a step.

    STATE: Prognostic model state (u, v, eta)
    STATIC: Read-only geometry computed once (lateral and horizontal areas)
    DERIVED: Recomputed from state each step (transports, RHS)
    SCRATCH: Solver workspace reused every step
    """

    STATE = auto()
    STATIC = auto()
    DERIVED = auto()
    SCRATCH = auto()


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one field of a container.

    Attributes:
        name: Identifier, lower snake_case (eta, qu, rhs)
        location: (LX, LY, LZ); LZ None for vertically reduced fields
        role: FieldRole of the field
        boundary_conditions: Face conditions; None selects the topology
            defaults, NO_BOUNDARY_CONDITIONS disables halo filling
        description: Meaning and units
    """

    name: str
    location: tuple[Any, Any, Any]
    role: FieldRole
    boundary_conditions: FieldBoundaryConditions | None = field(default=None, compare=False)
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("FieldSpec name cannot be empty")
        if self.name != self.name.lower() or not self.name.replace("_", "").isalnum():
            raise ConfigurationError(f"FieldSpec name must be snake_case, got {self.name!r}")


class FieldContainer:
    """Fields of one grid, declared by FieldSpec and allocated together.

    Specs are registered first; `allocate()` then builds every Field (and its
    halo engine) in registration order. Fields can be looked up only after
    allocation.

    Example:
        container = FieldContainer(grid)
        container.register_many(create_free_surface_specs())
        container.register_many(create_static_specs())
        container.allocate()
        eta = container["eta"]
    """

    def __init__(self, grid: RectilinearGrid):
        self._grid = grid
        self._specs: dict[str, FieldSpec] = {}
        self._fields: dict[str, Field] = {}

    @property
    def grid(self) -> RectilinearGrid:
        return self._grid

    @property
    def allocated(self) -> bool:
        """Whether `allocate()` has run."""
        return bool(self._fields)

    @property
    def field_names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._specs)

    def register(self, spec: FieldSpec) -> None:
        """Add a field declaration.

        Raises:
            ValueError: If the name is taken
            RuntimeError: If the container is already allocated
        """
        if self.allocated:
            raise RuntimeError(f"Cannot register '{spec.name}' after allocation")
        if spec.name in self._specs:
            raise ValueError(f"Field '{spec.name}' already registered")
        self._specs[spec.name] = spec

    def register_many(self, specs: list[FieldSpec]) -> None:
        for spec in specs:
            self.register(spec)

    def allocate(self) -> None:
        """Build a Field for every registered spec.

        Raises:
            RuntimeError: If nothing is registered or allocation already ran
            ConfigurationError: If a spec's boundary conditions do not fit
                the grid
        """
        if self.allocated:
            raise RuntimeError(f"Fields {self.field_names} already allocated")
        if not self._specs:
            raise RuntimeError("No fields registered on this container")
        self._fields = {
            name: Field(self._grid, spec.location, spec.boundary_conditions, name=name)
            for name, spec in self._specs.items()
        }

    def get(self, name: str) -> Field:
        """Allocated field by name.

        Raises:
            RuntimeError: Before allocation
            KeyError: If no such field is registered
        """
        if not self.allocated:
            raise RuntimeError(f"Field '{name}' requested but fields are not yet allocated")
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"No field '{name}'. Registered: {self.field_names}") from None

    def __getitem__(self, name: str) -> Field:
        return self.get(name)

    def get_spec(self, name: str) -> FieldSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise KeyError(f"No field '{name}'. Registered: {self.field_names}") from None

    def fields_by_role(self, role: FieldRole) -> list[str]:
        """Names of the fields with the given role, in registration order."""
        return [spec.name for spec in self._specs.values() if spec.role is role]

    @property
    def memory_bytes(self) -> int:
        """Bytes held by the allocated fields, halos included (0 before allocation)."""
        itemsize = np.dtype(np.float64).itemsize
        return sum(int(np.prod(f.data.shape)) * itemsize for f in self._fields.values())

    @property
    def memory_mb(self) -> float:
        return self.memory_bytes / 2**20

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)
