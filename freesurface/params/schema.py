"""Parameter schema with validation. Units: meters, seconds."""

from dataclasses import dataclass, field, asdict
from typing import Any

from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import RectilinearGrid, Topology
from freesurface.solvers.protocol import SolverMethod


class ValidationError(ConfigurationError):
    """A configuration value is out of range or malformed."""
    pass


def _positive(value: float, name: str) -> None:
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def _triple(value: Any, name: str) -> tuple:
    value = tuple(value)
    if len(value) != 3:
        raise ValidationError(f"{name} must have 3 entries, got {len(value)}")
    return value


@dataclass(frozen=True)
class GridParams:
    """Grid: size (Nx, Ny, Nz), x/y/z extents [m] or face coordinates, topology, halo."""
    size: tuple[int, int, int] = (128, 1, 5)
    x: tuple[float, ...] = (0.0, 1.0e6)
    y: tuple[float, ...] = (0.0, 1.0)
    z: tuple[float, ...] = (-400.0, 0.0)
    topology: tuple[str, str, str] = ("Bounded", "Periodic", "Bounded")
    halo: tuple[int, int, int] = (1, 1, 1)

    def __post_init__(self) -> None:
        # YAML yields lists
        object.__setattr__(self, "size", _triple(self.size, "size"))
        object.__setattr__(self, "halo", _triple(self.halo, "halo"))
        topology = tuple(Topology.from_name(t).value for t in _triple(self.topology, "topology"))
        object.__setattr__(self, "topology", topology)
        for name in ("x", "y", "z"):
            object.__setattr__(self, name, tuple(float(v) for v in getattr(self, name)))
        for n in self.size:
            _positive(n, "size")

    def to_grid(self) -> RectilinearGrid:
        """Build the grid (raises ConfigurationError if inconsistent)."""
        return RectilinearGrid(
            size=self.size, x=self.x, y=self.y, z=self.z,
            topology=self.topology, halo=self.halo,
        )


@dataclass(frozen=True)
class FreeSurfaceParams:
    """Free surface: solver_method, tolerance [m³], relative_tolerance [-],
    maximum_iterations, g [m/s²], preconditioner."""
    solver_method: str = "PreconditionedConjugateGradient"
    tolerance: float = 1e-8
    relative_tolerance: float = 0.0
    maximum_iterations: int | None = None
    gravitational_acceleration: float = 9.80665
    preconditioner: str | None = "jacobi"

    def __post_init__(self) -> None:
        object.__setattr__(self, "solver_method", SolverMethod.from_name(self.solver_method).value)
        _positive(self.tolerance, "tolerance")
        if self.relative_tolerance < 0:
            raise ValidationError(
                f"relative_tolerance must be >= 0, got {self.relative_tolerance}"
            )
        _positive(self.gravitational_acceleration, "gravitational_acceleration")
        if self.maximum_iterations is not None:
            if isinstance(self.maximum_iterations, bool) or not isinstance(self.maximum_iterations, int):
                raise ValidationError(
                    f"maximum_iterations must be an integer, got {self.maximum_iterations!r}"
                )
            _positive(self.maximum_iterations, "maximum_iterations")
        if self.preconditioner not in ("jacobi", None):
            raise ValidationError(
                f"preconditioner must be 'jacobi' or null, got {self.preconditioner!r}"
            )


@dataclass(frozen=True)
class TimestepParams:
    """Timestep: dt [s], implicit_weight [-], steps."""
    dt: float = 900.0
    implicit_weight: float = 1.5
    steps: int = 1

    def __post_init__(self) -> None:
        _positive(self.dt, "dt")
        _positive(self.implicit_weight, "implicit_weight")
        _positive(self.steps, "steps")


@dataclass(frozen=True)
class SimulationConfig:
    """Grid, free-surface and timestep parameters of one run."""

    grid: GridParams = field(default_factory=GridParams)
    free_surface: FreeSurfaceParams = field(default_factory=FreeSurfaceParams)
    timestep: TimestepParams = field(default_factory=TimestepParams)

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dictionary of YAML-safe values."""
        grid = {k: list(v) for k, v in asdict(self.grid).items()}
        return {
            "grid": grid,
            "free_surface": asdict(self.free_surface),
            "timestep": asdict(self.timestep),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationConfig":
        """Create from nested dictionary.

        Raises:
            ValidationError: If a group is unknown or a value is invalid
        """
        param_classes = {
            "grid": GridParams,
            "free_surface": FreeSurfaceParams,
            "timestep": TimestepParams,
        }
        unknown = set(data) - set(param_classes)
        if unknown:
            raise ValidationError(
                f"Unknown parameter group(s): {sorted(unknown)}. "
                f"Available: {list(param_classes)}"
            )
        kwargs = {}
        for k in data:
            try:
                kwargs[k] = param_classes[k](**(data[k] or {}))
            except TypeError as e:
                raise ValidationError(f"Invalid parameters for {k}: {e}") from e
        return cls(**kwargs)

    def with_updates(self, **groups: Any) -> "SimulationConfig":
        """Copy with groups replaced (dataclass) or partially updated (dict).

        Raises:
            ValidationError: If a group is unknown or an updated value is invalid
        """
        data = self.to_dict()
        for group, update in groups.items():
            if group not in data:
                raise ValidationError(f"Unknown parameter group: {group}")
            data[group] = {**data[group], **update} if isinstance(update, dict) else asdict(update)
        return self.from_dict(data)

    # Convenience accessors
    @property
    def dt(self) -> float:
        return self.timestep.dt

    @property
    def implicit_weight(self) -> float:
        return self.timestep.implicit_weight
