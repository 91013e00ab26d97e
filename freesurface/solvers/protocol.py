"""
Solver protocol definitions for swappable free-surface solvers.

Both solvers write the new free-surface elevation into eta given the
right-hand side assembled by the step coordinator, so the coordinator never
depends on which strategy is configured.

Result dataclasses capture convergence information for logging and tests.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from freesurface.core.errors import ConfigurationError


class SolverMethod(Enum):
    """Available free-surface solver strategies."""

    FFT = "FastFourierTransform"  # Direct, uniform separable grids only
    PCG = "PreconditionedConjugateGradient"  # Iterative, any rectilinear grid

    @classmethod
    def from_name(cls, value: "SolverMethod | str") -> "SolverMethod":
        """Parse a method from an enum member, its full name or 'fft'/'pcg'.

        Raises:
            ConfigurationError: If the name is not recognized
        """
        if isinstance(value, cls):
            return value
        name = str(value).lower()
        for member in cls:
            if name in (member.value.lower(), member.name.lower()):
                return member
        raise ConfigurationError(
            f"Unknown solver_method: {value!r}. "
            f"Available: {[member.value for member in cls]}"
        )


@dataclass(frozen=True)
class SolveResult:
    """Outcome of one free-surface solve.

    Attributes:
        iterations: Iterations performed (1 for the direct solver)
        residual_norm: Final 2-norm of the residual [m³]
        converged: Whether the stopping criterion was met
    """

    iterations: int
    residual_norm: float
    converged: bool


@runtime_checkable
class FreeSurfaceSolver(Protocol):
    """Protocol for implicit free-surface solvers.

    Solves  g Δt² ∇·(H ∇η) Az - Az η = RHS  for η.
    """

    def solve(
        self,
        eta: Any,  # Field at (Center, Center, Nothing)
        rhs: Any,  # Field at (Center, Center, Nothing)
        g: float,
        dt: float,
        arch: Any,  # Architecture
    ) -> SolveResult:
        """Write the solution into the interior of eta.

        Args:
            eta: Free-surface field; its current value may seed the solve
            rhs: Right-hand side
            g: Gravitational acceleration [m/s²]
            dt: Timestep [s]
            arch: Device to launch on

        Returns:
            SolveResult describing convergence
        """
        ...
