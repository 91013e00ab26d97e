"""
Implicit free-surface solvers.

This module provides the two solver strategies and a registry selecting
between them by configuration.

Usage:
    from freesurface.solvers import SolverMethod, get_registry

    solver = get_registry().create(SolverMethod.PCG, grid, arch, areas, tolerance=1e-12)
    result = solver.solve(eta, rhs, g, dt, arch)

Submodules:
- operator: The implicit free-surface linear operator
- fft: Direct DCT/FFT solver for uniform grids
- pcg: Preconditioned conjugate gradient solver
- protocol: Solver interface and result type
"""

from typing import Any, Type

from freesurface.architectures import Architecture
from freesurface.core.grid import RectilinearGrid
from freesurface.solvers.fft import FFTBasedFreeSurfaceSolver, laplacian_eigenvalues
from freesurface.solvers.operator import (
    ImplicitFreeSurfaceOperator,
    implicit_free_surface_linear_operation,
)
from freesurface.solvers.pcg import PreconditionedConjugateGradientSolver
from freesurface.solvers.protocol import FreeSurfaceSolver, SolveResult, SolverMethod


class SolverRegistry:
    """Registry mapping solver methods to solver classes.

    Example:
        registry = SolverRegistry()
        solver = registry.create("fft", grid, CPU, areas)

        # Register custom implementation
        registry.register(SolverMethod.PCG, MyMultigridSolver)
    """

    def __init__(self):
        """Initialize registry with the built-in solvers."""
        self._solvers: dict[SolverMethod, Type[FreeSurfaceSolver]] = {
            SolverMethod.FFT: FFTBasedFreeSurfaceSolver,
            SolverMethod.PCG: PreconditionedConjugateGradientSolver,
        }

    def create(
        self,
        method: SolverMethod | str,
        grid: RectilinearGrid,
        arch: Architecture,
        areas: Any,
        **options: Any,
    ) -> FreeSurfaceSolver:
        """Construct a solver.

        Args:
            method: Solver method (enum member or name)
            grid: The grid
            arch: Device to launch on
            areas: StaticFields holding ax, ay and az
            **options: Solver-specific options (tolerance, maximum_iterations,
                preconditioner, eta_bcs for PCG)

        Returns:
            Solver instance implementing FreeSurfaceSolver

        Raises:
            ConfigurationError: If the method is unknown or the solver rejects
                the grid or options
        """
        method = SolverMethod.from_name(method)
        if method not in self._solvers:
            raise KeyError(
                f"No solver registered for {method}. "
                f"Available: {list(self._solvers.keys())}"
            )
        return self._solvers[method](grid, arch, areas, **options)

    def register(self, method: SolverMethod, solver_cls: Type[FreeSurfaceSolver]) -> None:
        """Register a solver implementation.

        Args:
            method: Method to register under
            solver_cls: Class implementing FreeSurfaceSolver
        """
        self._solvers[method] = solver_cls

    def available_methods(self) -> list[SolverMethod]:
        """List registered solver methods."""
        return list(self._solvers.keys())


# Default registry instance for convenience
_default_registry = SolverRegistry()


def get_registry() -> SolverRegistry:
    """Get the default solver registry.

    Returns:
        The global SolverRegistry instance
    """
    return _default_registry


__all__ = [
    # Registry
    "SolverRegistry",
    "get_registry",
    # Protocol and results
    "FreeSurfaceSolver",
    "SolveResult",
    "SolverMethod",
    # Implementations
    "FFTBasedFreeSurfaceSolver",
    "PreconditionedConjugateGradientSolver",
    "ImplicitFreeSurfaceOperator",
    "implicit_free_surface_linear_operation",
    "laplacian_eigenvalues",
]
