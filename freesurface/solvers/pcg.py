"""
Preconditioned conjugate gradient solver for the implicit free surface.

Works on any rectilinear grid. Each iteration fills the halos of the search
direction, applies the operator once and computes three inner products
(p·q, r·z, r·r). The Jacobi diagonal is cached and rebuilt only when g Δt²
changes.
"""

import logging
import math
import warnings

from freesurface.architectures import Architecture
from freesurface.boundary_conditions.conditions import FieldBoundaryConditions
from freesurface.core.errors import ConfigurationError, NonConvergenceWarning
from freesurface.core.grid import RectilinearGrid
from freesurface.fields.scratch import ScratchFields, create_scratch_container
from freesurface.solvers.operator import ImplicitFreeSurfaceOperator
from freesurface.solvers.protocol import SolveResult
from freesurface.solvers.utils import axpy, copy_interior, divide, dot, subtract, xpay

logger = logging.getLogger(__name__)

PRECONDITIONERS = ("jacobi", None)


class PreconditionedConjugateGradientSolver:
    """Iterative solver for general rectilinear grids.

    Stops when ||r|| <= max(tolerance, relative_tolerance * ||RHS||), or after
    maximum_iterations. Starts from the current value of eta.

    Attributes:
        grid: The grid
        tolerance: Absolute residual-norm threshold [m³]
        relative_tolerance: Threshold as a fraction of ||RHS|| (0 disables)
        maximum_iterations: Iteration cap
        preconditioner: "jacobi" or None
        operator: The ImplicitFreeSurfaceOperator
        workspace: ScratchFields (r, z, p, q, diag)
    """

    def __init__(
        self,
        grid: RectilinearGrid,
        arch: Architecture,
        areas,
        tolerance: float = 1e-8,
        maximum_iterations: int | None = None,
        relative_tolerance: float = 0.0,
        preconditioner: str | None = "jacobi",
        eta_bcs: FieldBoundaryConditions | None = None,
    ):
        """Build the operator and allocate workspace.

        Args:
            grid: The grid
            arch: Device the workspace lives on
            areas: StaticFields holding ax, ay and az
            tolerance: Absolute residual-norm threshold (> 0)
            maximum_iterations: Iteration cap (default Nx * Ny)
            relative_tolerance: Threshold relative to ||RHS|| (>= 0)
            preconditioner: "jacobi" or None
            eta_bcs: Boundary conditions of eta, shared by the search direction

        Raises:
            ConfigurationError: If an option is invalid
        """
        if maximum_iterations is None:
            maximum_iterations = grid.Nx * grid.Ny
        if not tolerance > 0:
            raise ConfigurationError(f"tolerance must be > 0, got {tolerance}")
        if not relative_tolerance >= 0:
            raise ConfigurationError(
                f"relative_tolerance must be >= 0, got {relative_tolerance}"
            )
        if isinstance(maximum_iterations, bool) or not isinstance(maximum_iterations, int) \
                or maximum_iterations < 1:
            raise ConfigurationError(
                f"maximum_iterations must be a positive integer, got {maximum_iterations!r}"
            )
        if isinstance(preconditioner, str):
            preconditioner = preconditioner.lower()
        if preconditioner not in PRECONDITIONERS:
            raise ConfigurationError(
                f"Unknown preconditioner: {preconditioner!r}. Available: {list(PRECONDITIONERS)}"
            )

        self.grid = grid
        self.arch = arch
        self.tolerance = tolerance
        self.relative_tolerance = relative_tolerance
        self.maximum_iterations = maximum_iterations
        self.preconditioner = preconditioner
        self.operator = ImplicitFreeSurfaceOperator(grid, areas)
        self.workspace = ScratchFields(create_scratch_container(grid, eta_bcs))
        self._diagonal_gdt2: float | None = None

    def _update_diagonal(self, g: float, dt: float, arch: Architecture) -> None:
        gdt2 = g * dt**2
        if self._diagonal_gdt2 == gdt2:
            return
        self.operator.diagonal(self.workspace.diag, g, dt, arch)
        self._diagonal_gdt2 = gdt2
        logger.debug("Rebuilt Jacobi diagonal for g*dt^2 = %g", gdt2)

    def _precondition(self, arch: Architecture) -> None:
        ws, nx, ny = self.workspace, self.grid.Nx, self.grid.Ny
        if self.preconditioner == "jacobi":
            arch.wait(arch.launch(divide, ws.z.data, ws.r.data, ws.diag.data, nx, ny))
        else:
            arch.wait(arch.launch(copy_interior, ws.r.data, ws.z.data, nx, ny))

    def solve(self, eta, rhs, g: float, dt: float, arch: Architecture) -> SolveResult:
        """Solve for eta, warm-started from its current value.

        Returns:
            SolveResult; converged is False if the iteration cap was reached

        Warns:
            NonConvergenceWarning: If the iteration cap was reached
        """
        ws, nx, ny = self.workspace, self.grid.Nx, self.grid.Ny
        r, z, p, q = ws.r.data, ws.z.data, ws.p.data, ws.q.data

        rhs_norm = math.sqrt(dot(rhs.data, rhs.data, nx, ny))
        if rhs_norm == 0.0:
            eta.fill(0.0)
            return SolveResult(iterations=0, residual_norm=0.0, converged=True)

        if self.preconditioner == "jacobi":
            self._update_diagonal(g, dt, arch)

        # r = RHS - L η
        eta.fill_halo_regions(arch)
        self.operator.apply(ws.q, eta, g, dt, arch)
        arch.wait(arch.launch(subtract, r, rhs.data, q, nx, ny))
        self._precondition(arch)
        arch.wait(arch.launch(copy_interior, z, p, nx, ny))

        rz = dot(r, z, nx, ny)
        residual_norm = math.sqrt(dot(r, r, nx, ny))
        target = max(self.tolerance, self.relative_tolerance * rhs_norm)

        iterations = 0
        while residual_norm > target and iterations < self.maximum_iterations:
            ws.p.fill_halo_regions(arch)
            self.operator.apply(ws.q, ws.p, g, dt, arch)

            alpha = rz / dot(p, q, nx, ny)
            arch.wait(
                arch.launch(axpy, eta.data, alpha, p, nx, ny),
                arch.launch(axpy, r, -alpha, q, nx, ny),
            )
            self._precondition(arch)

            rz_new = dot(r, z, nx, ny)
            residual_norm = math.sqrt(dot(r, r, nx, ny))
            arch.wait(arch.launch(xpay, p, z, rz_new / rz, nx, ny))
            rz = rz_new
            iterations += 1

        converged = residual_norm <= target
        logger.debug(
            "PCG: %d iterations, residual %.3e (target %.3e)",
            iterations, residual_norm, target,
        )
        if not converged:
            warnings.warn(
                f"PCG did not converge in {self.maximum_iterations} iterations: "
                f"residual {residual_norm:.3e} > {target:.3e}",
                NonConvergenceWarning,
                stacklevel=2,
            )
        return SolveResult(
            iterations=iterations, residual_norm=residual_norm, converged=converged
        )
