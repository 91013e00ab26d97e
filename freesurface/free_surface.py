"""Implicit free-surface step.

Advances the free-surface elevation with an implicit elliptic solve:

    1. fill velocity halos
    2. vertically integrate transports Qu = Σ u Δy Δz, Qv = Σ v Δx Δz
    3. fill transport halos
    4. RHS = χ Δt δQ - Az η
    5. solve L η = RHS
    6. fill η halos
"""

import logging

import taichi as ti

from freesurface.architectures import CPU, Architecture
from freesurface.boundary_conditions.conditions import FieldBoundaryConditions
from freesurface.boundary_conditions.halo import fill_halo_regions
from freesurface.core.dtypes import DTYPE
from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import RectilinearGrid, Topology
from freesurface.core.metrics import grid_metrics
from freesurface.fields.base import Field, FieldContainer
from freesurface.fields.scratch import create_derived_specs
from freesurface.fields.state import ModelState, create_free_surface_specs
from freesurface.fields.static import StaticFields, create_static_specs
from freesurface.solvers import SolverMethod, SolverRegistry, SolveResult, get_registry

logger = logging.getLogger(__name__)

GRAVITATIONAL_ACCELERATION = 9.80665  # m/s²


@ti.kernel
def compute_vertically_integrated_transports(
    qu: ti.template(), qv: ti.template(), u: ti.template(), v: ti.template(),
    dx: ti.template(), dy: ti.template(), dz: ti.template(),
    nxu: int, nyu: int, nxv: int, nyv: int, nz: int,
):
    """Qu = Σ_k u Δy Δz at x-faces, Qv = Σ_k v Δx Δz at y-faces."""
    for i, j in ti.ndrange(nxu, nyu):
        total = ti.cast(0.0, DTYPE)
        for k in range(nz):
            total += u[i, j, k] * dy[j] * dz[k]
        qu[i, j, 0] = total
    for i, j in ti.ndrange(nxv, nyv):
        total = ti.cast(0.0, DTYPE)
        for k in range(nz):
            total += v[i, j, k] * dx[i] * dz[k]
        qv[i, j, 0] = total


@ti.kernel
def compute_implicit_free_surface_right_hand_side(
    rhs: ti.template(), qu: ti.template(), qv: ti.template(),
    eta: ti.template(), az: ti.template(),
    x_active: ti.template(), y_active: ti.template(),
    weighted_dt: DTYPE, nx: int, ny: int,
):
    """RHS = χ Δt δQ - Az η."""
    for i, j in ti.ndrange(nx, ny):
        divergence = ti.cast(0.0, DTYPE)
        if ti.static(x_active):
            divergence += qu[i + 1, j, 0] - qu[i, j, 0]
        if ti.static(y_active):
            divergence += qv[i, j + 1, 0] - qv[i, j, 0]
        rhs[i, j, 0] = weighted_dt * divergence - az[i, j, 0] * eta[i, j, 0]


class ImplicitFreeSurface:
    """Free surface advanced by an implicit solve.

    Owns eta, the area fields, the transports, the right-hand side and the
    solver. All options are validated here; stepping never fails on
    configuration.

    Example:
        free_surface = ImplicitFreeSurface(grid, CPU, solver_method="fft")
        result = free_surface.step(model, dt=900.0, implicit_weight=1.5)
    """

    def __init__(
        self,
        grid: RectilinearGrid,
        arch: Architecture = CPU,
        solver_method: SolverMethod | str = SolverMethod.PCG,
        tolerance: float = 1e-8,
        maximum_iterations: int | None = None,
        relative_tolerance: float = 0.0,
        gravitational_acceleration: float = GRAVITATIONAL_ACCELERATION,
        preconditioner: str | None = "jacobi",
        eta_bcs: FieldBoundaryConditions | None = None,
        registry: SolverRegistry | None = None,
    ):
        """Allocate fields and build the solver.

        Args:
            grid: The grid
            arch: Device to launch on
            solver_method: "FastFourierTransform" or "PreconditionedConjugateGradient"
            tolerance: Absolute residual-norm threshold [m³] (PCG)
            maximum_iterations: Iteration cap (PCG, default Nx * Ny)
            relative_tolerance: Threshold as a fraction of ||RHS|| (PCG, 0 disables)
            gravitational_acceleration: g [m/s²]
            preconditioner: "jacobi" or None (PCG)
            eta_bcs: Boundary conditions of eta (default from grid topology)
            registry: Solver registry (default: global registry)

        Raises:
            ConfigurationError: If any option is invalid
        """
        if not gravitational_acceleration > 0:
            raise ConfigurationError(
                f"gravitational_acceleration must be > 0, got {gravitational_acceleration}"
            )
        self.grid = grid
        self.arch = arch
        self.solver_method = SolverMethod.from_name(solver_method)
        self.gravitational_acceleration = float(gravitational_acceleration)

        self._container = FieldContainer(grid)
        self._container.register_many(create_free_surface_specs(eta_bcs))
        self._container.register_many(create_static_specs())
        self._container.register_many(create_derived_specs())
        self._container.allocate()

        self.areas = StaticFields(self._container)
        self.areas.initialize(arch)

        options = {}
        if self.solver_method == SolverMethod.PCG:
            options = dict(
                tolerance=tolerance,
                maximum_iterations=maximum_iterations,
                relative_tolerance=relative_tolerance,
                preconditioner=preconditioner,
                eta_bcs=self.eta.boundary_conditions,
            )
        self.solver = (registry or get_registry()).create(
            self.solver_method, grid, arch, self.areas, **options
        )
        self._active = tuple(grid.topology[a] != Topology.FLAT for a in (0, 1))

        logger.info(
            "Implicit free surface on %d×%d×%d grid with %s solver",
            grid.Nx, grid.Ny, grid.Nz, self.solver_method.value,
        )

    @property
    def eta(self) -> Field:
        """Free-surface elevation [m]."""
        return self._container["eta"]

    @property
    def rhs(self) -> Field:
        """Right-hand side of the last step [m³]."""
        return self._container["rhs"]

    @property
    def transports(self) -> dict[str, Field]:
        """Vertically integrated transports of the last step [m³/s]."""
        return {"qu": self._container["qu"], "qv": self._container["qv"]}

    def compute_transports(self, model: ModelState) -> None:
        """Fill velocity halos, integrate transports and fill their halos."""
        arch = self.arch
        fill_halo_regions(model.velocities, arch)

        metrics = grid_metrics(self.grid)
        qu, qv = self.transports["qu"], self.transports["qv"]
        event = arch.launch(
            compute_vertically_integrated_transports,
            qu.data, qv.data, model.u.data, model.v.data,
            metrics.widths[0], metrics.widths[1], metrics.widths[2],
            qu.sizes[0], qu.sizes[1], qv.sizes[0], qv.sizes[1], self.grid.Nz,
        )
        arch.wait(event)
        fill_halo_regions(self.transports, arch)

    def compute_right_hand_side(self, dt: float, implicit_weight: float) -> None:
        """RHS = χ Δt δQ - Az η from the current transports and eta."""
        event = self.arch.launch(
            compute_implicit_free_surface_right_hand_side,
            self.rhs.data, self.transports["qu"].data, self.transports["qv"].data,
            self.eta.data, self.areas.az.data, *self._active,
            implicit_weight * dt, self.grid.Nx, self.grid.Ny,
        )
        self.arch.wait(event)

    def step(self, model: ModelState, dt: float, implicit_weight: float = 1.0) -> SolveResult:
        """Advance eta by one implicit step.

        Args:
            model: ModelState with velocities u, v
            dt: Timestep [s]
            implicit_weight: Weight χ of the transport divergence

        Returns:
            SolveResult of the solver
        """
        self.compute_transports(model)
        self.compute_right_hand_side(dt, implicit_weight)
        result = self.solver.solve(
            self.eta, self.rhs, self.gravitational_acceleration, dt, self.arch
        )
        self.eta.fill_halo_regions(self.arch)
        logger.debug(
            "Free-surface step dt=%g: %d iterations, residual %.3e",
            dt, result.iterations, result.residual_norm,
        )
        return result


def implicit_free_surface_step(
    free_surface: ImplicitFreeSurface,
    model: ModelState,
    dt: float,
    implicit_weight: float = 1.0,
) -> SolveResult:
    """Advance the free surface of a model by one implicit step."""
    return free_surface.step(model, dt, implicit_weight)
