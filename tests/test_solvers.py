"""Tests for the free-surface solvers and the solver registry."""

import numpy as np
import pytest

from freesurface.core import ConfigurationError, NonConvergenceWarning, RectilinearGrid, Topology
from freesurface.fields import Field, StaticFields, create_static_container
from freesurface.fields.state import ETA_LOCATION
from freesurface.solvers import (
    FFTBasedFreeSurfaceSolver,
    FreeSurfaceSolver,
    ImplicitFreeSurfaceOperator,
    PreconditionedConjugateGradientSolver,
    SolveResult,
    SolverMethod,
    SolverRegistry,
    get_registry,
    laplacian_eigenvalues,
)

G = 9.81
DT = 1.0


@pytest.fixture
def areas(box_grid, arch):
    return StaticFields(create_static_container(box_grid, arch))


@pytest.fixture
def random_rhs(box_grid, rng):
    rhs = Field(box_grid, ETA_LOCATION, name="rhs")
    rhs.set(rng.standard_normal(rhs.sizes))
    return rhs


def residual_at(grid, areas, eta, rhs, arch, g, dt):
    """RHS - L η over the interior."""
    eta.fill_halo_regions(arch)
    L = Field(grid, ETA_LOCATION)
    ImplicitFreeSurfaceOperator(grid, areas).apply(L, eta, g, dt, arch)
    return rhs.interior() - L.interior()


def residual(grid, areas, eta, rhs, arch):
    return residual_at(grid, areas, eta, rhs, arch, G, DT)


class TestSolverMethod:
    """Tests for solver method parsing."""

    @pytest.mark.parametrize("name", [
        "FastFourierTransform", "fastfouriertransform", "fft", "FFT", SolverMethod.FFT,
    ])
    def test_fft_names(self, name):
        assert SolverMethod.from_name(name) == SolverMethod.FFT

    @pytest.mark.parametrize("name", ["PreconditionedConjugateGradient", "pcg"])
    def test_pcg_names(self, name):
        assert SolverMethod.from_name(name) == SolverMethod.PCG

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError, match="Unknown solver_method"):
            SolverMethod.from_name("Multigrid")


class TestSolverRegistry:
    """Tests for SolverRegistry."""

    def test_available_methods(self):
        assert set(get_registry().available_methods()) == {SolverMethod.FFT, SolverMethod.PCG}

    def test_create_by_name(self, box_grid, arch, areas):
        solver = get_registry().create("fft", box_grid, arch, areas)
        assert isinstance(solver, FFTBasedFreeSurfaceSolver)
        assert isinstance(solver, FreeSurfaceSolver)

    def test_create_passes_options(self, box_grid, arch, areas):
        solver = get_registry().create(
            SolverMethod.PCG, box_grid, arch, areas, tolerance=1e-8, maximum_iterations=7
        )
        assert isinstance(solver, PreconditionedConjugateGradientSolver)
        assert solver.tolerance == 1e-8
        assert solver.maximum_iterations == 7

    def test_register_custom(self, box_grid, arch, areas):
        class ZeroSolver:
            def __init__(self, grid, arch, areas):
                pass

            def solve(self, eta, rhs, g, dt, arch):
                eta.set(0.0)
                return SolveResult(iterations=0, residual_norm=0.0, converged=True)

        registry = SolverRegistry()
        registry.register(SolverMethod.PCG, ZeroSolver)
        assert isinstance(registry.create("pcg", box_grid, arch, areas), ZeroSolver)
        # Default registry untouched
        assert get_registry().create("pcg", box_grid, arch, areas).__class__ is \
            PreconditionedConjugateGradientSolver


class TestLaplacianEigenvalues:
    """Tests for laplacian_eigenvalues."""

    def test_zero_mode(self):
        for topology in (Topology.PERIODIC, Topology.BOUNDED):
            assert laplacian_eigenvalues(8, 2.0, topology)[0] == 0.0

    def test_flat(self):
        np.testing.assert_array_equal(laplacian_eigenvalues(1, 1.0, Topology.FLAT), [0.0])

    def test_bounded_matches_neumann_matrix(self):
        """DCT-II eigenvalues of the cell-centered Neumann second difference."""
        n, dx = 6, 0.5
        A = (np.diag(2 * np.ones(n)) - np.diag(np.ones(n - 1), 1) - np.diag(np.ones(n - 1), -1))
        A[0, 0] = A[-1, -1] = 1
        expected = np.sort(np.linalg.eigvalsh(A / dx**2))
        actual = np.sort(laplacian_eigenvalues(n, dx, Topology.BOUNDED))
        np.testing.assert_allclose(actual, expected, atol=1e-10)

    def test_periodic_matches_circulant(self):
        n, dx = 5, 1.0
        A = 2 * np.eye(n) - np.roll(np.eye(n), 1, axis=1) - np.roll(np.eye(n), -1, axis=1)
        expected = np.sort(np.linalg.eigvalsh(A / dx**2))
        actual = np.sort(laplacian_eigenvalues(n, dx, Topology.PERIODIC))
        np.testing.assert_allclose(actual, expected, atol=1e-10)


class TestFFTSolver:
    """Tests for FFTBasedFreeSurfaceSolver."""

    def test_rejects_stretched_grid(self, arch):
        grid = RectilinearGrid(
            size=(3, 2, 1), x=(0, 1, 3, 6), y=(0, 2), z=(-1, 0),
            topology=("Bounded", "Periodic", "Bounded"),
        )
        areas = StaticFields(create_static_container(grid, arch))
        with pytest.raises(ConfigurationError, match="uniform"):
            FFTBasedFreeSurfaceSolver(grid, arch, areas)

    def test_solves_linear_system(self, box_grid, arch, areas, random_rhs):
        solver = FFTBasedFreeSurfaceSolver(box_grid, arch, areas)
        eta = Field(box_grid, ETA_LOCATION)
        result = solver.solve(eta, random_rhs, G, DT, arch)
        assert result == SolveResult(iterations=1, residual_norm=0.0, converged=True)
        r = residual(box_grid, areas, eta, random_rhs, arch)
        np.testing.assert_allclose(r, 0.0, atol=1e-10)

    def test_doubly_periodic(self, arch, rng):
        grid = RectilinearGrid(
            size=(6, 4, 1), x=(0, 60), y=(0, 20), z=(-3, 0),
            topology=("Periodic", "Periodic", "Bounded"),
        )
        areas = StaticFields(create_static_container(grid, arch))
        rhs = Field(grid, ETA_LOCATION)
        rhs.set(rng.standard_normal(rhs.sizes))
        eta = Field(grid, ETA_LOCATION)
        FFTBasedFreeSurfaceSolver(grid, arch, areas).solve(eta, rhs, G, DT, arch)
        np.testing.assert_allclose(residual(grid, areas, eta, rhs, arch), 0.0, atol=1e-9)


class TestPCGSolver:
    """Tests for PreconditionedConjugateGradientSolver."""

    def test_default_maximum_iterations(self, box_grid, arch, areas):
        solver = PreconditionedConjugateGradientSolver(box_grid, arch, areas)
        assert solver.maximum_iterations == 12

    @pytest.mark.parametrize("options, message", [
        ({"tolerance": 0.0}, "tolerance"),
        ({"tolerance": -1e-8}, "tolerance"),
        ({"relative_tolerance": -1e-6}, "relative_tolerance"),
        ({"maximum_iterations": 0}, "maximum_iterations"),
        ({"maximum_iterations": 2.5}, "maximum_iterations"),
        ({"maximum_iterations": True}, "maximum_iterations"),
        ({"preconditioner": "multigrid"}, "preconditioner"),
    ])
    def test_invalid_options(self, box_grid, arch, areas, options, message):
        with pytest.raises(ConfigurationError, match=message):
            PreconditionedConjugateGradientSolver(box_grid, arch, areas, **options)

    def test_preconditioner_name_case_insensitive(self, box_grid, arch, areas):
        solver = PreconditionedConjugateGradientSolver(
            box_grid, arch, areas, preconditioner="Jacobi"
        )
        assert solver.preconditioner == "jacobi"

    @pytest.mark.parametrize("preconditioner", ["jacobi", None])
    def test_matches_fft(self, box_grid, arch, areas, random_rhs, preconditioner):
        eta_fft = Field(box_grid, ETA_LOCATION)
        FFTBasedFreeSurfaceSolver(box_grid, arch, areas).solve(eta_fft, random_rhs, G, DT, arch)

        solver = PreconditionedConjugateGradientSolver(
            box_grid, arch, areas, tolerance=1e-12, maximum_iterations=100,
            preconditioner=preconditioner,
        )
        eta_pcg = Field(box_grid, ETA_LOCATION)
        result = solver.solve(eta_pcg, random_rhs, G, DT, arch)

        assert result.converged
        assert 0 < result.iterations <= solver.maximum_iterations
        np.testing.assert_allclose(eta_pcg.interior(), eta_fft.interior(), atol=1e-10)

    def test_stretched_grid(self, arch, rng):
        grid = RectilinearGrid(
            size=(5, 4, 2), x=(0, 1, 3, 4, 7, 8), y=(0, 1, 1.5, 3, 4), z=(-4, -1, 0),
            topology=("Bounded", "Bounded", "Bounded"),
        )
        areas = StaticFields(create_static_container(grid, arch))
        rhs = Field(grid, ETA_LOCATION)
        rhs.set(rng.standard_normal(rhs.sizes))
        eta = Field(grid, ETA_LOCATION)
        result = PreconditionedConjugateGradientSolver(
            grid, arch, areas, tolerance=1e-11, maximum_iterations=200
        ).solve(
            eta, rhs, G, DT, arch
        )
        assert result.converged
        np.testing.assert_allclose(residual(grid, areas, eta, rhs, arch), 0.0, atol=1e-9)

    def test_zero_rhs(self, box_grid, arch, areas):
        eta = Field(box_grid, ETA_LOCATION)
        eta.set(3.0)
        rhs = Field(box_grid, ETA_LOCATION)
        result = PreconditionedConjugateGradientSolver(box_grid, arch, areas).solve(
            eta, rhs, G, DT, arch
        )
        assert result == SolveResult(iterations=0, residual_norm=0.0, converged=True)
        np.testing.assert_array_equal(eta.interior(), 0.0)

    def test_warm_start_converged(self, box_grid, arch, areas, random_rhs):
        solver = PreconditionedConjugateGradientSolver(box_grid, arch, areas, tolerance=1e-10)
        eta = Field(box_grid, ETA_LOCATION)
        solver.solve(eta, random_rhs, G, DT, arch)
        result = solver.solve(eta, random_rhs, G, DT, arch)
        assert result.converged
        assert result.iterations <= 1

    def test_converged_means_residual_below_tolerance(self, channel_grid, arch, rng):
        """tolerance bounds the residual norm itself, whatever the RHS scale."""
        areas = StaticFields(create_static_container(channel_grid, arch))
        rhs = Field(channel_grid, ETA_LOCATION)
        rhs.set(1e5 * rng.standard_normal(rhs.sizes))
        solver = PreconditionedConjugateGradientSolver(
            channel_grid, arch, areas, tolerance=1e-6, maximum_iterations=1000
        )
        eta = Field(channel_grid, ETA_LOCATION)
        result = solver.solve(eta, rhs, 9.80665, 900.0, arch)
        assert result.converged
        assert result.residual_norm <= solver.tolerance
        r = residual_at(channel_grid, areas, eta, rhs, arch, 9.80665, 900.0)
        assert np.linalg.norm(r) <= 10 * solver.tolerance

    def test_relative_tolerance(self, channel_grid, arch, rng):
        areas = StaticFields(create_static_container(channel_grid, arch))
        rhs = Field(channel_grid, ETA_LOCATION)
        rhs.set(1e5 * rng.standard_normal(rhs.sizes))
        rhs_norm = np.linalg.norm(rhs.interior())
        solver = PreconditionedConjugateGradientSolver(
            channel_grid, arch, areas, tolerance=1e-30, relative_tolerance=1e-6,
            maximum_iterations=1000,
        )
        result = solver.solve(Field(channel_grid, ETA_LOCATION), rhs, 9.80665, 900.0, arch)
        assert result.converged
        assert result.residual_norm <= 1e-6 * rhs_norm
        assert result.residual_norm > solver.tolerance

    def test_non_convergence_warns(self, channel_grid, arch, rng):
        areas = StaticFields(create_static_container(channel_grid, arch))
        rhs = Field(channel_grid, ETA_LOCATION)
        rhs.set(rng.standard_normal(rhs.sizes))
        eta = Field(channel_grid, ETA_LOCATION)
        solver = PreconditionedConjugateGradientSolver(
            channel_grid, arch, areas, maximum_iterations=1
        )
        with pytest.warns(NonConvergenceWarning, match="did not converge"):
            result = solver.solve(eta, rhs, 9.80665, 900.0, arch)
        assert not result.converged
        assert result.iterations == 1
        assert result.residual_norm > 0

    def test_diagonal_cached_per_timestep(self, box_grid, arch, areas, random_rhs, monkeypatch):
        solver = PreconditionedConjugateGradientSolver(box_grid, arch, areas)
        calls = []
        original = solver.operator.diagonal

        def counting_diagonal(*args):
            calls.append(args)
            original(*args)

        monkeypatch.setattr(solver.operator, "diagonal", counting_diagonal)
        for dt in (1.0, 1.0, 2.0, 2.0):
            solver.solve(Field(box_grid, ETA_LOCATION), random_rhs, G, dt, arch)
        assert len(calls) == 2
