"""CLI entry point for the implicit free-surface solver.

Runs the impulsive-velocity scenario: a unit zonal velocity at the x-midpoint
face of the bottom layer, advanced by implicit free-surface steps.

Usage:
    python -m freesurface.main --config configs/impulse.yaml --compare
"""

import argparse
import logging
import sys
import time

import numpy as np

from freesurface.architectures import Architecture
from freesurface.config import init_taichi
from freesurface.diagnostics import VolumeBalance, compute_volume
from freesurface.fields.state import ModelState, create_model_state
from freesurface.free_surface import ImplicitFreeSurface
from freesurface.params import SimulationConfig, load_config
from freesurface.solvers import SolveResult, SolverMethod


def initialize_impulse(model: ModelState) -> None:
    """Set u = 1 at the x-midpoint face of the bottom layer, zero elsewhere."""
    u = np.zeros(model.u.sizes)
    u[model.grid.Nx // 2, :, 0] = 1.0
    model.u.set(u)
    model.v.set(0.0)


def run_impulse(
    config: SimulationConfig,
    arch: Architecture,
    solver_method: SolverMethod | str | None = None,
) -> tuple[ImplicitFreeSurface, list[SolveResult], VolumeBalance]:
    """Run the impulse scenario.

    Args:
        config: Simulation configuration
        arch: Device to run on
        solver_method: Override of config.free_surface.solver_method

    Returns:
        (free surface, per-step results, volume balance)
    """
    grid = config.grid.to_grid()
    fs = config.free_surface
    free_surface = ImplicitFreeSurface(
        grid,
        arch,
        solver_method=solver_method or fs.solver_method,
        tolerance=fs.tolerance,
        relative_tolerance=fs.relative_tolerance,
        maximum_iterations=fs.maximum_iterations,
        gravitational_acceleration=fs.gravitational_acceleration,
        preconditioner=fs.preconditioner,
    )
    model = create_model_state(grid, arch)
    initialize_impulse(model)

    balance = VolumeBalance(initial_volume=compute_volume(free_surface.eta, free_surface.areas.az))
    results = []
    for _ in range(config.timestep.steps):
        results.append(free_surface.step(model, config.dt, config.implicit_weight))
        balance.steps += 1
    return free_surface, results, balance


def _other(method: SolverMethod) -> SolverMethod:
    return SolverMethod.FFT if method == SolverMethod.PCG else SolverMethod.PCG


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Implicit free-surface solver")
    parser.add_argument("--config", type=str, help="Path to YAML configuration file")
    parser.add_argument("--backend", type=str, choices=["cpu", "cuda", "vulkan"],
                        help="Taichi backend (default: FREESURFACE_BACKEND or auto)")
    parser.add_argument("--steps", type=int, help="Number of steps. Overrides config.")
    parser.add_argument("--compare", action="store_true",
                        help="Also run the other solver and report the difference")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    arch = init_taichi(args.backend)
    print(f"Taichi backend: {arch.name}")

    if args.config:
        print(f"Loading config from {args.config}")
        config = load_config(args.config)
    else:
        config = SimulationConfig()
    if args.steps is not None:
        config = config.with_updates(timestep={"steps": args.steps})

    grid = config.grid
    print(f"Grid: {grid.size[0]}×{grid.size[1]}×{grid.size[2]}, topology {grid.topology}")
    print(f"Timestep: dt={config.dt} s, implicit weight={config.implicit_weight}, "
          f"steps={config.timestep.steps}")

    method = SolverMethod.from_name(config.free_surface.solver_method)
    start = time.perf_counter()
    free_surface, results, balance = run_impulse(config, arch)
    elapsed = time.perf_counter() - start

    eta = free_surface.eta.interior()
    volume = compute_volume(free_surface.eta, free_surface.areas.az)
    print(f"\n{method.value}: {elapsed:.2f} s")
    print(f"  eta: min={eta.min():.6e} m, max={eta.max():.6e} m")
    print(f"  iterations: {[r.iterations for r in results]}")
    print(f"  final residual: {results[-1].residual_norm:.3e}, converged: {results[-1].converged}")
    print(f"  volume error: {abs(volume - balance.initial_volume):.3e} m³")

    if args.compare:
        other = _other(method)
        other_fs, other_results, _ = run_impulse(config, arch, solver_method=other)
        difference = np.max(np.abs(eta - other_fs.eta.interior()))
        print(f"\n{other.value}: iterations {[r.iterations for r in other_results]}")
        print(f"  max |eta difference|: {difference:.3e} m")

    return 0


if __name__ == "__main__":
    sys.exit(main())
