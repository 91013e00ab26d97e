"""
Direct free-surface solver by eigen-decomposition of the horizontal Laplacian.

On a horizontally uniform grid the operator divided by Az is

    g Δt² H ∇²η - η

which is diagonalized by a DCT-II along Bounded axes (zero-flux walls) and an
FFT along Periodic axes. With eigenvalues -λ of ∇²,

    η̂ = f̂ / (g Δt² H λ + 1),   f = -RHS / Az
"""

import logging

import numpy as np
from scipy import fft as scipy_fft

from freesurface.architectures import Architecture
from freesurface.core.errors import ConfigurationError
from freesurface.core.grid import RectilinearGrid, Topology
from freesurface.solvers.protocol import SolveResult

logger = logging.getLogger(__name__)


def laplacian_eigenvalues(n: int, spacing: float, topology: Topology) -> np.ndarray:
    """Eigenvalues λ_k of -∂² along one axis (k = 0 .. n-1).

    Periodic: (2 sin(πk/n) / Δ)²;  Bounded: (2 sin(πk/2n) / Δ)²;  Flat: 0.
    """
    k = np.arange(n)
    if topology == Topology.PERIODIC:
        return (2 * np.sin(np.pi * k / n) / spacing) ** 2
    if topology == Topology.BOUNDED:
        return (2 * np.sin(np.pi * k / (2 * n)) / spacing) ** 2
    return np.zeros(n)


class FFTBasedFreeSurfaceSolver:
    """Direct solver for horizontally uniform grids.

    Attributes:
        grid: The grid
        eigenvalues: H (λx + λy), shape (Nx, Ny)

    Raises:
        ConfigurationError: If the grid is not horizontally uniform
    """

    def __init__(self, grid: RectilinearGrid, arch: Architecture, areas):
        if not grid.is_horizontally_uniform:
            raise ConfigurationError(
                "FastFourierTransform solver requires uniform horizontal spacing; "
                "use PreconditionedConjugateGradient for stretched grids"
            )
        self.grid = grid
        self.arch = arch

        lam = []
        for a in (0, 1):
            coords = grid.coordinates[a]
            lam.append(
                laplacian_eigenvalues(
                    grid.size[a], float(coords.interior_widths[0]), grid.topology[a]
                )
            )
        self.eigenvalues = grid.total_depth * (lam[0][:, None] + lam[1][None, :])

        self._bounded_axes = [a for a in (0, 1) if grid.topology[a] == Topology.BOUNDED]
        self._periodic_axes = [a for a in (0, 1) if grid.topology[a] == Topology.PERIODIC]
        self._az = areas.az.interior()[:, :, 0]

        logger.debug(
            "FFT solver: DCT along %s, FFT along %s",
            self._bounded_axes, self._periodic_axes,
        )

    def _forward(self, f: np.ndarray) -> np.ndarray:
        for a in self._bounded_axes:
            f = scipy_fft.dct(f, type=2, axis=a, norm="ortho")
        for a in self._periodic_axes:
            f = scipy_fft.fft(f, axis=a)
        return f

    def _backward(self, f: np.ndarray) -> np.ndarray:
        for a in reversed(self._periodic_axes):
            f = scipy_fft.ifft(f, axis=a)
        f = np.real(f)
        for a in reversed(self._bounded_axes):
            f = scipy_fft.idct(f, type=2, axis=a, norm="ortho")
        return f

    def solve(self, eta, rhs, g: float, dt: float, arch: Architecture) -> SolveResult:
        """Solve for eta. One host round trip."""
        f = -rhs.interior()[:, :, 0] / self._az
        f_hat = self._forward(f)
        f_hat = f_hat / (g * dt**2 * self.eigenvalues + 1)
        eta.set(self._backward(f_hat)[:, :, None])
        return SolveResult(iterations=1, residual_norm=0.0, converged=True)
