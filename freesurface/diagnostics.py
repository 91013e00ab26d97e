"""Volume conservation checks.

An implicit free-surface step with walls or periodic boundaries conserves
the free-surface volume Σ Az η.
"""

from dataclasses import dataclass

import taichi as ti

from freesurface.core.dtypes import DTYPE


@ti.kernel
def integrate_horizontal(c: ti.template(), az: ti.template(), nx: int, ny: int) -> DTYPE:
    """Σ Az c over the interior of a reduced field."""
    total = ti.cast(0.0, DTYPE)
    for i, j in ti.ndrange(nx, ny):
        total += az[i, j, 0] * c[i, j, 0]
    return total


def compute_volume(eta, az) -> float:
    """Free-surface volume Σ Az η [m³]."""
    nx, ny = eta.sizes[0], eta.sizes[1]
    return float(integrate_horizontal(eta.data, az.data, nx, ny))


@dataclass
class VolumeBalance:
    """Tracks free-surface volume across steps."""

    initial_volume: float = 0.0  # Σ Az η at start [m³]
    steps: int = 0

    def check(self, actual: float, rtol: float = 1e-10, atol: float = 1e-6) -> float:
        """Check volume conservation and return the absolute error.

        Raises:
            AssertionError: If the volume drifted beyond tolerance
        """
        check_conservation(self.initial_volume, actual, rtol=rtol, atol=atol)
        return abs(actual - self.initial_volume)


def check_conservation(
    initial: float,
    final: float,
    rtol: float = 1e-10,
    atol: float = 1e-6,
) -> None:
    """Check volume conservation: final == initial.

    Args:
        initial: Initial volume [m³]
        final: Final volume [m³]
        rtol: Relative tolerance
        atol: Absolute tolerance [m³]

    Raises:
        AssertionError: If conservation violated
    """
    diff = abs(final - initial)
    tol = atol + rtol * abs(initial)

    if diff > tol:
        raise AssertionError(
            f"Volume not conserved!\n"
            f"  Initial: {initial:.10e}\n"
            f"  Final:   {final:.10e}\n"
            f"  Difference: {diff:.10e} (tolerance: {tol:.10e})"
        )
