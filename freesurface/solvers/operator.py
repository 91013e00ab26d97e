"""
Linear operator of the implicit free-surface equation.

    L η[i, j] = g Δt² Σ_faces A_face (η_nb - η[i, j]) / Δ_face - Az[i, j] η[i, j]

A_face are the vertically integrated lateral areas (zero on walls), Δ_face
the center-to-center distance across the face and Az the horizontal cell
area. The coefficient of a face is shared by the two cells it separates, so
L is symmetric; the -Az η term makes it negative definite.

η halos must be filled before applying the operator.
"""

import taichi as ti

from freesurface.architectures import Architecture
from freesurface.core.dtypes import DTYPE
from freesurface.core.grid import RectilinearGrid, Topology
from freesurface.core.metrics import grid_metrics


@ti.kernel
def free_surface_operator(
    L: ti.template(), eta: ti.template(),
    ax: ti.template(), ay: ti.template(), az: ti.template(),
    dx: ti.template(), dy: ti.template(),
    x_active: ti.template(), y_active: ti.template(),
    gdt2: DTYPE, nx: int, ny: int,
):
    """L = g Δt² δ(A δη / Δ) - Az η."""
    for i, j in ti.ndrange(nx, ny):
        center = eta[i, j, 0]
        flux = ti.cast(0.0, DTYPE)
        if ti.static(x_active):
            flux += ax[i + 1, j, 0] * (eta[i + 1, j, 0] - center) / dx[i + 1]
            flux += ax[i, j, 0] * (eta[i - 1, j, 0] - center) / dx[i]
        if ti.static(y_active):
            flux += ay[i, j + 1, 0] * (eta[i, j + 1, 0] - center) / dy[j + 1]
            flux += ay[i, j, 0] * (eta[i, j - 1, 0] - center) / dy[j]
        L[i, j, 0] = gdt2 * flux - az[i, j, 0] * center


@ti.kernel
def free_surface_operator_diagonal(
    diag: ti.template(),
    ax: ti.template(), ay: ti.template(), az: ti.template(),
    dx: ti.template(), dy: ti.template(),
    x_active: ti.template(), y_active: ti.template(),
    gdt2: DTYPE, nx: int, ny: int,
):
    """Diagonal of the operator, -(g Δt² Σ A / Δ + Az)."""
    for i, j in ti.ndrange(nx, ny):
        coefficient = ti.cast(0.0, DTYPE)
        if ti.static(x_active):
            coefficient += ax[i + 1, j, 0] / dx[i + 1] + ax[i, j, 0] / dx[i]
        if ti.static(y_active):
            coefficient += ay[i, j + 1, 0] / dy[j + 1] + ay[i, j, 0] / dy[j]
        diag[i, j, 0] = -(gdt2 * coefficient + az[i, j, 0])


class ImplicitFreeSurfaceOperator:
    """The implicit free-surface operator on one grid.

    Attributes:
        grid: The grid
        areas: StaticFields holding ax, ay and az

    Flat horizontal axes contribute no face terms.
    """

    def __init__(self, grid: RectilinearGrid, areas):
        self.grid = grid
        self.areas = areas
        metrics = grid_metrics(grid)
        self._spacings = (metrics.spacings[0], metrics.spacings[1])
        self._active = tuple(grid.topology[a] != Topology.FLAT for a in (0, 1))

    def _args(self):
        return (
            self.areas.ax.data, self.areas.ay.data, self.areas.az.data,
            *self._spacings, *self._active,
        )

    def apply(self, L, eta, g: float, dt: float, arch: Architecture) -> None:
        """Write L η into the interior of L."""
        event = arch.launch(
            free_surface_operator, L.data, eta.data, *self._args(),
            g * dt**2, self.grid.Nx, self.grid.Ny,
        )
        arch.wait(event)

    def diagonal(self, diag, g: float, dt: float, arch: Architecture) -> None:
        """Write the operator diagonal into the interior of diag."""
        event = arch.launch(
            free_surface_operator_diagonal, diag.data, *self._args(),
            g * dt**2, self.grid.Nx, self.grid.Ny,
        )
        arch.wait(event)


def implicit_free_surface_linear_operation(
    L, eta, areas, g: float, dt: float, arch: Architecture
) -> None:
    """Apply the implicit free-surface operator: L ← L(η).

    Args:
        L: Output field at (Center, Center, Nothing)
        eta: Input field with filled halos
        areas: StaticFields holding ax, ay and az
        g: Gravitational acceleration [m/s²]
        dt: Timestep [s]
        arch: Device to launch on
    """
    ImplicitFreeSurfaceOperator(eta.grid, areas).apply(L, eta, g, dt, arch)
