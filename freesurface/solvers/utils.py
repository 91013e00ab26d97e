"""Vector kernels over the interior of vertically reduced fields."""

import taichi as ti

from freesurface.core.dtypes import DTYPE


@ti.kernel
def copy_interior(src: ti.template(), dst: ti.template(), nx: int, ny: int):
    """Copy src to dst."""
    for i, j in ti.ndrange(nx, ny):
        dst[i, j, 0] = src[i, j, 0]


@ti.kernel
def dot(a: ti.template(), b: ti.template(), nx: int, ny: int) -> DTYPE:
    """Inner product of a and b."""
    total = ti.cast(0.0, DTYPE)
    for i, j in ti.ndrange(nx, ny):
        total += a[i, j, 0] * b[i, j, 0]
    return total


@ti.kernel
def axpy(y: ti.template(), alpha: DTYPE, x: ti.template(), nx: int, ny: int):
    """y += alpha * x."""
    for i, j in ti.ndrange(nx, ny):
        y[i, j, 0] += alpha * x[i, j, 0]


@ti.kernel
def xpay(y: ti.template(), x: ti.template(), beta: DTYPE, nx: int, ny: int):
    """y = x + beta * y."""
    for i, j in ti.ndrange(nx, ny):
        y[i, j, 0] = x[i, j, 0] + beta * y[i, j, 0]


@ti.kernel
def subtract(out: ti.template(), a: ti.template(), b: ti.template(), nx: int, ny: int):
    """out = a - b."""
    for i, j in ti.ndrange(nx, ny):
        out[i, j, 0] = a[i, j, 0] - b[i, j, 0]


@ti.kernel
def divide(out: ti.template(), a: ti.template(), d: ti.template(), nx: int, ny: int):
    """out = a / d."""
    for i, j in ti.ndrange(nx, ny):
        out[i, j, 0] = a[i, j, 0] / d[i, j, 0]
