"""Type definitions for freesurface.

The elliptic solve compares two solvers to within sqrt(machine epsilon), so
every field and kernel works in double precision.
"""

import taichi as ti

# Default floating-point type for all fields and computations
DTYPE = ti.f64
