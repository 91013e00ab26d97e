"""
freesurface: implicit free-surface solve for layered ocean models using Taichi.

Halo exchange, flux boundary conditions and the FFT / PCG elliptic solvers
that advance the free-surface elevation without a gravity-wave CFL limit.
"""

__version__ = "0.1.0"
