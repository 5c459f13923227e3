"""
Radiative Transfer Module
=========================

Polarized forward radiative transfer along a propagation path:

- Planck source and cosmic background
- Stokes propagation matrices and segment transmission
- Retrieval targets and Jacobian bookkeeping
- The forward integrator and its Results
"""

from polrad.rte.propagation import (
    planck,
    dplanck_dt,
    cosmic_background,
    propagation_matrix,
    segment_transmission,
    transmission_derivative,
)
from polrad.rte.jacobian import (
    TargetKind,
    Target,
    StokesComponent,
    Jacobian,
    JacobianAccumulator,
)
from polrad.rte.forward import Results, compute, compute_on_grid

__all__ = [
    "planck",
    "dplanck_dt",
    "cosmic_background",
    "propagation_matrix",
    "segment_transmission",
    "transmission_derivative",
    "TargetKind",
    "Target",
    "StokesComponent",
    "Jacobian",
    "JacobianAccumulator",
    "Results",
    "compute",
    "compute_on_grid",
]
