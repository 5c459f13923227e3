"""
polrad: polarized radiative transfer along geodetic lines of sight.

Computes the propagation path of a line of sight from an observing platform
above a reference ellipsoid through the surrounding atmosphere, and
integrates the polarized radiative transfer equation along it to produce the
observed Stokes radiance and its Jacobian against retrieval targets.

Modules
-------
geometry
    Ellipsoid, position and line-of-sight conversions, ray/ellipsoid
    intersection, navigation stepping and path tracing
atmosphere
    Temperature, pressure and magnetic field along the path
absorption
    Wigner 3j symbols, Zeeman splitting and polarization, absorption bands
rte
    Stokes propagation, the forward integrator and its Jacobian
data
    Persistence of navigation states
config
    Run configuration (YAML/JSON) and builders
"""

__version__ = "0.1.0"
__author__ = "polrad Contributors"

from polrad.geometry import Ellipsoid, WGS84, Position, Los, Nav, Path, trace_path
from polrad.atmosphere import StandardAtmosphere, TabulatedAtmosphere
from polrad.absorption import AbsorptionLine, Band, Polarization, Zeeman
from polrad.rte import Results, Target, TargetKind, StokesComponent, compute, compute_on_grid

__all__ = [
    "Ellipsoid",
    "WGS84",
    "Position",
    "Los",
    "Nav",
    "Path",
    "trace_path",
    "StandardAtmosphere",
    "TabulatedAtmosphere",
    "AbsorptionLine",
    "Band",
    "Polarization",
    "Zeeman",
    "Results",
    "Target",
    "TargetKind",
    "StokesComponent",
    "compute",
    "compute_on_grid",
    "__version__",
]
