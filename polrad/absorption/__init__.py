"""
Absorption Module
=================

Line absorption and its polarization in a magnetic field:

- Wigner 3j symbols for integer and half-integer momenta
- Zeeman splitting, subline strengths and polarization patterns
- Absorption lines, bands and propagation coefficients
"""

from polrad.absorption.wigner import wigner3j, as_momentum
from polrad.absorption.zeeman import (
    Polarization,
    SPLIT_POLARIZATIONS,
    Zeeman,
    Subline,
    Angles,
    angles,
    angles_from_zenith_azimuth,
    polarization_vector,
)
from polrad.absorption.band import (
    AbsorptionLine,
    Band,
    lorentz_sum,
    total_propagation,
)

__all__ = [
    "wigner3j",
    "as_momentum",
    "Polarization",
    "SPLIT_POLARIZATIONS",
    "Zeeman",
    "Subline",
    "Angles",
    "angles",
    "angles_from_zenith_azimuth",
    "polarization_vector",
    "AbsorptionLine",
    "Band",
    "lorentz_sum",
    "total_propagation",
]
