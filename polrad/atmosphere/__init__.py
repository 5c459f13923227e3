"""
Atmospheric state along propagation paths.

Classes
-------
AtmosphereProfile
    Base class for atmospheric profiles
AtmosphericState
    Temperature, pressure and magnetic field at one point
StandardAtmosphere
    US Standard Atmosphere 1976 implementation
TabulatedAtmosphere
    Profile interpolated from a user-supplied altitude grid
"""

from polrad.atmosphere.profiles import (
    AtmosphereProfile,
    AtmosphericState,
    StandardAtmosphere,
    TabulatedAtmosphere,
)

__all__ = [
    "AtmosphereProfile",
    "AtmosphericState",
    "StandardAtmosphere",
    "TabulatedAtmosphere",
]
