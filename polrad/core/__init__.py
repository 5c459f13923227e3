"""
Core constants shared by the geometry, absorption and radiative transfer
modules.
"""

from polrad.core.constants import (
    SPEED_OF_LIGHT,
    PLANCK_CONSTANT,
    BOLTZMANN_CONSTANT,
    BOHR_MAGNETON,
    BOHR_MAGNETON_OVER_PLANCK,
    COSMIC_BACKGROUND_TEMPERATURE,
    POLE_TOLERANCE_DEG,
)

__all__ = [
    "SPEED_OF_LIGHT",
    "PLANCK_CONSTANT",
    "BOLTZMANN_CONSTANT",
    "BOHR_MAGNETON",
    "BOHR_MAGNETON_OVER_PLANCK",
    "COSMIC_BACKGROUND_TEMPERATURE",
    "POLE_TOLERANCE_DEG",
]
