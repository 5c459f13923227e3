"""
Physical constants and numerical tolerances.

All units are in SI unless otherwise noted. Angles handed across module
boundaries are in degrees.
"""

# =============================================================================
# Fundamental Physical Constants
# =============================================================================

# Speed of light in vacuum [m/s]
SPEED_OF_LIGHT = 2.99792458e8

# Planck constant [J·s]
PLANCK_CONSTANT = 6.62607015e-34

# Boltzmann constant [J/K]
BOLTZMANN_CONSTANT = 1.380649e-23

# Bohr magneton [J/T]
BOHR_MAGNETON = 9.2740100783e-24

# Zeeman splitting scale muB / h [Hz/T]
BOHR_MAGNETON_OVER_PLANCK = BOHR_MAGNETON / PLANCK_CONSTANT

# =============================================================================
# Reference Body and Background
# =============================================================================

# WGS84 equatorial radius [m] and first eccentricity
WGS84_SEMI_MAJOR_AXIS = 6378137.0
WGS84_ECCENTRICITY = 0.0818191908426

# Cosmic microwave background temperature [K]
COSMIC_BACKGROUND_TEMPERATURE = 2.735

# Reference conditions for line parameters
REFERENCE_TEMPERATURE = 296.0  # K
REFERENCE_PRESSURE = 101325.0  # Pa

# Line shape cutoff distance from line centre [Hz]
LINE_CUTOFF_HZ = 750e9

# =============================================================================
# Geometry Tolerances
# =============================================================================

# Latitudes closer than this to +-90 degrees are treated as the pole [deg]
POLE_TOLERANCE_DEG = 1e-4

# Below this, sin(zenith) is treated as zero and azimuth is undefined
DIRECTION_EPSILON = 1e-12

# A ray leaving the surface sees its own start point as a crossing within
# this distance [m]
SURFACE_TOLERANCE_M = 1e-3

# =============================================================================
# Atmosphere
# =============================================================================

# Standard gravity [m/s^2]
EARTH_SURFACE_GRAVITY = 9.80665

# Universal gas constant [J/(mol·K)]
GAS_CONSTANT = 8.314462618

# Molar mass of dry air [kg/mol]
DRY_AIR_MOLAR_MASS = 0.0289644

# Sea level standard pressure [Pa]
STANDARD_PRESSURE = 101325.0
