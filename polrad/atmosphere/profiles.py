"""
Atmospheric profile models.

Provides the thermodynamic and magnetic state sampled at every path point:
temperature, pressure and the local magnetic field vector.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from polrad.core.constants import (
    EARTH_SURFACE_GRAVITY,
    GAS_CONSTANT,
    DRY_AIR_MOLAR_MASS,
    STANDARD_PRESSURE,
)


@dataclass(frozen=True)
class AtmosphericState:
    """
    Atmospheric state at one point.

    Attributes
    ----------
    temperature : float
        Temperature in Kelvin
    pressure : float
        Pressure in Pa
    magnetic_field : tuple of float
        Local (east, north, up) magnetic field in tesla
    """

    temperature: float
    pressure: float
    magnetic_field: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def field_strength(self) -> float:
        return float(np.sqrt(sum(c * c for c in self.magnetic_field)))


class AtmosphereProfile(ABC):
    """
    Abstract base class for atmospheric profiles.

    Subclasses must implement temperature and pressure as functions of
    altitude. The magnetic field defaults to a constant vector.
    """

    field: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @abstractmethod
    def temperature(self, altitude: np.ndarray) -> np.ndarray:
        """
        Get temperature at given altitudes.

        Parameters
        ----------
        altitude : array_like
            Altitude in meters

        Returns
        -------
        temperature : ndarray
            Temperature in Kelvin
        """
        pass

    @abstractmethod
    def pressure(self, altitude: np.ndarray) -> np.ndarray:
        """
        Get pressure at given altitudes.

        Parameters
        ----------
        altitude : array_like
            Altitude in meters

        Returns
        -------
        pressure : ndarray
            Pressure in Pa
        """
        pass

    def magnetic_field(self, altitude: float) -> Tuple[float, float, float]:
        """Local (east, north, up) magnetic field in tesla."""
        return tuple(float(c) for c in self.field)

    def state(self, altitude: float) -> AtmosphericState:
        """Sample the full state at one altitude."""
        z = np.array([altitude], dtype=float)
        return AtmosphericState(
            temperature=float(self.temperature(z)[0]),
            pressure=float(self.pressure(z)[0]),
            magnetic_field=self.magnetic_field(altitude),
        )


class StandardAtmosphere(AtmosphereProfile):
    """
    US Standard Atmosphere 1976.

    A piecewise linear temperature profile with hydrostatic pressure.
    Valid from 0 to 86 km altitude; above that the top layer is continued
    isothermally.

    Parameters
    ----------
    magnetic_field : tuple of float
        Constant local (east, north, up) field in tesla

    References
    ----------
    NOAA/NASA/USAF, U.S. Standard Atmosphere, 1976
    """

    # (base altitude [m], base temperature [K], lapse rate [K/m])
    _LAYERS = [
        (0, 288.15, -0.0065),
        (11000, 216.65, 0.0),
        (20000, 216.65, 0.001),
        (32000, 228.65, 0.0028),
        (47000, 270.65, 0.0),
        (51000, 270.65, -0.0028),
        (71000, 214.65, -0.002),
        (86000, 186.95, 0.0),
    ]

    def __init__(self, magnetic_field: Sequence[float] = (0.0, 0.0, 0.0)):
        self.field = tuple(float(c) for c in magnetic_field)
        self._base_pressures = [STANDARD_PRESSURE]

        for i in range(len(self._LAYERS) - 1):
            z_next = self._LAYERS[i + 1][0]
            self._base_pressures.append(self._layer_pressure(i, z_next))

    def _layer_index(self, altitude: float) -> int:
        for i in range(len(self._LAYERS) - 1):
            if altitude < self._LAYERS[i + 1][0]:
                return i
        return len(self._LAYERS) - 1

    def _layer_pressure(self, i: int, z: float) -> float:
        z_b, T_b, L = self._LAYERS[i]
        P_b = self._base_pressures[i]
        k = EARTH_SURFACE_GRAVITY * DRY_AIR_MOLAR_MASS / GAS_CONSTANT
        if L == 0:
            return P_b * np.exp(-k * (z - z_b) / T_b)
        T = T_b + L * (z - z_b)
        return P_b * (T / T_b) ** (-k / L)

    def temperature(self, altitude: np.ndarray) -> np.ndarray:
        altitude = np.asarray(altitude, dtype=float)
        result = np.zeros_like(altitude)
        for i, z in enumerate(altitude.flat):
            z_b, T_b, L = self._LAYERS[self._layer_index(z)]
            result.flat[i] = T_b + L * (z - z_b)
        return result

    def pressure(self, altitude: np.ndarray) -> np.ndarray:
        altitude = np.asarray(altitude, dtype=float)
        result = np.zeros_like(altitude)
        for i, z in enumerate(altitude.flat):
            result.flat[i] = self._layer_pressure(self._layer_index(z), z)
        return result


class TabulatedAtmosphere(AtmosphereProfile):
    """
    Atmosphere given on an altitude grid.

    Temperature and field are interpolated linearly, pressure linearly in
    its logarithm. Values outside the grid are held at the end points.

    Parameters
    ----------
    altitudes : array_like
        Monotonically increasing altitudes in meters
    temperatures : array_like
        Temperatures in Kelvin
    pressures : array_like
        Pressures in Pa (positive)
    magnetic_fields : array_like, optional
        (n, 3) local (east, north, up) fields in tesla
    """

    def __init__(self, altitudes, temperatures, pressures, magnetic_fields=None):
        self.altitudes = np.asarray(altitudes, dtype=float)
        self.temperatures = np.asarray(temperatures, dtype=float)
        self.pressures = np.asarray(pressures, dtype=float)

        n = len(self.altitudes)
        if n < 2 or np.any(np.diff(self.altitudes) <= 0):
            raise ValueError("Altitude grid must have at least two increasing levels")
        if len(self.temperatures) != n or len(self.pressures) != n:
            raise ValueError("Temperature and pressure must match the altitude grid")
        if np.any(self.pressures <= 0):
            raise ValueError("Pressures must be positive")

        if magnetic_fields is None:
            self.fields = np.zeros((n, 3))
        else:
            self.fields = np.asarray(magnetic_fields, dtype=float).reshape(n, 3)

    def temperature(self, altitude: np.ndarray) -> np.ndarray:
        return np.interp(altitude, self.altitudes, self.temperatures)

    def pressure(self, altitude: np.ndarray) -> np.ndarray:
        return np.exp(np.interp(altitude, self.altitudes, np.log(self.pressures)))

    def magnetic_field(self, altitude: float) -> Tuple[float, float, float]:
        return tuple(
            float(np.interp(altitude, self.altitudes, self.fields[:, k]))
            for k in range(3)
        )
