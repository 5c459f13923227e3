"""
Reference Ellipsoid
===================

Shape of the reference body. Every geometric evaluation in the package is
done against an Ellipsoid passed by value.
"""

from dataclasses import dataclass

import numpy as np

from polrad.core.constants import WGS84_SEMI_MAJOR_AXIS, WGS84_ECCENTRICITY


@dataclass(frozen=True)
class Ellipsoid:
    """
    Ellipsoid of revolution.

    Attributes
    ----------
    a : float
        Equatorial radius in meters
    e : float
        First eccentricity, 0 <= e < 1
    """

    a: float
    e: float

    def __post_init__(self):
        if not self.a > 0:
            raise ValueError(f"Equatorial radius must be positive, got {self.a}")
        if not 0 <= self.e < 1:
            raise ValueError(f"Eccentricity must be in [0, 1), got {self.e}")

    @property
    def e2(self) -> float:
        """Squared eccentricity."""
        return self.e * self.e

    @property
    def b(self) -> float:
        """Polar radius in meters."""
        return self.a * np.sqrt(1 - self.e2)

    def N(self, lat: float) -> float:
        """
        Prime vertical radius of curvature.

        Parameters
        ----------
        lat : float
            Geodetic latitude in degrees

        Returns
        -------
        N : float
            Radius of curvature in meters
        """
        s = np.sin(np.radians(lat))
        return self.a / np.sqrt(1 - self.e2 * s * s)

    def as_fields(self) -> tuple:
        """Ordered (a, e) pair."""
        return (self.a, self.e)


WGS84 = Ellipsoid(WGS84_SEMI_MAJOR_AXIS, WGS84_ECCENTRICITY)
