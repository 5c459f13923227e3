"""
Positions and Line-of-Sight Vectors
===================================

A Position is a point in space in one of three representations (Cartesian,
Spherical or Ellipsoidal/geodetic) and a Los is a direction scaled by a
magnitude, either Cartesian or local zenith/azimuth/rate. Conversions are
exact closed-form formulas selected from explicit ``(from, to)`` matrices.

Angles are in degrees, lengths in meters, times in seconds since an epoch
chosen by the caller.

References
----------
- Zeng, H. (2013). Explicitly computing geodetic coordinates from
  Cartesian coordinates. Earth, Planets and Space 65, 291-296.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Tuple

import numpy as np

from polrad.core.constants import (
    SPEED_OF_LIGHT,
    POLE_TOLERANCE_DEG,
    DIRECTION_EPSILON,
)
from polrad.geometry.ellipsoid import Ellipsoid


class UnsupportedConversionError(NotImplementedError):
    """Raised for a representation change that has no defined formula."""
    pass


class PosType(Enum):
    """Representation tag of a Position."""
    CARTESIAN = "cartesian"
    SPHERICAL = "spherical"
    ELLIPSOIDAL = "ellipsoidal"


class LosType(Enum):
    """Representation tag of a line-of-sight vector."""
    CARTESIAN = "cartesian"
    SPHERICAL = "spherical"


_POSITION_FIELDS = {
    PosType.CARTESIAN: ("x", "y", "z"),
    PosType.SPHERICAL: ("r", "lat", "lon"),
    PosType.ELLIPSOIDAL: ("h", "lat", "lon"),
}

_LOS_FIELDS = {
    LosType.CARTESIAN: ("dx", "dy", "dz"),
    LosType.SPHERICAL: ("zenith", "azimuth", "rate"),
}


def _sind(x):
    return np.sin(np.radians(x))


def _cosd(x):
    return np.cos(np.radians(x))


@dataclass(frozen=True)
class Position:
    """
    A point in space tagged with its representation.

    Attributes
    ----------
    kind : PosType
        How the three components are interpreted
    c0, c1, c2 : float
        Components: (x, y, z), (r, lat, lon) or (h, lat, lon)
    time : float
        Timestamp in seconds
    """

    kind: PosType
    c0: float
    c1: float
    c2: float
    time: float = 0.0

    @classmethod
    def cartesian(cls, x: float, y: float, z: float, time: float = 0.0) -> "Position":
        return cls(PosType.CARTESIAN, float(x), float(y), float(z), float(time))

    @classmethod
    def spherical(cls, r: float, lat: float, lon: float, time: float = 0.0) -> "Position":
        return cls(PosType.SPHERICAL, float(r), float(lat), float(lon), float(time))

    @classmethod
    def ellipsoidal(cls, h: float, lat: float, lon: float, time: float = 0.0) -> "Position":
        return cls(PosType.ELLIPSOIDAL, float(h), float(lat), float(lon), float(time))

    def _field(self, name: str) -> float:
        fields = _POSITION_FIELDS[self.kind]
        if name not in fields:
            raise AttributeError(
                f"'{name}' is not defined for a {self.kind.value} position"
            )
        return (self.c0, self.c1, self.c2)[fields.index(name)]

    x = property(lambda self: self._field("x"))
    y = property(lambda self: self._field("y"))
    z = property(lambda self: self._field("z"))
    r = property(lambda self: self._field("r"))
    h = property(lambda self: self._field("h"))
    lat = property(lambda self: self._field("lat"))
    lon = property(lambda self: self._field("lon"))

    def arr(self) -> np.ndarray:
        """Components as an array."""
        return np.array([self.c0, self.c1, self.c2])

    def to(self, kind: PosType, ellipsoid: Ellipsoid) -> "Position":
        """Convert to another representation."""
        return convert_position(self, kind, ellipsoid)

    def altitude(self, ellipsoid: Ellipsoid) -> float:
        """Height above the ellipsoid in meters."""
        return self.to(PosType.ELLIPSOIDAL, ellipsoid).h

    def offset(self, other: "Position", ellipsoid: Ellipsoid) -> "Position":
        """
        Add the Cartesian components of ``other``.

        The result keeps this position's time and representation.
        """
        a = self.to(PosType.CARTESIAN, ellipsoid)
        b = other.to(PosType.CARTESIAN, ellipsoid)
        moved = Position.cartesian(a.c0 + b.c0, a.c1 + b.c1, a.c2 + b.c2, self.time)
        return moved.to(self.kind, ellipsoid)

    def with_time(self, time: float) -> "Position":
        return replace(self, time=float(time))

    def advance_time(self, distance: float, speed: float = SPEED_OF_LIGHT) -> "Position":
        """Add the travel time of ``|distance|`` at ``speed``."""
        return replace(self, time=self.time + abs(distance / speed))


@dataclass(frozen=True)
class Los:
    """
    Line-of-sight vector tagged with its representation.

    A Cartesian Los is (dx, dy, dz) in the body-fixed frame. A spherical Los
    is (zenith, azimuth, rate) in the local tangent frame of the position it
    is attached to; azimuth is measured from north towards east.
    """

    kind: LosType
    c0: float
    c1: float
    c2: float

    @classmethod
    def cartesian(cls, dx: float, dy: float, dz: float) -> "Los":
        return cls(LosType.CARTESIAN, float(dx), float(dy), float(dz))

    @classmethod
    def spherical(cls, zenith: float, azimuth: float, rate: float = 1.0) -> "Los":
        return cls(LosType.SPHERICAL, float(zenith), float(azimuth), float(rate))

    def _field(self, name: str) -> float:
        fields = _LOS_FIELDS[self.kind]
        if name not in fields:
            raise AttributeError(
                f"'{name}' is not defined for a {self.kind.value} line of sight"
            )
        return (self.c0, self.c1, self.c2)[fields.index(name)]

    dx = property(lambda self: self._field("dx"))
    dy = property(lambda self: self._field("dy"))
    dz = property(lambda self: self._field("dz"))
    zenith = property(lambda self: self._field("zenith"))
    azimuth = property(lambda self: self._field("azimuth"))
    rate = property(lambda self: self._field("rate"))

    def arr(self) -> np.ndarray:
        return np.array([self.c0, self.c1, self.c2])

    @property
    def norm(self) -> float:
        """Magnitude of the vector."""
        if self.kind is LosType.CARTESIAN:
            return float(np.sqrt(self.c0 ** 2 + self.c1 ** 2 + self.c2 ** 2))
        return abs(self.c2)

    def unit(self) -> np.ndarray:
        """Unit direction of a Cartesian Los."""
        if self.kind is not LosType.CARTESIAN:
            raise UnsupportedConversionError(
                "not yet supported: unit vector of a spherical line of sight "
                "without a reference position"
            )
        n = self.norm
        if n == 0:
            raise ValueError("Line of sight has zero length and no direction")
        return self.arr() / n

    def scaled(self, factor: float) -> "Los":
        if self.kind is LosType.CARTESIAN:
            return Los.cartesian(self.c0 * factor, self.c1 * factor, self.c2 * factor)
        return Los.spherical(self.c0, self.c1, self.c2 * factor)

    def reversed(self) -> "Los":
        """The opposite direction with the same magnitude."""
        if self.kind is LosType.CARTESIAN:
            return Los.cartesian(-self.c0, -self.c1, -self.c2)
        azimuth = self.c1 + 180.0
        if azimuth > 180.0:
            azimuth -= 360.0
        return Los.spherical(180.0 - self.c0, azimuth, self.c2)

    def to(self, kind: LosType, position: Position, ellipsoid: Ellipsoid) -> "Los":
        """Convert relative to the position the vector is attached to."""
        return convert_los(self, kind, position, ellipsoid)

    def as_offset(self, time: float = 0.0) -> Position:
        """Interpret a Cartesian Los as a Cartesian displacement."""
        if self.kind is not LosType.CARTESIAN:
            raise UnsupportedConversionError(
                "not yet supported: spherical line of sight to Cartesian "
                "displacement without a reference position"
            )
        return Position.cartesian(self.c0, self.c1, self.c2, time)


# =============================================================================
# Position conversions
# =============================================================================

def _identity(p: Position, ell: Ellipsoid) -> Position:
    return p


def _cartesian_from_spherical(p: Position, ell: Ellipsoid) -> Position:
    r, lat, lon = p.c0, p.c1, p.c2
    return Position.cartesian(
        r * _cosd(lat) * _cosd(lon),
        r * _cosd(lat) * _sind(lon),
        r * _sind(lat),
        p.time,
    )


def _cartesian_from_ellipsoidal(p: Position, ell: Ellipsoid) -> Position:
    h, lat, lon = p.c0, p.c1, p.c2
    N = ell.N(lat)
    return Position.cartesian(
        (N + h) * _cosd(lon) * _cosd(lat),
        (N + h) * _sind(lon) * _cosd(lat),
        (N * (1 - ell.e2) + h) * _sind(lat),
        p.time,
    )


def _spherical_from_cartesian(p: Position, ell: Ellipsoid) -> Position:
    x, y, z = p.c0, p.c1, p.c2
    r = float(np.sqrt(x * x + y * y + z * z))
    if r == 0:
        return Position.spherical(0.0, 0.0, 0.0, p.time)
    lat = np.degrees(np.arcsin(np.clip(z / r, -1.0, 1.0)))
    lon = np.degrees(np.arctan2(y, x))
    return Position.spherical(r, lat, lon, p.time)


def _ellipsoidal_from_cartesian(p: Position, ell: Ellipsoid) -> Position:
    """Zeng's closed-form geodetic solution with the polar-axis branches."""
    X, Y, Z = p.c0, p.c1, p.c2
    a = ell.a
    b = ell.b
    e2 = ell.e2
    e4 = e2 * e2

    if abs(X) > 1 / a or abs(Y) > 1 / a:
        DZ = np.sqrt(1 - e2) * Z
        r = np.hypot(X, Y)
        e2p = (a * a - b * b) / (b * b)
        F = 54 * (b * Z) ** 2
        G = r * r + DZ * DZ - e2 * (a * a - b * b)
        c = e4 * F * r * r / G ** 3
        s = np.cbrt(1 + c + np.sqrt(c * c + 2 * c))
        fP = F / (3 * (G * (s + 1 / s + 1)) ** 2)
        Q = np.sqrt(1 + 2 * e4 * fP)
        r0 = (-fP * e2 * r) / (1 + Q) + np.sqrt(
            0.5 * a * a * (1 + 1 / Q)
            - fP * DZ * DZ / (Q * (1 + Q))
            - 0.5 * fP * r * r
        )
        U = np.hypot(r - e2 * r0, Z)
        V = np.hypot(r - e2 * r0, DZ)
        z0 = b * b * Z / (a * V)
        h = U * (1 - b * b / (a * V))
        lat = np.degrees(np.arctan2(Z + e2p * z0, r))
        lon = np.degrees(np.arctan2(Y, X))
        return Position.ellipsoidal(h, lat, lon, p.time)
    elif abs(Z) < 1 / b:
        # Centre of the body
        return Position.ellipsoidal(-a, 0.0, 180.0, p.time)
    else:
        # On the polar axis
        return Position.ellipsoidal(abs(Z) - b, -90.0 if Z < 0 else 90.0, 0.0, p.time)


def _via_cartesian(
    first: Callable[[Position, Ellipsoid], Position],
    second: Callable[[Position, Ellipsoid], Position],
) -> Callable[[Position, Ellipsoid], Position]:
    def convert(p: Position, ell: Ellipsoid) -> Position:
        return second(first(p, ell), ell)
    return convert


POSITION_CONVERSIONS: Dict[Tuple[PosType, PosType], Callable[[Position, Ellipsoid], Position]] = {
    (PosType.CARTESIAN, PosType.CARTESIAN): _identity,
    (PosType.SPHERICAL, PosType.SPHERICAL): _identity,
    (PosType.ELLIPSOIDAL, PosType.ELLIPSOIDAL): _identity,
    (PosType.SPHERICAL, PosType.CARTESIAN): _cartesian_from_spherical,
    (PosType.ELLIPSOIDAL, PosType.CARTESIAN): _cartesian_from_ellipsoidal,
    (PosType.CARTESIAN, PosType.SPHERICAL): _spherical_from_cartesian,
    (PosType.CARTESIAN, PosType.ELLIPSOIDAL): _ellipsoidal_from_cartesian,
    (PosType.SPHERICAL, PosType.ELLIPSOIDAL): _via_cartesian(
        _cartesian_from_spherical, _ellipsoidal_from_cartesian
    ),
    (PosType.ELLIPSOIDAL, PosType.SPHERICAL): _via_cartesian(
        _cartesian_from_ellipsoidal, _spherical_from_cartesian
    ),
}


def convert_position(p: Position, kind: PosType, ellipsoid: Ellipsoid) -> Position:
    """
    Convert a Position to another representation.

    Parameters
    ----------
    p : Position
        Position to convert
    kind : PosType
        Target representation
    ellipsoid : Ellipsoid
        Reference ellipsoid (only used by geodetic conversions)

    Returns
    -------
    Position
        The same point and time in the requested representation

    Raises
    ------
    UnsupportedConversionError
        If no formula exists for the pair of representations
    """
    try:
        convert = POSITION_CONVERSIONS[(p.kind, kind)]
    except KeyError:
        raise UnsupportedConversionError(
            f"not yet supported: position conversion {p.kind!r} -> {kind!r}"
        ) from None
    return convert(p, ellipsoid)


# =============================================================================
# Line-of-sight conversions
# =============================================================================

def _los_identity(los: Los, p: Position, ell: Ellipsoid) -> Los:
    return los


def _los_spherical_from_cartesian(los: Los, p: Position, ell: Ellipsoid) -> Los:
    norm = los.norm
    if norm == 0:
        return Los.spherical(0.0, 0.0, 0.0)

    ps = p.to(PosType.SPHERICAL, ell)
    dx, dy, dz = los.c0, los.c1, los.c2

    if abs(ps.lat) > 90 - POLE_TOLERANCE_DEG:
        # Longitude partials diverge; use the polar frame directly
        up = dz if ps.lat > 0 else -dz
        zenith = np.degrees(np.arccos(np.clip(up / norm, -1.0, 1.0)))
        azimuth = np.degrees(np.arctan2(dy, dx))
        return Los.spherical(zenith, azimuth, norm)

    slat, clat = _sind(ps.lat), _cosd(ps.lat)
    slon, clon = _sind(ps.lon), _cosd(ps.lon)

    dr = (clat * clon * dx + slat * dz + clat * slon * dy) / norm
    dnorth = (-slat * clon * dx + clat * dz - slat * slon * dy) / norm
    deast = (-slon * dx + clon * dy) / norm

    zenith = np.degrees(np.arccos(np.clip(dr, -1.0, 1.0)))
    sza = np.sin(np.radians(zenith))
    if sza < DIRECTION_EPSILON:
        azimuth = 0.0 if dnorth >= 0 else 180.0
    else:
        azimuth = np.degrees(np.arccos(np.clip(dnorth / sza, -1.0, 1.0)))
        if deast < 0:
            azimuth = -azimuth
    return Los.spherical(zenith, azimuth, norm)


def _los_cartesian_from_spherical(los: Los, p: Position, ell: Ellipsoid) -> Los:
    norm = los.norm
    sza, cza = _sind(los.c0), _cosd(los.c0)
    saa, caa = _sind(los.c1), _cosd(los.c1)

    ps = p.to(PosType.SPHERICAL, ell)
    if abs(ps.lat) > 90 - POLE_TOLERANCE_DEG:
        return Los.cartesian(
            norm * sza * caa,
            norm * sza * saa,
            norm * (cza if ps.lat > 0 else -cza),
        )

    slat, clat = _sind(ps.lat), _cosd(ps.lat)
    slon, clon = _sind(ps.lon), _cosd(ps.lon)

    dr = cza
    dnorth = sza * caa
    deast = sza * saa

    return Los.cartesian(
        norm * (clat * clon * dr - slat * clon * dnorth - slon * deast),
        norm * (clat * slon * dr - slat * slon * dnorth + clon * deast),
        norm * (slat * dr + clat * dnorth),
    )


LOS_CONVERSIONS: Dict[Tuple[LosType, LosType], Callable[[Los, Position, Ellipsoid], Los]] = {
    (LosType.CARTESIAN, LosType.CARTESIAN): _los_identity,
    (LosType.SPHERICAL, LosType.SPHERICAL): _los_identity,
    (LosType.CARTESIAN, LosType.SPHERICAL): _los_spherical_from_cartesian,
    (LosType.SPHERICAL, LosType.CARTESIAN): _los_cartesian_from_spherical,
}


def convert_los(los: Los, kind: LosType, position: Position, ellipsoid: Ellipsoid) -> Los:
    """
    Convert a line of sight relative to the position it is attached to.

    Raises
    ------
    UnsupportedConversionError
        If no formula exists for the pair of representations
    """
    try:
        convert = LOS_CONVERSIONS[(los.kind, kind)]
    except KeyError:
        raise UnsupportedConversionError(
            f"not yet supported: line-of-sight conversion {los.kind!r} -> {kind!r}"
        ) from None
    return convert(los, position, ellipsoid)
