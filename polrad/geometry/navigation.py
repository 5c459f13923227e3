"""
Navigation Along a Ray
======================

A navigation state (Nav) is a Cartesian position, a Cartesian line of sight
and the reference ellipsoid. The Navigator operations advance a Nav along
its line of sight, either by a signed distance or onto a shell at a given
altitude, using the closed-form intersection of the ray with a
concentric ellipsoid.

Both operations are pure: they return a new Nav and never modify the old
one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

import numpy as np

from polrad.core.constants import SPEED_OF_LIGHT, SURFACE_TOLERANCE_M
from polrad.geometry.coordinates import Los, LosType, Position, PosType
from polrad.geometry.ellipsoid import Ellipsoid

logger = logging.getLogger(__name__)

# Number of scalars in a flattened Nav record
NAV_FIELD_COUNT = 9


class MovingTarget(Enum):
    """Where the shell lies relative to the ray and the direction of travel."""
    FORWARD_INSIDE = "forward_inside"
    FORWARD_OUTSIDE = "forward_outside"
    FORWARD_MISS = "forward_miss"
    BACKWARD_INSIDE = "backward_inside"
    BACKWARD_OUTSIDE = "backward_outside"
    BACKWARD_MISS = "backward_miss"
    COMPLETE_MISS = "complete_miss"


@dataclass(frozen=True)
class Intersection:
    """
    Classified ray/shell intersection.

    Attributes
    ----------
    kind : MovingTarget
        Classification of the intersection
    min_step : float
        Smaller root in meters along the unit direction (NaN on a complete miss)
    max_step : float
        Larger root in meters along the unit direction (NaN on a complete miss)
    """

    kind: MovingTarget
    min_step: float
    max_step: float

    @property
    def is_miss(self) -> bool:
        return self.kind is MovingTarget.COMPLETE_MISS


def line_ellipsoid_intersect(
    point: Sequence[float],
    direction: Sequence[float],
    ellipsoid: Ellipsoid,
    altitude: float = 0.0,
    forward: bool = True,
) -> Intersection:
    """
    Intersect a ray with the ellipsoid shell at ``altitude``.

    The shell has semi-axes ``a + altitude`` and ``b + altitude``. The roots
    are evaluated from the expanded discriminant rather than a generic
    quadratic solve.

    Parameters
    ----------
    point : sequence of float
        Cartesian start point (x, y, z) in meters
    direction : sequence of float
        Unit direction (dx, dy, dz)
    ellipsoid : Ellipsoid
        Reference ellipsoid
    altitude : float
        Shell altitude in meters
    forward : bool
        Direction of travel along ``direction``

    Returns
    -------
    Intersection
        COMPLETE_MISS when the ray does not cross the shell (a tangent ray
        does not cross it)
    """
    x0, y0, z0 = point
    dx, dy, dz = direction
    a = ellipsoid.a + altitude
    b = ellipsoid.b + altitude
    a2 = a * a
    b2 = b * b

    radicand = (
        a2 * a2 * dz * dz
        + a2 * b2 * dx * dx
        + a2 * b2 * dy * dy
        - a2 * dx * dx * z0 * z0
        + 2 * a2 * dx * dz * x0 * z0
        - a2 * dy * dy * z0 * z0
        + 2 * a2 * dy * dz * y0 * z0
        - a2 * dz * dz * x0 * x0
        - a2 * dz * dz * y0 * y0
        - b2 * dx * dx * y0 * y0
        + 2 * b2 * dx * dy * x0 * y0
        - b2 * dy * dy * x0 * x0
    )
    if not radicand > 0:
        return Intersection(MovingTarget.COMPLETE_MISS, np.nan, np.nan)

    sqr = np.sqrt(radicand)
    term = -a2 * dz * z0 - b2 * dx * x0 - b2 * dy * y0
    invden = 1 / (a2 * dz * dz + b2 * dx * dx + b2 * dy * dy)

    t0 = (term + b * sqr) * invden
    t1 = (term - b * sqr) * invden
    lo, hi = float(min(t0, t1)), float(max(t0, t1))

    # Forward from outside: the smaller root is the first crossing.
    # Forward from inside: the larger root is the exit.
    # Backward is the mirror image.
    if forward:
        if lo >= 0:
            return Intersection(MovingTarget.FORWARD_OUTSIDE, lo, hi)
        if hi < 0:
            return Intersection(MovingTarget.FORWARD_MISS, lo, hi)
        return Intersection(MovingTarget.FORWARD_INSIDE, lo, hi)
    else:
        if hi < 0:
            return Intersection(MovingTarget.BACKWARD_OUTSIDE, lo, hi)
        if lo >= 0:
            return Intersection(MovingTarget.BACKWARD_MISS, lo, hi)
        return Intersection(MovingTarget.BACKWARD_INSIDE, lo, hi)


def clamp_to_surface(distance: float, intersect: Intersection) -> float:
    """
    Limit a signed step so it never passes through the reference surface.

    Parameters
    ----------
    distance : float
        Requested signed step in meters
    intersect : Intersection
        Surface intersection classified for the sign of ``distance``

    Returns
    -------
    float
        The step, shortened to the first surface crossing if needed
    """
    kind = intersect.kind
    if kind is MovingTarget.FORWARD_OUTSIDE and distance > intersect.min_step:
        return intersect.min_step
    # A ray starting on the surface and leaving it may see its own start
    # point as an exit crossing
    if (kind is MovingTarget.FORWARD_INSIDE and distance > intersect.max_step
            and intersect.max_step > SURFACE_TOLERANCE_M):
        return intersect.max_step
    if kind is MovingTarget.BACKWARD_OUTSIDE and distance < intersect.max_step:
        return intersect.max_step
    if (kind is MovingTarget.BACKWARD_INSIDE and distance < intersect.min_step
            and intersect.min_step < -SURFACE_TOLERANCE_M):
        return intersect.min_step
    return distance


@dataclass(frozen=True)
class Nav:
    """
    Navigation state: Cartesian position, Cartesian line of sight, ellipsoid.

    Use :meth:`from_state` to build one from any representation.

    Attributes
    ----------
    position : Position
        Cartesian position carrying the elapsed-time stamp
    los : Los
        Cartesian line of sight; its magnitude is kept through stepping
    ellipsoid : Ellipsoid
        Reference ellipsoid
    """

    position: Position
    los: Los
    ellipsoid: Ellipsoid

    def __post_init__(self):
        if self.position.kind is not PosType.CARTESIAN:
            raise TypeError("Nav requires a Cartesian position, use Nav.from_state")
        if self.los.kind is not LosType.CARTESIAN:
            raise TypeError("Nav requires a Cartesian line of sight, use Nav.from_state")

    @classmethod
    def from_state(cls, position: Position, los: Los, ellipsoid: Ellipsoid) -> "Nav":
        """Collapse any Position/Los representation into a Nav."""
        return cls(
            position.to(PosType.CARTESIAN, ellipsoid),
            los.to(LosType.CARTESIAN, position, ellipsoid),
            ellipsoid,
        )

    @property
    def point(self) -> np.ndarray:
        return self.position.arr()

    @property
    def direction(self) -> np.ndarray:
        return self.los.unit()

    @property
    def time(self) -> float:
        return self.position.time

    @property
    def altitude(self) -> float:
        """Height above the reference ellipsoid in meters."""
        return self.position.altitude(self.ellipsoid)

    def geodetic(self) -> Position:
        return self.position.to(PosType.ELLIPSOIDAL, self.ellipsoid)

    def viewing_angles(self) -> Tuple[float, float]:
        """Local (zenith, azimuth) of the line of sight in degrees."""
        spherical = self.los.to(LosType.SPHERICAL, self.position, self.ellipsoid)
        return spherical.zenith, spherical.azimuth

    def intersect(self, altitude: float = 0.0, forward: bool = True) -> Intersection:
        """Intersect the line of sight with the shell at ``altitude``."""
        return line_ellipsoid_intersect(
            self.point, self.direction, self.ellipsoid, altitude, forward
        )

    def advance(self, distance: float, speed: float = SPEED_OF_LIGHT) -> "Nav":
        """Move along the line of sight without the surface check."""
        offset = Position.cartesian(*(distance * self.direction))
        position = self.position.offset(offset, self.ellipsoid)
        return Nav(position.advance_time(distance, speed), self.los, self.ellipsoid)

    def step_distance(self, distance: float, speed: float = SPEED_OF_LIGHT) -> "Nav":
        """
        Move ``distance`` meters along the line of sight.

        Negative distances move backwards. The step is shortened to the
        first crossing of the reference surface in the direction of travel.

        Parameters
        ----------
        distance : float
            Signed path distance in meters
        speed : float
            Propagation speed used to accrue elapsed time [m/s]

        Returns
        -------
        Nav
            The advanced navigation state
        """
        intersect = self.intersect(0.0, distance >= 0)
        clamped = clamp_to_surface(distance, intersect)
        if clamped != distance:
            logger.debug(
                f"Step of {distance:.3f} m clamped to {clamped:.3f} m "
                f"({intersect.kind.value})"
            )
        return self.advance(clamped, speed)

    def step_altitude(self, altitude: float, speed: float = SPEED_OF_LIGHT) -> "Nav":
        """
        Move onto the nearest crossing of the shell at ``altitude``.

        If the ray never crosses the shell the state is returned unchanged.

        Parameters
        ----------
        altitude : float
            Shell altitude in meters
        speed : float
            Propagation speed used to accrue elapsed time [m/s]

        Returns
        -------
        Nav
            The state on the shell, or this state on a complete miss
        """
        intersect = self.intersect(altitude, True)
        if intersect.is_miss:
            return self
        if abs(intersect.min_step) < abs(intersect.max_step):
            distance = intersect.min_step
        else:
            distance = intersect.max_step
        return self.advance(distance, speed)

    def reversed(self) -> "Nav":
        """The same state looking the opposite way."""
        return Nav(self.position, self.los.reversed(), self.ellipsoid)

    def with_time(self, time: float) -> "Nav":
        return Nav(self.position.with_time(time), self.los, self.ellipsoid)

    def as_fields(self) -> Tuple[float, ...]:
        """
        Flat ordered record: time, three position components, three line
        of sight components, two ellipsoid components.
        """
        p, l = self.position, self.los
        return (p.time, p.c0, p.c1, p.c2, l.c0, l.c1, l.c2) + self.ellipsoid.as_fields()

    @classmethod
    def from_fields(cls, fields: Sequence[float]) -> "Nav":
        """Inverse of :meth:`as_fields`."""
        if len(fields) != NAV_FIELD_COUNT:
            raise ValueError(
                f"A Nav record has {NAV_FIELD_COUNT} fields, got {len(fields)}"
            )
        t, x, y, z, dx, dy, dz, a, e = (float(f) for f in fields)
        return cls(
            Position.cartesian(x, y, z, t),
            Los.cartesian(dx, dy, dz),
            Ellipsoid(a, e),
        )
