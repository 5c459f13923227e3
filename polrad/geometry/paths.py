"""
Propagation Paths
=================

A Path is the ordered list of navigation snapshots along one line of sight,
from the sensor (index 0) to the far boundary (last index), each carrying
the atmospheric state the radiative transfer needs.

The Nav stored in each point looks along the direction the radiation
travels, i.e. towards the sensor, and its timestamp is the time the
radiation passes that point: the boundary point is the earliest.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from polrad.atmosphere.profiles import AtmosphereProfile, AtmosphericState
from polrad.core.constants import SPEED_OF_LIGHT
from polrad.geometry.navigation import MovingTarget, Nav

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathPoint:
    """
    One point of a propagation path.

    Attributes
    ----------
    nav : Nav
        Navigation state, line of sight pointing towards the sensor
    temperature : float
        Temperature in Kelvin
    pressure : float
        Pressure in Pa
    magnetic_field : tuple of float
        Local (east, north, up) magnetic field in tesla
    """

    nav: Nav
    temperature: float
    pressure: float
    magnetic_field: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def from_state(cls, nav: Nav, state: AtmosphericState) -> "PathPoint":
        return cls(nav, state.temperature, state.pressure, tuple(state.magnetic_field))

    @property
    def time(self) -> float:
        return self.nav.time

    @property
    def altitude(self) -> float:
        return self.nav.altitude

    def viewing_angles(self) -> Tuple[float, float]:
        """Local (zenith, azimuth) of the sensor's viewing direction."""
        return self.nav.reversed().viewing_angles()

    @property
    def los_zenith(self) -> float:
        return self.viewing_angles()[0]

    @property
    def los_azimuth(self) -> float:
        return self.viewing_angles()[1]

    def distance_to(self, other: "PathPoint") -> float:
        return float(np.linalg.norm(self.nav.point - other.nav.point))


class Path(Sequence):
    """
    Ordered path points, index 0 at the sensor.

    Parameters
    ----------
    points : sequence of PathPoint
        At least one point
    """

    def __init__(self, points: Sequence[PathPoint]):
        if len(points) == 0:
            raise ValueError("A path needs at least one point")
        self._points = tuple(points)

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index):
        return self._points[index]

    def __iter__(self) -> Iterator[PathPoint]:
        return iter(self._points)

    @property
    def sensor(self) -> PathPoint:
        return self._points[0]

    @property
    def boundary(self) -> PathPoint:
        return self._points[-1]

    @property
    def distances(self) -> np.ndarray:
        """Length of each segment (i, i+1) in meters."""
        return np.array([
            self._points[i].distance_to(self._points[i + 1])
            for i in range(len(self._points) - 1)
        ])

    @property
    def times(self) -> np.ndarray:
        return np.array([p.time for p in self._points])

    @property
    def altitudes(self) -> np.ndarray:
        return np.array([p.altitude for p in self._points])

    def is_time_ordered(self) -> bool:
        """True if time never decreases from the boundary to the sensor."""
        return bool(np.all(np.diff(self.times) <= 0))


def _ray_extent(sensor: Nav, top_altitude: float) -> Optional[Tuple[float, float]]:
    """Distances along the viewing ray where it is inside the atmosphere."""
    top = sensor.intersect(top_altitude, True)

    if sensor.altitude > top_altitude:
        if top.kind is not MovingTarget.FORWARD_OUTSIDE:
            return None
        start, end = top.min_step, top.max_step
    elif top.kind is MovingTarget.FORWARD_INSIDE:
        start, end = 0.0, top.max_step
    else:
        start, end = 0.0, 0.0

    surface = sensor.intersect(0.0, True)
    if surface.kind is MovingTarget.FORWARD_OUTSIDE and surface.min_step < end:
        logger.debug(f"Line of sight reaches the surface at {surface.min_step:.1f} m")
        end = max(surface.min_step, start)

    return start, end


def trace_path(
    sensor: Nav,
    atmosphere: AtmosphereProfile,
    top_altitude: float = 100e3,
    step_length: float = 1e3,
    speed: float = SPEED_OF_LIGHT,
    max_points: int = 100000,
) -> Path:
    """
    Trace the line of sight of a sensor through the atmosphere.

    The part of the ray between the top-of-atmosphere shell (or the sensor,
    if it is inside the atmosphere) and the first of the far shell crossing
    and the surface is sampled uniformly.

    Parameters
    ----------
    sensor : Nav
        Sensor state; its line of sight is the viewing direction and its
        timestamp is the observation time
    atmosphere : AtmosphereProfile
        Source of temperature, pressure and magnetic field
    top_altitude : float
        Top of the atmosphere in meters
    step_length : float
        Maximum distance between consecutive points in meters
    speed : float
        Propagation speed [m/s]
    max_points : int
        Refuse to build longer paths

    Returns
    -------
    path : Path
        Points from the sensor (index 0) to the far boundary; a single
        point if the sensor looks past the atmosphere
    """
    if step_length <= 0:
        raise ValueError(f"step_length must be positive, got {step_length}")

    extent = _ray_extent(sensor, top_altitude)
    navs = [sensor]
    n_outside = 1
    if extent is not None:
        start, end = extent
        n_segments = int(np.ceil((end - start) / step_length - 1e-9)) if end > start else 0
        n_outside = 1 if start > 0 else 0
        n_points = n_segments + 1 + n_outside
        if n_points > max_points:
            raise ValueError(
                f"Path would need {n_points} points, more than max_points={max_points}"
            )

        nav = sensor
        if start > 0:
            nav = sensor.step_altitude(top_altitude, speed)
            navs.append(nav)
        step = (end - start) / n_segments if n_segments else 0.0
        for _ in range(n_segments):
            nav = nav.step_distance(step, speed)
            navs.append(nav)

    # Stepping accrues travel time away from the sensor; the radiation
    # passes each point that much earlier
    t0 = sensor.time
    points: List[PathPoint] = []
    for i, nav in enumerate(navs):
        nav = nav.reversed().with_time(t0 - (nav.time - t0))
        if i < n_outside:
            # Outside the atmosphere: no absorbing gas
            state = AtmosphericState(
                temperature=float(atmosphere.temperature(np.array([top_altitude]))[0]),
                pressure=0.0,
                magnetic_field=atmosphere.magnetic_field(top_altitude),
            )
        else:
            state = atmosphere.state(nav.altitude)
        points.append(PathPoint.from_state(nav, state))

    logger.debug(
        f"Traced path with {len(points)} points over {points[0].distance_to(points[-1]):.1f} m"
    )
    return Path(points)


def trace_rays(sensors: Sequence[Nav], atmosphere: AtmosphereProfile, **kwargs) -> List[Path]:
    """Trace independent sensor pointings; keyword arguments go to trace_path."""
    return [trace_path(sensor, atmosphere, **kwargs) for sensor in sensors]
