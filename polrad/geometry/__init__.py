"""
Geometry Module
===============

Exact geodetic geometry for line-of-sight propagation above a reference
ellipsoid:

- Ellipsoid shape and radii of curvature
- Position and line-of-sight representations with closed-form conversions
- Ray/ellipsoid intersection and the Navigator stepping operations
- Propagation paths from the sensor to the far boundary

References
----------
- Zeng, H. (2013). Explicitly computing geodetic coordinates from
  Cartesian coordinates. Earth, Planets and Space 65, 291-296.
"""

from polrad.geometry.ellipsoid import Ellipsoid, WGS84
from polrad.geometry.coordinates import (
    PosType,
    LosType,
    Position,
    Los,
    UnsupportedConversionError,
    POSITION_CONVERSIONS,
    LOS_CONVERSIONS,
    convert_position,
    convert_los,
)
from polrad.geometry.navigation import (
    MovingTarget,
    Intersection,
    Nav,
    line_ellipsoid_intersect,
)
from polrad.geometry.paths import (
    PathPoint,
    Path,
    trace_path,
    trace_rays,
)

__all__ = [
    # Ellipsoid
    "Ellipsoid",
    "WGS84",
    # Coordinates
    "PosType",
    "LosType",
    "Position",
    "Los",
    "UnsupportedConversionError",
    "POSITION_CONVERSIONS",
    "LOS_CONVERSIONS",
    "convert_position",
    "convert_los",
    # Navigation
    "MovingTarget",
    "Intersection",
    "Nav",
    "line_ellipsoid_intersect",
    # Paths
    "PathPoint",
    "Path",
    "trace_path",
    "trace_rays",
]
