"""
Geodetic projection: WGS84 fix -> ECEF -> local tangent plane.

All functions here are pure and stateless. Vectors are float64 numpy arrays
of length 3.

Axis convention used by every local-frame vector in this package:
    index 0 = east, index 1 = up, index 2 = north

Downstream rotation (rotate_around_vertical) and every consumer of
PlayerUpdated rely on that ordering.

Valid only as a flat approximation within a few hundred meters of the origin.
Inputs must be finite; NaN/inf input gives an undefined numeric result and is
rejected earlier, at snapshot parsing.
"""

import math
from typing import Sequence

import numpy as np

from relpos_core.proto.snapshot import GeodeticFix

# WGS84 ellipsoid
WGS84_A = 6378137.0             # semi-major axis (m)
WGS84_E2 = 6.69437999014e-3     # first eccentricity squared

EAST = 0
UP = 1
NORTH = 2


def zero_vector() -> np.ndarray:
    """Fresh (east, up, north) zero vector."""
    return np.zeros(3)


def as_tuple(v: Sequence[float]) -> tuple:
    """Convert a 3-vector to a plain (float, float, float) tuple."""
    return (float(v[0]), float(v[1]), float(v[2]))


def geodetic_to_ecef(fix: GeodeticFix) -> np.ndarray:
    """
    Convert a geodetic fix to Earth-Centered Earth-Fixed coordinates.

    Args:
        fix: Geodetic fix (degrees, meters)

    Returns:
        (x, y, z) in meters
    """
    lat = math.radians(fix.latitude)
    lon = math.radians(fix.longitude)
    h = fix.altitude

    sin_lat = math.sin(lat)
    cos_lat = math.cos(lat)

    # Prime vertical radius of curvature
    n = WGS84_A / math.sqrt(1.0 - WGS84_E2 * sin_lat ** 2)

    return np.array([
        (n + h) * cos_lat * math.cos(lon),
        (n + h) * cos_lat * math.sin(lon),
        (n * (1.0 - WGS84_E2) + h) * sin_lat,
    ])


def enu_rotation(origin_fix: GeodeticFix) -> np.ndarray:
    """
    Rotation taking an ECEF delta into the origin's tangent plane.

    Rows are ordered east, up, north.
    """
    lat0 = math.radians(origin_fix.latitude)
    lon0 = math.radians(origin_fix.longitude)

    sin_lat, cos_lat = math.sin(lat0), math.cos(lat0)
    sin_lon, cos_lon = math.sin(lon0), math.cos(lon0)

    return np.array([
        [-sin_lon, cos_lon, 0.0],                              # east
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat],       # up
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],     # north
    ])


def ecef_to_enu(
    point_ecef: np.ndarray,
    origin_ecef: np.ndarray,
    origin_fix: GeodeticFix
) -> np.ndarray:
    """
    Project an ECEF point into the local tangent plane of an origin.

    Args:
        point_ecef: Point in ECEF (m)
        origin_ecef: Origin in ECEF (m), i.e. geodetic_to_ecef(origin_fix)
        origin_fix: Origin fix, used for the plane orientation

    Returns:
        (east, up, north) in meters
    """
    delta = np.asarray(point_ecef, dtype=float) - np.asarray(origin_ecef, dtype=float)
    return enu_rotation(origin_fix) @ delta


def geodetic_to_local(fix: GeodeticFix, origin_fix: GeodeticFix) -> np.ndarray:
    """
    Local (east, up, north) vector of fix relative to origin_fix.

    Args:
        fix: Point to project
        origin_fix: Reference point of the local frame

    Returns:
        (east, up, north) in meters
    """
    return ecef_to_enu(geodetic_to_ecef(fix), geodetic_to_ecef(origin_fix), origin_fix)


def rotate_around_vertical(v: Sequence[float], heading_degrees: float) -> np.ndarray:
    """
    Rotate a world-aligned (east, up, north) vector into a heading frame.

    heading_degrees is the compass bearing the device faces (0 = north,
    clockwise). The up component is unchanged.

    Args:
        v: (east, up, north) vector
        heading_degrees: Device heading in degrees

    Returns:
        Rotated (east', up, north') vector
    """
    theta = -heading_degrees * math.pi / 180.0
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)

    east, up, north = float(v[EAST]), float(v[UP]), float(v[NORTH])

    return np.array([
        east * cos_t + north * sin_t,
        up,
        -east * sin_t + north * cos_t,
    ])
