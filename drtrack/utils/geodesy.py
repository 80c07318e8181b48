"""Geodesic utilities.

Spherical-Earth helpers shared by the integrator, the anchor selector
and the distance calculator: the haversine great-circle distance, the
initial great-circle bearing and angle wrapping.  All functions accept
scalars or numpy arrays and broadcast.
"""

import numpy as np

EARTH_RADIUS = 6378137.0
"""Spherical Earth radius in metres (WGS84 semi-major axis)."""


def haversine_distance(lat1, lon1, lat2, lon2, radius: float = EARTH_RADIUS):
    """Compute the great‑circle distance between two points on Earth.

    Parameters
    ----------
    lat1, lon1 : float or numpy.ndarray
        Latitude and longitude of point 1 in degrees.
    lat2, lon2 : float or numpy.ndarray
        Latitude and longitude of point 2 in degrees.
    radius : float, optional
        Earth radius in metres.

    Returns
    -------
    float or numpy.ndarray
        Distance in metres.  NaN where any coordinate is NaN.
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = np.radians(np.subtract(lat2, lat1))
    dlambda = np.radians(np.subtract(lon2, lon1))
    a = np.sin(dphi / 2)**2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2)**2
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return radius * c


def initial_bearing(lat1, lon1, lat2, lon2):
    """Initial great-circle bearing from point 1 to point 2.

    Returns degrees clockwise from north in [0, 360).
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dlambda = np.radians(np.subtract(lon2, lon1))
    y = np.sin(dlambda) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlambda)
    return np.mod(np.degrees(np.arctan2(y, x)), 360.0)


def wrap_heading(angle):
    """Normalise an angle in degrees into [0, 360)."""
    return np.mod(angle, 360.0)


def wrap_offset(angle):
    """Normalise a signed angular offset in degrees into (-180, 180]."""
    wrapped = np.mod(np.asarray(angle, dtype=float) + 180.0, 360.0) - 180.0
    return np.where(wrapped == -180.0, 180.0, wrapped)
