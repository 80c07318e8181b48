"""Distance and speed metrics for a sequence of positions.

Distances between consecutive positions are great-circle distances.
Rows without a position (NaN) get NaN distances and add nothing to the
cumulative sums.
"""

from typing import Dict, Optional

import numpy as np

from ..utils.geodesy import EARTH_RADIUS, haversine_distance


def safe_speed(distance: np.ndarray, dt: np.ndarray) -> np.ndarray:
    """Divide distance by time, returning 0 where ``dt`` is 0."""
    distance = np.asarray(distance, dtype=float)
    dt = np.asarray(dt, dtype=float)
    speed = np.zeros_like(distance)
    np.divide(distance, dt, out=speed, where=dt > 0)
    return np.where(np.isnan(distance), np.nan, speed)


def _cumulative(distance: np.ndarray, valid: np.ndarray) -> np.ndarray:
    cumulative = np.cumsum(np.nan_to_num(distance, nan=0.0))
    return np.where(valid, cumulative, np.nan)


def compute_track_metrics(
    lon: np.ndarray,
    lat: np.ndarray,
    dt: np.ndarray,
    elevation: Optional[np.ndarray] = None,
    prefix: str = "DR",
    radius: float = EARTH_RADIUS
) -> Dict[str, np.ndarray]:
    """Compute per-row distances and speeds of a trajectory.

    Parameters
    ----------
    lon, lat : numpy.ndarray
        Positions in degrees, NaN where undefined.
    dt : numpy.ndarray
        Row intervals in seconds.
    elevation : numpy.ndarray, optional
        Elevation in metres; enables the 3D metrics.
    prefix : str, optional
        Column name prefix, e.g. ``"DR"`` or ``"DRc"``.
    radius : float, optional
        Earth radius in metres.

    Returns
    -------
    dict
        Mapping of column name to array: ``<prefix>.distance.2D``,
        ``.cumulative.distance.2D``, ``.dist.from.start.2D``,
        ``.speed.2D`` and the 3D counterparts when elevation is given.
    """
    lon = np.asarray(lon, dtype=float)
    lat = np.asarray(lat, dtype=float)
    valid = np.isfinite(lon) & np.isfinite(lat)

    distance_2d = np.full(len(lon), np.nan)
    if len(lon):
        distance_2d[1:] = haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:], radius)
        distance_2d[0] = 0.0 if valid[0] else np.nan
        # first defined position after a gap starts from zero
        restart = valid & ~np.roll(valid, 1)
        distance_2d[restart] = 0.0

    metrics = {}
    metrics[f"{prefix}.distance.2D"] = distance_2d
    metrics[f"{prefix}.cumulative.distance.2D"] = _cumulative(distance_2d, valid)

    origin = int(np.argmax(valid)) if valid.any() else 0
    from_start = haversine_distance(lat[origin], lon[origin], lat, lon, radius)
    metrics[f"{prefix}.dist.from.start.2D"] = np.where(valid, from_start, np.nan)
    metrics[f"{prefix}.speed.2D"] = safe_speed(distance_2d, dt)

    if elevation is not None:
        elevation = np.asarray(elevation, dtype=float)
        dz = np.diff(elevation, prepend=elevation[:1])
        distance_3d = np.sqrt(distance_2d**2 + dz**2)
        metrics[f"{prefix}.distance.3D"] = distance_3d
        metrics[f"{prefix}.cumulative.distance.3D"] = _cumulative(distance_3d, valid)
        dz_start = elevation - elevation[origin] if len(elevation) else elevation
        metrics[f"{prefix}.dist.from.start.3D"] = np.where(
            valid, np.sqrt(from_start**2 + dz_start**2), np.nan
        )
        metrics[f"{prefix}.speed.3D"] = safe_speed(distance_3d, dt)

    return metrics


def compute_stride_metrics(
    lon: np.ndarray,
    lat: np.ndarray,
    seconds: np.ndarray,
    dist_step: int = 1,
    prefix: str = "VP",
    radius: float = EARTH_RADIUS
) -> Dict[str, np.ndarray]:
    """Distances between sparse positions taken every ``dist_step`` fixes.

    Only rows holding a position take part.  Every ``dist_step``-th fix
    (counting from the first) is measured against the previous measured
    fix; the distance and speed are reported on that row and 0 on the
    rows in between.

    Returns
    -------
    dict
        ``<prefix>.seconds`` (time since the previous fix),
        ``<prefix>.distance.2D``, ``.cumulative.distance.2D`` and
        ``.speed.2D``.
    """
    lon = np.asarray(lon, dtype=float)
    lat = np.asarray(lat, dtype=float)
    seconds = np.asarray(seconds, dtype=float)
    n = len(lon)
    rows = np.flatnonzero(np.isfinite(lon) & np.isfinite(lat))

    fix_seconds = np.zeros(n)
    distance = np.zeros(n)
    speed = np.zeros(n)
    if len(rows):
        fix_seconds[rows[1:]] = np.diff(seconds[rows])
        measured = rows[::dist_step]
        if len(measured) > 1:
            prev, cur = measured[:-1], measured[1:]
            distance[cur] = haversine_distance(lat[prev], lon[prev], lat[cur], lon[cur], radius)
            speed[cur] = safe_speed(distance[cur], seconds[cur] - seconds[prev])

    return {
        f"{prefix}.seconds": fix_seconds,
        f"{prefix}.distance.2D": distance,
        f"{prefix}.cumulative.distance.2D": np.cumsum(distance),
        f"{prefix}.speed.2D": speed,
    }
