"""Correction factors of a dead-reckoned segment."""

from typing import Tuple

from ..utils.geodesy import EARTH_RADIUS, haversine_distance, initial_bearing, wrap_offset

Position = Tuple[float, float]


def correction_factors(
    vp_start: Position,
    vp_end: Position,
    dr_start: Position,
    dr_end: Position,
    radius: float = EARTH_RADIUS
) -> Tuple[float, float]:
    """Scale and rotation mapping a DR displacement onto a VP displacement.

    Parameters
    ----------
    vp_start, vp_end : (lon, lat)
        Verified positions bounding the segment.
    dr_start, dr_end : (lon, lat)
        Uncorrected positions at the same rows.
    radius : float, optional
        Earth radius in metres.

    Returns
    -------
    (float, float)
        Distance correction factor (ratio of the VP to the DR
        great-circle displacement) and heading correction factor
        (signed degrees in (-180, 180]).  A segment without DR
        displacement gets factors (1, 0).
    """
    vp_distance = haversine_distance(vp_start[1], vp_start[0], vp_end[1], vp_end[0], radius)
    dr_distance = haversine_distance(dr_start[1], dr_start[0], dr_end[1], dr_end[0], radius)
    if not dr_distance > 0:
        return 1.0, 0.0
    dist_factor = float(vp_distance / dr_distance)
    if not vp_distance > 0:
        return dist_factor, 0.0
    vp_bearing = initial_bearing(vp_start[1], vp_start[0], vp_end[1], vp_end[0])
    dr_bearing = initial_bearing(dr_start[1], dr_start[0], dr_end[1], dr_end[0])
    return dist_factor, float(wrap_offset(vp_bearing - dr_bearing))
