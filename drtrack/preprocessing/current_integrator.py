"""Vector composition of intrinsic motion with external current drift.

Each row is handled on its own: the displacement produced by the
object's own motion and the drift produced by the current over the
same interval are decomposed into east/north components, summed, and
turned back into a bearing and a distance.
"""

from typing import Tuple

import numpy as np

from .input_preprocessor import PreparedTrack
from ..utils.logging import get_logger

logger = get_logger(__name__)


def integrate_current(
    radial: np.ndarray,
    heading: np.ndarray,
    current_speed: np.ndarray,
    current_heading: np.ndarray,
    dt: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Combine motion and current drift per row.

    Parameters
    ----------
    radial : numpy.ndarray
        Distance covered by the object's own motion in each row (m).
    heading : numpy.ndarray
        Bearing of that motion in degrees.
    current_speed : numpy.ndarray
        Current speed in m/s.
    current_heading : numpy.ndarray
        Bearing the current flows towards, in degrees.
    dt : numpy.ndarray
        Row intervals in seconds.

    Returns
    -------
    (numpy.ndarray, numpy.ndarray)
        Integrated heading in [0, 360) and integrated radial distance.
    """
    theta = np.radians(heading)
    theta_c = np.radians(current_heading)
    drift = current_speed * dt

    east = radial * np.sin(theta) + drift * np.sin(theta_c)
    north = radial * np.cos(theta) + drift * np.cos(theta_c)

    integrated_heading = np.mod(np.degrees(np.arctan2(east, north)), 360.0)
    integrated_radial = np.hypot(east, north)
    return integrated_heading, integrated_radial


def apply_current(track: PreparedTrack) -> PreparedTrack:
    """Fill the integrated heading and radial distance of a track.

    Tracks without current data are returned unchanged.
    """
    if not track.has_current:
        return track
    track.integrated_heading, track.integrated_radial = integrate_current(
        track.radial, track.heading, track.current_speed, track.current_heading, track.dt
    )
    logger.info("Integrated current drift over %d rows", len(track))
    return track
