"""Dead-reckoning integration on a spherical Earth.

The `DeadReckoningIntegrator` folds per-row displacements (a distance
and a bearing) into a sequence of longitude/latitude positions.  Each
position depends on the previous one, so the fold is strictly
sequential.

Backward integration (from a known end point towards the start) does
not get its own algorithm.  A `ProcessingView` presents the aligned
arrays of a track in processing order, which is reversed and shifted
by one row when integrating backwards, and the integrator subtracts
each displacement instead of adding it.  Results are mapped back to
the original row order with `ProcessingView.to_original`.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..preprocessing.input_preprocessor import PreparedTrack
from ..utils.geodesy import EARTH_RADIUS


@dataclass
class IntegrationResult:
    """Positions and distances produced by one integration run."""

    lon: np.ndarray
    lat: np.ndarray
    cumulative_2d: np.ndarray
    """Running sum of the integrated distances."""

    @property
    def end(self):
        """Terminal (lon, lat) state."""
        return float(self.lon[-1]), float(self.lat[-1])


@dataclass
class DeadReckoningIntegrator:
    """Integrate distances and bearings into positions."""

    earth_radius: float = EARTH_RADIUS
    """Spherical Earth radius in metres."""

    def step(self, lon: float, lat: float, radial: float, bearing: float, direction: int = 1):
        """Apply a single displacement to a position.

        Parameters
        ----------
        lon, lat : float
            Current position in degrees.
        radial : float
            Distance in metres.
        bearing : float
            Bearing in degrees clockwise from north.
        direction : int, optional
            +1 to move along the bearing, -1 to undo the displacement.

        Returns
        -------
        (float, float)
            New (lon, lat).
        """
        theta = math.radians(bearing)
        dlat = math.degrees(radial * math.cos(theta) / self.earth_radius)
        dlon = math.degrees(
            radial * math.sin(theta) / (self.earth_radius * math.cos(math.radians(lat)))
        )
        return lon + direction * dlon, lat + direction * dlat

    def integrate(
        self,
        start_lon: float,
        start_lat: float,
        radial: np.ndarray,
        bearing: np.ndarray,
        direction: int = 1
    ) -> IntegrationResult:
        """Fold displacements into positions.

        Element ``i`` of ``radial``/``bearing`` moves the state from
        position ``i - 1`` (or the start for ``i = 0``) to position ``i``.

        Parameters
        ----------
        start_lon, start_lat : float
            Seed position in degrees.
        radial : numpy.ndarray
            Distances in metres.
        bearing : numpy.ndarray
            Bearings in degrees.
        direction : int, optional
            +1 for forward integration, -1 for backward integration.

        Returns
        -------
        IntegrationResult
            Positions and cumulative distance.
        """
        if direction not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        radial = np.asarray(radial, dtype=float)
        bearing = np.asarray(bearing, dtype=float)
        if radial.shape != bearing.shape or radial.ndim != 1:
            raise ValueError("radial and bearing must be one-dimensional and aligned")

        n = len(radial)
        lon = np.empty(n)
        lat = np.empty(n)
        cur_lon, cur_lat = float(start_lon), float(start_lat)
        for i in range(n):
            cur_lon, cur_lat = self.step(cur_lon, cur_lat, radial[i], bearing[i], direction)
            lon[i] = cur_lon
            lat[i] = cur_lat

        return IntegrationResult(lon=lon, lat=lat, cumulative_2d=np.cumsum(radial))


def _shifted(values: np.ndarray) -> np.ndarray:
    """Reverse per-step values and delay them by one row."""
    out = np.zeros_like(values)
    out[1:] = values[::-1][:-1]
    return out


@dataclass
class ProcessingView:
    """Aligned per-row arrays in processing order.

    In forward mode this is the track itself.  In backward mode rows are
    reversed and per-step quantities are shifted so that element ``k``
    describes the displacement between view rows ``k - 1`` and ``k``.
    Verified positions carry the seed coordinate at view row 0.
    """

    order: np.ndarray
    """Original row index of each view row."""

    direction: int
    seconds: np.ndarray
    dt: np.ndarray
    radial: np.ndarray
    bearing: np.ndarray
    marked_event: np.ndarray
    start_lon: float
    start_lat: float
    vp_lon: Optional[np.ndarray] = None
    vp_lat: Optional[np.ndarray] = None

    @classmethod
    def from_track(cls, track: PreparedTrack, outgoing: bool = True) -> "ProcessingView":
        """Build the processing view of a prepared track."""
        n = len(track)
        if outgoing:
            order = np.arange(n)
            seconds = track.seconds
            dt = track.dt
            radial = track.step_radial
            bearing = track.step_heading
        else:
            order = np.arange(n)[::-1]
            seconds = track.seconds[-1] - track.seconds[::-1]
            dt = _shifted(track.dt)
            radial = _shifted(track.step_radial)
            bearing = _shifted(track.step_heading)

        vp_lon = vp_lat = None
        if track.has_vp:
            vp_lon = track.vp_lon[order].copy()
            vp_lat = track.vp_lat[order].copy()
            vp_lon[0] = track.start_lon
            vp_lat[0] = track.start_lat

        return cls(
            order=order,
            direction=1 if outgoing else -1,
            seconds=np.asarray(seconds, dtype=float),
            dt=np.asarray(dt, dtype=float),
            radial=np.asarray(radial, dtype=float),
            bearing=np.asarray(bearing, dtype=float),
            marked_event=track.marked_event[order],
            start_lon=track.start_lon,
            start_lat=track.start_lat,
            vp_lon=vp_lon,
            vp_lat=vp_lat,
        )

    def __len__(self) -> int:
        return len(self.order)

    def to_original(self, values: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Map a per-row array from view order back to original order."""
        if values is None:
            return None
        values = np.asarray(values)
        out = np.empty_like(values)
        out[self.order] = values
        return out

    def integrate(self, integrator: DeadReckoningIntegrator) -> IntegrationResult:
        """Run the uncorrected integration over the whole view."""
        return integrator.integrate(
            self.start_lon,
            self.start_lat,
            self.radial,
            self.bearing,
            direction=self.direction,
        )
