"""Verified position correction (VPC) of a dead-reckoned track.

Consecutive anchors split the track into segments.  For every segment
the uncorrected displacement between the two anchors is compared with
the verified displacement, giving a distance factor (scale) and a
heading factor (rotation).  The rows of the segment are then
re-integrated from the first anchor's verified position with scaled
distances and rotated bearings, which lands the segment on the second
anchor's verified position.

With an unbounded track the rows past the last anchor are integrated
with the factors of the last segment.  All arrays are in processing
order; see `drtrack.reckoning.integrator.ProcessingView`.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd

from ..reckoning.integrator import DeadReckoningIntegrator, IntegrationResult, ProcessingView
from ..utils.geodesy import haversine_distance
from ..utils.logging import get_logger
from .factors import correction_factors

logger = get_logger(__name__)


@dataclass(frozen=True)
class Segment:
    """Correction applied between two anchor rows (view order)."""

    start_row: int
    end_row: int
    dist_factor: float
    head_factor: float
    bounded: bool = True
    """False for a tail segment that reuses the previous factors."""


@dataclass
class CorrectionResult:
    """Corrected positions and diagnostics in processing order."""

    lon: np.ndarray
    lat: np.ndarray
    dist_factor: np.ndarray
    head_factor: np.ndarray
    distance_before: np.ndarray
    """Distance between uncorrected track and VP, carried between anchors."""

    distance_after: np.ndarray
    """Distance between integrated corrected track and VP, carried between anchors."""

    anchors: np.ndarray
    segments: List[Segment] = field(default_factory=list)


@dataclass
class VPCCorrector:
    """Rescale and rotate dead-reckoned segments onto verified positions."""

    integrator: DeadReckoningIntegrator = field(default_factory=DeadReckoningIntegrator)
    bound: bool = True
    """Stop the corrected track at the last anchor."""

    def _integrate_rows(self, view, start, rows, segment, out_lon, out_lat):
        result = self.integrator.integrate(
            start[0],
            start[1],
            view.radial[rows] * segment.dist_factor,
            view.bearing[rows] + segment.head_factor,
            direction=view.direction,
        )
        out_lon[rows] = result.lon
        out_lat[rows] = result.lat
        return result.end

    def correct(
        self,
        view: ProcessingView,
        baseline: IntegrationResult,
        anchors: np.ndarray
    ) -> CorrectionResult:
        """Correct a track between its anchors.

        Parameters
        ----------
        view : ProcessingView
            Track in processing order, holding the verified positions.
        baseline : IntegrationResult
            Uncorrected integration of the same view.
        anchors : numpy.ndarray
            Strictly increasing view rows with at least two entries.

        Returns
        -------
        CorrectionResult
            Corrected positions, per-row factors and diagnostics.
        """
        anchors = np.asarray(anchors, dtype=int)
        if len(anchors) < 2 or np.any(np.diff(anchors) <= 0):
            raise ValueError("anchors must be strictly increasing with at least two entries")

        n = len(view)
        radius = self.integrator.earth_radius
        vp_lon, vp_lat = view.vp_lon, view.vp_lat
        lon = np.full(n, np.nan)
        lat = np.full(n, np.nan)
        dist_factor = np.full(n, np.nan)
        head_factor = np.full(n, np.nan)
        before = np.full(n, np.nan)
        after = np.full(n, np.nan)

        first = anchors[0]
        lon[first], lat[first] = vp_lon[first], vp_lat[first]
        after[first] = 0.0

        segments = []
        for a, b in zip(anchors[:-1], anchors[1:]):
            d, h = correction_factors(
                (vp_lon[a], vp_lat[a]),
                (vp_lon[b], vp_lat[b]),
                (baseline.lon[a], baseline.lat[a]),
                (baseline.lon[b], baseline.lat[b]),
                radius,
            )
            segment = Segment(int(a), int(b), d, h)
            segments.append(segment)
            rows = np.arange(a + 1, b + 1)
            end_lon, end_lat = self._integrate_rows(
                view, (vp_lon[a], vp_lat[a]), rows, segment, lon, lat
            )
            after[b] = haversine_distance(end_lat, end_lon, vp_lat[b], vp_lon[b], radius)
            # the anchor row is the verified position itself
            lon[b], lat[b] = vp_lon[b], vp_lat[b]
            dist_factor[rows] = d
            head_factor[rows] = h

        last = anchors[-1]
        if not self.bound and last < n - 1:
            previous = segments[-1]
            tail = Segment(int(last), n - 1, previous.dist_factor, previous.head_factor, bounded=False)
            segments.append(tail)
            rows = np.arange(last + 1, n)
            self._integrate_rows(view, (vp_lon[last], vp_lat[last]), rows, tail, lon, lat)
            dist_factor[rows] = tail.dist_factor
            head_factor[rows] = tail.head_factor

        dist_factor[first] = segments[0].dist_factor
        head_factor[first] = segments[0].head_factor

        before[anchors] = haversine_distance(
            baseline.lat[anchors], baseline.lon[anchors], vp_lat[anchors], vp_lon[anchors], radius
        )
        corrected = np.isfinite(lon)
        before = np.where(corrected, pd.Series(before).ffill().to_numpy(), np.nan)
        after = np.where(corrected, pd.Series(after).ffill().to_numpy(), np.nan)

        logger.info(
            "Corrected %d rows over %d segments (max anchor residual %.3g m)",
            int(corrected.sum()), len(segments), float(np.nanmax(after))
        )
        return CorrectionResult(
            lon=lon,
            lat=lat,
            dist_factor=dist_factor,
            head_factor=head_factor,
            distance_before=before,
            distance_after=after,
            anchors=anchors,
            segments=segments,
        )
