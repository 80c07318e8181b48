"""Under-sampling of verified positions into correction anchors.

Verified positions (VPs) are usually far denser and noisier than what
a drift correction needs.  An anchor selector picks the subset of VP
rows that will bound the correction segments.  Five strategies exist,
one class each, all sharing the `AnchorSelector.select` contract:

``All``
    every usable VP.
``Divide``
    ``thresh_t + 1`` pieces of equal VP count.
``Time_Dist``
    the next VP once enough time has elapsed and the straight-line
    distance from the previous anchor is large enough.
``Cum.Dist``
    as ``Time_Dist`` with the distance measured along the VP path.
``Time_Dist_Corr.Fac``
    among the VPs of a time window, the one needing the smallest
    correction of the uncorrected track.

The strategies are registered in `ANCHOR_SELECTORS`; `select_anchors`
is the only dispatch point.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Type

import numpy as np

from ..config import AnchorMethod, ReckoningConfig
from ..errors import InsufficientAnchors
from ..reckoning.integrator import IntegrationResult, ProcessingView
from ..utils.geodesy import haversine_distance
from .factors import correction_factors


@dataclass
class VPCandidates:
    """Usable verified positions, in processing order."""

    rows: np.ndarray
    """View row of each candidate."""

    lon: np.ndarray
    lat: np.ndarray
    seconds: np.ndarray
    dr_lon: np.ndarray
    """Uncorrected longitude at each candidate row."""

    dr_lat: np.ndarray

    def __len__(self) -> int:
        return len(self.rows)

    @classmethod
    def from_view(
        cls,
        view: ProcessingView,
        baseline: IntegrationResult,
        vp_me: bool = False
    ) -> "VPCandidates":
        """Collect candidates from a processing view.

        Rows without both VP coordinates are skipped.  With ``vp_me``
        rows whose movement flag is <= 0 are skipped as well, except the
        seed row which always carries the supplied coordinate.
        """
        if view.vp_lon is None or view.vp_lat is None:
            raise ValueError("processing view holds no verified positions")
        mask = np.isfinite(view.vp_lon) & np.isfinite(view.vp_lat)
        if vp_me:
            mask &= view.marked_event > 0
        mask[0] = True
        rows = np.flatnonzero(mask)
        return cls(
            rows=rows,
            lon=view.vp_lon[rows],
            lat=view.vp_lat[rows],
            seconds=view.seconds[rows],
            dr_lon=baseline.lon[rows],
            dr_lat=baseline.lat[rows],
        )

    def distance(self, i: int, j: int, radius: float) -> float:
        """Great-circle distance between candidates ``i`` and ``j``."""
        return float(haversine_distance(self.lat[i], self.lon[i], self.lat[j], self.lon[j], radius))

    def elapsed(self, i: int, j: int) -> float:
        return float(self.seconds[j] - self.seconds[i])


class AnchorSelector:
    """Common contract of the anchor selection strategies.

    Subclasses implement `pick`, which returns candidate positions
    (indices into `VPCandidates`) starting with 0.  `select` adds the
    final candidate when the track is bounded, checks the result and
    converts it to view rows.
    """

    method: AnchorMethod

    def pick(self, candidates: VPCandidates, config: ReckoningConfig) -> List[int]:
        raise NotImplementedError

    def select(self, candidates: VPCandidates, config: ReckoningConfig) -> np.ndarray:
        """Return the strictly increasing view rows used as anchors.

        Raises
        ------
        InsufficientAnchors
            If fewer than two candidates exist or fewer than two anchors
            were selected.
        """
        if len(candidates) < 2:
            raise InsufficientAnchors(
                f"{self.method.value} needs at least 2 verified positions, found {len(candidates)}"
            )
        picks = list(self.pick(candidates, config))
        if config.bound and picks[-1] != len(candidates) - 1:
            picks.append(len(candidates) - 1)
        picks = np.unique(np.asarray(picks, dtype=int))
        if len(picks) < 2:
            raise InsufficientAnchors(f"{self.method.value} retained fewer than 2 anchors")
        return candidates.rows[picks]


class AllSelector(AnchorSelector):
    """Use every usable verified position."""

    method = AnchorMethod.ALL

    def pick(self, candidates, config):
        return list(range(len(candidates)))


class DivideSelector(AnchorSelector):
    """Split the candidates into ``thresh_t + 1`` pieces of equal count."""

    method = AnchorMethod.DIVIDE

    def pick(self, candidates, config):
        m = len(candidates)
        pieces = min(int(config.thresh_t), m - 1) + 1
        bounds = (np.arange(pieces) * m) // pieces
        return list(bounds) + [m - 1]


class TimeDistSelector(AnchorSelector):
    """Retain a candidate once both the time and distance gates open.

    The time gate compares elapsed seconds since the last anchor with
    ``thresh_t``.  The distance gate compares the straight-line distance
    from the last anchor with ``thresh_d``; it is only evaluated every
    ``dist_step`` candidates.  A threshold of 0 disables its gate and
    both counters restart at each retained anchor.
    """

    method = AnchorMethod.TIME_DIST

    def time_ok(self, candidates: VPCandidates, anchor: int, j: int, config: ReckoningConfig) -> bool:
        return config.thresh_t <= 0 or candidates.elapsed(anchor, j) >= config.thresh_t

    def distance_since(
        self,
        candidates: VPCandidates,
        anchor: int,
        j: int,
        config: ReckoningConfig
    ) -> Optional[float]:
        if (j - anchor) % config.dist_step:
            return None
        return candidates.distance(anchor, j, config.earth_radius)

    def gate(self, candidates: VPCandidates, anchor: int, j: int, config: ReckoningConfig) -> bool:
        if not self.time_ok(candidates, anchor, j, config):
            return False
        if config.thresh_d <= 0:
            return True
        distance = self.distance_since(candidates, anchor, j, config)
        return distance is not None and distance >= config.thresh_d

    def pick(self, candidates, config):
        picks = [0]
        for j in range(1, len(candidates)):
            if self.gate(candidates, picks[-1], j, config):
                picks.append(j)
        return picks


class CumDistSelector(TimeDistSelector):
    """Like `TimeDistSelector`, gating on accumulated path distance."""

    method = AnchorMethod.CUM_DIST

    def pick(self, candidates, config):
        picks = [0]
        travelled = 0.0
        measured = 0
        for j in range(1, len(candidates)):
            anchor = picks[-1]
            if (j - anchor) % config.dist_step == 0:
                travelled += candidates.distance(measured, j, config.earth_radius)
                measured = j
            if not self.time_ok(candidates, anchor, j, config):
                continue
            if config.thresh_d <= 0 or travelled >= config.thresh_d:
                picks.append(j)
                travelled = 0.0
                measured = j
        return picks


class TimeDistCorrFacSelector(TimeDistSelector):
    """Pick, within each time window, the candidate needing least correction.

    From the last anchor, the first candidate passing the `Time_Dist`
    gates opens a window of ``span`` seconds.  Every gated candidate in
    the window is scored by the magnitude of the correction it would
    imply for the uncorrected track: ``|1 - distance factor|``, plus
    ``|heading factor| / 180`` when ``dist_head_corr`` is set.  The
    lowest score becomes the next anchor.
    """

    method = AnchorMethod.TIME_DIST_CORR_FAC

    def score(self, candidates: VPCandidates, anchor: int, j: int, config: ReckoningConfig) -> float:
        """Correction magnitude implied by anchoring at candidate ``j``.

        A candidate without DR displacement since the anchor cannot
        measure the drift; it scores ``inf`` unless the VP did not move
        either.
        """
        dr_moved = haversine_distance(
            candidates.dr_lat[anchor], candidates.dr_lon[anchor],
            candidates.dr_lat[j], candidates.dr_lon[j], config.earth_radius
        ) > 0
        if not dr_moved:
            return 0.0 if candidates.distance(anchor, j, config.earth_radius) == 0 else np.inf
        dist_factor, head_factor = correction_factors(
            (candidates.lon[anchor], candidates.lat[anchor]),
            (candidates.lon[j], candidates.lat[j]),
            (candidates.dr_lon[anchor], candidates.dr_lat[anchor]),
            (candidates.dr_lon[j], candidates.dr_lat[j]),
            config.earth_radius,
        )
        score = abs(1.0 - dist_factor)
        if config.dist_head_corr:
            score += abs(head_factor) / 180.0
        return score

    def pick(self, candidates, config):
        m = len(candidates)
        picks = [0]
        while True:
            anchor = picks[-1]
            first = next(
                (j for j in range(anchor + 1, m) if self.gate(candidates, anchor, j, config)),
                None,
            )
            if first is None:
                break
            window_end = candidates.seconds[first] + config.span
            best, best_score = first, self.score(candidates, anchor, first, config)
            j = first + 1
            while j < m and candidates.seconds[j] <= window_end:
                if self.gate(candidates, anchor, j, config):
                    score = self.score(candidates, anchor, j, config)
                    if score < best_score:
                        best, best_score = j, score
                j += 1
            picks.append(best)
        return picks


ANCHOR_SELECTORS: Dict[AnchorMethod, Type[AnchorSelector]] = {
    AnchorMethod.ALL: AllSelector,
    AnchorMethod.DIVIDE: DivideSelector,
    AnchorMethod.TIME_DIST: TimeDistSelector,
    AnchorMethod.CUM_DIST: CumDistSelector,
    AnchorMethod.TIME_DIST_CORR_FAC: TimeDistCorrFacSelector,
}


def select_anchors(candidates: VPCandidates, config: ReckoningConfig) -> np.ndarray:
    """Run the selector configured by ``config.method``."""
    if config.method is None:
        raise ValueError("no anchor method configured")
    return ANCHOR_SELECTORS[config.method]().select(candidates, config)
