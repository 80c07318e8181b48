"""Verified position correction.

Anchor selection strategies and the segment-wise corrector that pulls
a dead-reckoned track onto its verified positions.
"""

from .factors import correction_factors
from .anchor_selector import (
    ANCHOR_SELECTORS,
    AnchorSelector,
    AllSelector,
    DivideSelector,
    TimeDistSelector,
    CumDistSelector,
    TimeDistCorrFacSelector,
    VPCandidates,
    select_anchors,
)
from .vpc_corrector import CorrectionResult, Segment, VPCCorrector

__all__ = [
    "correction_factors",
    "ANCHOR_SELECTORS",
    "AnchorSelector",
    "AllSelector",
    "DivideSelector",
    "TimeDistSelector",
    "CumDistSelector",
    "TimeDistCorrFacSelector",
    "VPCandidates",
    "select_anchors",
    "CorrectionResult",
    "Segment",
    "VPCCorrector",
]
