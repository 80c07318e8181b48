"""Dead-reckoning track reconstruction with verified position correction.

The `TrackPipeline` turns heading and speed streams into a trajectory
and, given sparse verified positions, corrects the accumulated drift
segment by segment.
"""

from .config import AnchorMethod, ReckoningConfig
from .errors import (
    InsufficientAnchors,
    InvalidTimeline,
    MissingVerifiedPositions,
    TrackError,
    UndefinedCarryForward,
)
from .preprocessing import TrackInputs
from .pipeline import TrackPipeline, TrackResult

__all__ = [
    "AnchorMethod",
    "ReckoningConfig",
    "InsufficientAnchors",
    "InvalidTimeline",
    "MissingVerifiedPositions",
    "TrackError",
    "UndefinedCarryForward",
    "TrackInputs",
    "TrackPipeline",
    "TrackResult",
]
