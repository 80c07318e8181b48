"""Exceptions raised by the reconstruction pipeline.

Every error derives from `TrackError`, which is itself a `ValueError`
so callers that already guard input validation keep working.  Only
`InsufficientAnchors` is recoverable: the pipeline catches it, falls
back to the uncorrected track and records a note on the result.
"""


class TrackError(ValueError):
    """Base class for all reconstruction errors."""


class InvalidTimeline(TrackError):
    """Timestamps go backwards or produce a non-finite interval."""


class UndefinedCarryForward(TrackError):
    """A carry-forward series starts with a gap and has no prior value."""

    def __init__(self, name: str):
        super().__init__(f"'{name}' starts with a missing value and cannot be carried forward")
        self.name = name


class MissingVerifiedPositions(TrackError):
    """A correction method was requested without verified positions."""


class InsufficientAnchors(TrackError):
    """Fewer than two usable verified positions for the requested method."""
