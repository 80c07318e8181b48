"""Preprocessing package.

This package prepares raw motion-sensor recordings for integration.
It validates and aligns the input arrays, scales and gates speed, and
optionally folds external current drift into each row's displacement.
"""

from .input_preprocessor import (
    InputPreprocessor,
    PreparedTrack,
    TrackInputs,
    carry_forward,
    elapsed_seconds,
)
from .current_integrator import apply_current, integrate_current

__all__ = [
    "InputPreprocessor",
    "PreparedTrack",
    "TrackInputs",
    "carry_forward",
    "elapsed_seconds",
    "apply_current",
    "integrate_current",
]
