"""Utility functions for the track reconstruction pipeline."""

from .logging import get_logger
from .config import load_config
from .geodesy import (
    EARTH_RADIUS,
    haversine_distance,
    initial_bearing,
    wrap_heading,
    wrap_offset,
)

__all__ = [
    "get_logger",
    "load_config",
    "EARTH_RADIUS",
    "haversine_distance",
    "initial_bearing",
    "wrap_heading",
    "wrap_offset",
]
