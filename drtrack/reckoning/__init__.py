"""Dead-reckoning integration and track metrics."""

from .integrator import DeadReckoningIntegrator, IntegrationResult, ProcessingView
from .distance_calculator import compute_stride_metrics, compute_track_metrics, safe_speed

__all__ = [
    "DeadReckoningIntegrator",
    "IntegrationResult",
    "ProcessingView",
    "compute_stride_metrics",
    "compute_track_metrics",
    "safe_speed",
]
