"""Input cleaning and alignment.

This module turns the raw, row-aligned sensor arrays of a recording
into a `PreparedTrack`: the timeline is validated and converted into
per-row intervals, sparse calibration inputs are carried forward,
speed is scaled and capped, stationary rows are gated and headings are
normalised.  Every later stage of the pipeline reads its per-row
quantities from the prepared track.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import InvalidTimeline, UndefinedCarryForward
from ..utils.geodesy import wrap_heading
from ..utils.logging import get_logger

logger = get_logger(__name__)

ArrayOrScalar = Union[float, np.ndarray, pd.Series, list]


@dataclass
class TrackInputs:
    """Raw aligned sensor arrays plus the seed coordinate."""

    timestamps: object
    """Sample instants.  Numeric values are taken as seconds; anything
    else is parsed with `pandas.to_datetime`."""

    heading: ArrayOrScalar
    """Heading in degrees clockwise from north."""

    speed: ArrayOrScalar
    """Speed (m/s) or a proxy scaled by ``m`` and ``c``."""

    start_lon: float
    """Longitude of the seed coordinate (start, or end when integrating
    backwards)."""

    start_lat: float
    """Latitude of the seed coordinate."""

    elevation: Optional[ArrayOrScalar] = None
    pitch: Optional[ArrayOrScalar] = None
    current_speed: Optional[ArrayOrScalar] = None
    current_heading: Optional[ArrayOrScalar] = None

    m: ArrayOrScalar = 1.0
    """Speed multiplier, scalar or per row with gaps."""

    c: ArrayOrScalar = 0.0
    """Speed intercept, scalar or per row with gaps."""

    marked_event: Optional[ArrayOrScalar] = None
    """Movement flag; rows with a value <= 0 are stationary."""

    vp_lon: Optional[ArrayOrScalar] = None
    vp_lat: Optional[ArrayOrScalar] = None


@dataclass
class PreparedTrack:
    """Cleaned per-row arrays of a recording, in original time order."""

    timestamps: np.ndarray
    seconds: np.ndarray
    dt: np.ndarray
    heading: np.ndarray
    raw_speed: np.ndarray
    speed: np.ndarray
    radial: np.ndarray
    marked_event: np.ndarray
    start_lon: float
    start_lat: float
    pitch: Optional[np.ndarray] = None
    elevation: Optional[np.ndarray] = None
    current_speed: Optional[np.ndarray] = None
    current_heading: Optional[np.ndarray] = None
    vp_lon: Optional[np.ndarray] = None
    vp_lat: Optional[np.ndarray] = None
    integrated_heading: Optional[np.ndarray] = field(default=None)
    integrated_radial: Optional[np.ndarray] = field(default=None)

    def __len__(self) -> int:
        return len(self.dt)

    @property
    def has_current(self) -> bool:
        return self.current_speed is not None and self.current_heading is not None

    @property
    def has_vp(self) -> bool:
        return self.vp_lon is not None

    @property
    def step_heading(self) -> np.ndarray:
        """Bearing that moves each row, after current integration."""
        if self.integrated_heading is not None:
            return self.integrated_heading
        return self.heading

    @property
    def step_radial(self) -> np.ndarray:
        """Distance covered by each row, after current integration."""
        if self.integrated_radial is not None:
            return self.integrated_radial
        return self.radial


def carry_forward(values: Optional[ArrayOrScalar], n: int, name: str) -> Optional[np.ndarray]:
    """Broadcast a scalar or forward fill the gaps of a per-row series.

    Parameters
    ----------
    values : scalar, array-like or None
        Scalar value for every row, or an array of length ``n`` with NaN
        gaps.
    n : int
        Number of rows.
    name : str
        Input name, used in error messages.

    Returns
    -------
    numpy.ndarray or None
        Array of length ``n`` without gaps, or None if ``values`` is None.

    Raises
    ------
    UndefinedCarryForward
        If the first value is missing.
    """
    if values is None:
        return None
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        if np.isnan(arr):
            raise UndefinedCarryForward(name)
        return np.full(n, float(arr))
    if arr.shape != (n,):
        raise ValueError(f"{name} must be a scalar or have {n} values, got shape {arr.shape}")
    series = pd.Series(arr)
    if n and pd.isna(series.iloc[0]):
        raise UndefinedCarryForward(name)
    return series.ffill().to_numpy(dtype=float)


def elapsed_seconds(timestamps) -> Tuple[np.ndarray, np.ndarray]:
    """Return (timestamps, seconds since the first sample).

    Raises
    ------
    InvalidTimeline
        If there are no samples or a timestamp cannot be interpreted.
    """
    values = np.asarray(timestamps)
    if values.ndim != 1 or len(values) == 0:
        raise InvalidTimeline("timestamps must be a non-empty one-dimensional sequence")
    if np.issubdtype(values.dtype, np.number):
        seconds = values.astype(float)
        seconds = seconds - seconds[0]
        return values, seconds
    stamps = pd.to_datetime(values)
    if stamps.isna().any():
        raise InvalidTimeline("timestamps contain missing values")
    seconds = (stamps - stamps[0]).total_seconds().to_numpy(dtype=float)
    return stamps.to_numpy(), seconds


def _required(values: ArrayOrScalar, n: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        arr = np.full(n, float(arr))
    if arr.shape != (n,):
        raise ValueError(f"{name} must have {n} values, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains missing or non-finite values")
    return arr


def _optional(values: Optional[ArrayOrScalar], n: int, name: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        return np.full(n, float(arr))
    if arr.shape != (n,):
        raise ValueError(f"{name} must have {n} values, got shape {arr.shape}")
    return arr


@dataclass
class InputPreprocessor:
    """Validate, align and scale the raw inputs of a recording."""

    max_speed: Optional[float] = None
    """Speed cap in m/s applied after scaling.  None disables capping."""

    def compute_dt(self, seconds: np.ndarray) -> np.ndarray:
        """Per-row interval in seconds, 0 on the first row.

        Raises
        ------
        InvalidTimeline
            If an interval is negative or not finite.
        """
        dt = np.diff(seconds, prepend=seconds[0])
        bad = ~np.isfinite(dt) | (dt < 0)
        if np.any(bad):
            row = int(np.flatnonzero(bad)[0])
            raise InvalidTimeline(
                f"timestamp at row {row} is earlier than the previous one or not finite"
            )
        return dt

    def scale_speed(
        self,
        speed: np.ndarray,
        m: np.ndarray,
        c: np.ndarray,
        marked_event: np.ndarray
    ) -> np.ndarray:
        """Apply ``speed * m + c``, the cap, and zero stationary rows."""
        scaled = speed * m + c
        if self.max_speed is not None:
            scaled = np.clip(scaled, 0.0, self.max_speed)
        return np.where(marked_event > 0, scaled, 0.0)

    def prepare(self, inputs: TrackInputs) -> PreparedTrack:
        """Run all preprocessing steps.

        Parameters
        ----------
        inputs : TrackInputs
            Raw aligned inputs.

        Returns
        -------
        PreparedTrack
            Cleaned per-row arrays with radial distances.
        """
        timestamps, seconds = elapsed_seconds(inputs.timestamps)
        n = len(seconds)
        dt = self.compute_dt(seconds)

        heading = wrap_heading(_required(inputs.heading, n, "heading"))
        raw_speed = _required(inputs.speed, n, "speed")

        if inputs.marked_event is None:
            marked_event = np.ones(n)
        else:
            marked_event = carry_forward(inputs.marked_event, n, "marked_event")

        m = carry_forward(inputs.m, n, "m")
        c = carry_forward(inputs.c, n, "c")
        speed = self.scale_speed(raw_speed, m, c, marked_event)

        current_speed = carry_forward(inputs.current_speed, n, "current_speed")
        current_heading = carry_forward(inputs.current_heading, n, "current_heading")
        if (current_speed is None) != (current_heading is None):
            raise ValueError("current_speed and current_heading must be supplied together")
        if current_heading is not None:
            current_heading = wrap_heading(current_heading)

        vp_lon = _optional(inputs.vp_lon, n, "vp_lon")
        vp_lat = _optional(inputs.vp_lat, n, "vp_lat")
        if (vp_lon is None) != (vp_lat is None):
            raise ValueError("vp_lon and vp_lat must be supplied together")

        track = PreparedTrack(
            timestamps=np.asarray(timestamps),
            seconds=seconds,
            dt=dt,
            heading=heading,
            raw_speed=raw_speed,
            speed=speed,
            radial=speed * dt,
            marked_event=marked_event,
            start_lon=float(inputs.start_lon),
            start_lat=float(inputs.start_lat),
            pitch=_optional(inputs.pitch, n, "pitch"),
            elevation=_optional(inputs.elevation, n, "elevation"),
            current_speed=current_speed,
            current_heading=current_heading,
            vp_lon=vp_lon,
            vp_lat=vp_lat,
        )
        logger.info(
            "Prepared %d rows over %.1f s (%d stationary rows)",
            n, seconds[-1], int(np.sum(marked_event <= 0))
        )
        return track
