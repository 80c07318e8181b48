"""Complete track reconstruction pipeline.

This module orchestrates every stage from raw sensor arrays to the
output table: input preprocessing, optional current integration,
dead reckoning, optional anchor selection and verified position
correction, and the distance/speed metrics of each track.

Usage:
    drtrack --input track.csv --output track_out.csv --start-lon 5.1 --start-lat 52.0
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from .config import ReckoningConfig
from .correction.anchor_selector import VPCandidates, select_anchors
from .correction.vpc_corrector import CorrectionResult, Segment, VPCCorrector
from .errors import InsufficientAnchors, MissingVerifiedPositions
from .output import CURRENT, ELEVATION, PITCH, VP, VPC, TrackOutputBuilder
from .preprocessing.current_integrator import apply_current
from .preprocessing.input_preprocessor import InputPreprocessor, PreparedTrack, TrackInputs
from .reckoning.distance_calculator import compute_stride_metrics, compute_track_metrics
from .reckoning.integrator import DeadReckoningIntegrator, IntegrationResult, ProcessingView
from .utils.config import load_config
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TrackResult:
    """Outcome of a reconstruction run."""

    table: pd.DataFrame
    """Output table, one row per input row."""

    anchors: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))
    """Rows (original order, ascending) used as correction anchors."""

    segments: List[Segment] = field(default_factory=list)
    """Correction segments; their rows count in processing order."""

    notes: List[str] = field(default_factory=list)
    """Non-fatal diagnostics, e.g. a correction that had to be skipped."""

    @property
    def corrected(self) -> bool:
        return len(self.segments) > 0


class TrackPipeline:
    """Reconstruct and optionally correct a dead-reckoned track."""

    def __init__(self, config: Optional[ReckoningConfig] = None):
        """Initialize the pipeline.

        Parameters
        ----------
        config : ReckoningConfig, optional
            Reconstruction options; defaults to plain forward dead
            reckoning without correction.
        """
        self.config = config or ReckoningConfig()
        self.preprocessor = InputPreprocessor(max_speed=self.config.max_speed)
        self.integrator = DeadReckoningIntegrator(earth_radius=self.config.earth_radius)
        self.corrector = VPCCorrector(integrator=self.integrator, bound=self.config.bound)

    def step_1_prepare(self, inputs: TrackInputs) -> PreparedTrack:
        """Step 1: validate and scale the inputs, then fold in current drift."""
        if self.config.method is not None and (inputs.vp_lon is None or inputs.vp_lat is None):
            raise MissingVerifiedPositions(
                f"method {self.config.method.value} requires verified positions"
            )
        track = self.preprocessor.prepare(inputs)
        return apply_current(track)

    def step_2_dead_reckon(self, track: PreparedTrack):
        """Step 2: integrate the uncorrected track in processing order.

        Returns
        -------
        (ProcessingView, IntegrationResult)
        """
        view = ProcessingView.from_track(track, outgoing=self.config.outgoing)
        baseline = view.integrate(self.integrator)
        end_lon, end_lat = baseline.end
        logger.info(
            "Dead reckoned %d rows %s, %.1f m, ending at (%.6f, %.6f)",
            len(view), "forward" if self.config.outgoing else "backward",
            float(baseline.cumulative_2d[-1]), end_lon, end_lat
        )
        return view, baseline

    def step_3_correct(
        self,
        view: ProcessingView,
        baseline: IntegrationResult,
        notes: List[str]
    ) -> Optional[CorrectionResult]:
        """Step 3: select anchors and correct the track.

        Returns None, with a note appended, when there are not enough
        verified positions to correct anything.
        """
        if self.config.method is None:
            return None
        candidates = VPCandidates.from_view(view, baseline, vp_me=self.config.vp_me)
        try:
            anchors = select_anchors(candidates, self.config)
        except InsufficientAnchors as exc:
            logger.warning("Skipping correction: %s", exc)
            notes.append(f"InsufficientAnchors: {exc}")
            return None
        logger.info(
            "%s selected %d anchors from %d verified positions",
            self.config.method.value, len(anchors), len(candidates)
        )
        return self.corrector.correct(view, baseline, anchors)

    def step_4_assemble(
        self,
        track: PreparedTrack,
        view: ProcessingView,
        baseline: IntegrationResult,
        correction: Optional[CorrectionResult]
    ) -> pd.DataFrame:
        """Step 4: compute track metrics and build the output table."""
        n = len(track)
        radius = self.config.earth_radius
        out = TrackOutputBuilder(n)

        out.add("Row.number", np.arange(1, n + 1))
        out.add("Timestamp", track.timestamps)
        out.add("DR.seconds", track.seconds)
        out.add("Heading", track.heading)
        out.add("Marked.event", track.marked_event)
        out.add("Speed", track.raw_speed)
        out.add("Speed.scaled", track.speed)
        out.add("Radial.distance", track.radial)
        if track.pitch is not None:
            out.enable(PITCH).add("Pitch", track.pitch)
        if track.elevation is not None:
            out.enable(ELEVATION).add("Elevation", track.elevation)
        if track.has_current:
            out.enable(CURRENT)
            out.add("Current.speed", track.current_speed)
            out.add("Current.heading", track.current_heading)
            out.add("Integrated.heading", track.integrated_heading)
            out.add("Integrated.radial.distance", track.integrated_radial)

        dr_lon = view.to_original(baseline.lon)
        dr_lat = view.to_original(baseline.lat)
        out.add("DR.longitude", dr_lon).add("DR.latitude", dr_lat)
        out.update(compute_track_metrics(dr_lon, dr_lat, track.dt, track.elevation, "DR", radius))

        if track.has_vp:
            out.enable(VP)
            vp_lon, vp_lat = track.vp_lon, track.vp_lat
            present = np.isfinite(vp_lon) & np.isfinite(vp_lat)
            if self.config.vp_me:
                present &= track.marked_event > 0
            out.add("VP.longitude", vp_lon).add("VP.latitude", vp_lat)
            out.add("VP.present", present)
            out.add("VP.count", np.cumsum(present))
            out.update(compute_stride_metrics(
                np.where(present, vp_lon, np.nan), np.where(present, vp_lat, np.nan),
                track.seconds, self.config.dist_step, "VP", radius
            ))

        if correction is not None:
            out.enable(VPC)
            used = np.zeros(n, dtype=bool)
            used[view.order[correction.anchors]] = True
            drc_lon = view.to_original(correction.lon)
            drc_lat = view.to_original(correction.lat)
            out.add("VP.used.to.correct", used)
            out.add("Dist.corr.factor", view.to_original(correction.dist_factor))
            out.add("Head.corr.factor", view.to_original(correction.head_factor))
            out.add("DRc.longitude", drc_lon).add("DRc.latitude", drc_lat)
            out.update(compute_track_metrics(drc_lon, drc_lat, track.dt, track.elevation, "DRc", radius))
            out.add("Distance.before.correction", view.to_original(correction.distance_before))
            out.add("Distance.after.correction", view.to_original(correction.distance_after))

        return out.build()

    def run(self, inputs: TrackInputs) -> TrackResult:
        """Run the complete reconstruction.

        Parameters
        ----------
        inputs : TrackInputs
            Raw aligned sensor arrays and seed coordinate.

        Returns
        -------
        TrackResult
            Output table, anchors, segments and diagnostic notes.
        """
        notes: List[str] = []
        track = self.step_1_prepare(inputs)
        view, baseline = self.step_2_dead_reckon(track)
        correction = self.step_3_correct(view, baseline, notes)
        table = self.step_4_assemble(track, view, baseline, correction)

        result = TrackResult(table=table, notes=notes)
        if correction is not None:
            result.anchors = np.sort(view.order[correction.anchors])
            result.segments = correction.segments
        return result


INPUT_COLUMNS = {
    "timestamps": "Timestamp",
    "heading": "Heading",
    "speed": "Speed",
    "marked_event": "Marked.event",
    "elevation": "Elevation",
    "pitch": "Pitch",
    "current_speed": "Current.speed",
    "current_heading": "Current.heading",
    "m": "m",
    "c": "c",
    "vp_lon": "VP.longitude",
    "vp_lat": "VP.latitude",
}
"""Input field to CSV column name."""

REQUIRED_COLUMNS = ("timestamps", "heading", "speed")


def inputs_from_frame(frame: pd.DataFrame, start_lon: float, start_lat: float) -> TrackInputs:
    """Build `TrackInputs` from a table using the `INPUT_COLUMNS` names."""
    missing = [INPUT_COLUMNS[k] for k in REQUIRED_COLUMNS if INPUT_COLUMNS[k] not in frame]
    if missing:
        raise ValueError(f"input table is missing required columns: {', '.join(missing)}")
    kwargs = {
        key: frame[column].to_numpy()
        for key, column in INPUT_COLUMNS.items()
        if column in frame
    }
    return TrackInputs(start_lon=start_lon, start_lat=start_lat, **kwargs)


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Reconstruct a dead-reckoned track with verified position correction"
    )
    parser.add_argument("--input", type=str, required=True, help="Input CSV file")
    parser.add_argument("--output", type=str, required=True, help="Output CSV file")
    parser.add_argument("--start-lon", type=float, required=True,
                        help="Longitude of the start (or end, when integrating backwards)")
    parser.add_argument("--start-lat", type=float, required=True,
                        help="Latitude of the start (or end, when integrating backwards)")
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--plot", type=str, default=None,
                        help="Directory for a static track plot")
    parser.add_argument("--plot-stride", type=int, default=1,
                        help="Plot every n-th row (default: 1)")

    args = parser.parse_args(argv)

    config = ReckoningConfig.from_dict(load_config(args.config)) if args.config else ReckoningConfig()
    frame = pd.read_csv(args.input)
    inputs = inputs_from_frame(frame, args.start_lon, args.start_lat)

    result = TrackPipeline(config).run(inputs)
    result.table.to_csv(args.output, index=False)
    logger.info("Wrote %d rows to %s", len(result.table), args.output)
    for note in result.notes:
        logger.warning(note)

    if args.plot:
        from .visualization import TrackPlotter

        path = TrackPlotter(Path(args.plot)).plot(result.table, stride=args.plot_stride)
        logger.info("Track plot saved to %s", path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
