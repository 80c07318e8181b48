"""Integration tests for the complete reconstruction pipeline."""

import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from drtrack import (
    InsufficientAnchors,
    MissingVerifiedPositions,
    ReckoningConfig,
    TrackInputs,
    TrackPipeline,
)
from drtrack.output import OUTPUT_FIELDS
from drtrack.pipeline import inputs_from_frame, main
from drtrack.reckoning.integrator import DeadReckoningIntegrator

START = (5.0, 52.0)


def true_path(n):
    """Reference positions: due east at 1 m/s from START."""
    radial = np.ones(n)
    radial[0] = 0.0
    result = DeadReckoningIntegrator().integrate(START[0], START[1], radial, np.full(n, 90.0))
    return result.lon, result.lat


class TestPipelineIntegration:
    """Integration tests for TrackPipeline."""

    def create_biased_inputs(self, n=600, vp_every=1, start=START, **kwargs):
        """Sensors reading 10 degrees low and 10 % slow, VPs on the true path."""
        lon, lat = true_path(n)
        vp_lon = np.full(n, np.nan)
        vp_lat = np.full(n, np.nan)
        vp_lon[::vp_every] = lon[::vp_every]
        vp_lat[::vp_every] = lat[::vp_every]
        return TrackInputs(
            timestamps=np.arange(n, dtype=float),
            heading=np.full(n, 80.0),
            speed=np.full(n, 0.9),
            start_lon=start[0],
            start_lat=start[1],
            vp_lon=vp_lon,
            vp_lat=vp_lat,
            **kwargs,
        )

    def test_straight_line(self):
        """Constant heading and speed give a straight track."""
        n = 100
        result = TrackPipeline().run(TrackInputs(
            timestamps=np.arange(n, dtype=float),
            heading=np.full(n, 90.0),
            speed=np.ones(n),
            start_lon=START[0],
            start_lat=START[1],
        ))
        table = result.table

        assert len(table) == n
        assert_allclose(table["DR.latitude"], START[1], atol=1e-12)
        assert_allclose(table["DR.cumulative.distance.2D"].iloc[-1], 99.0, rtol=1e-6)
        assert_allclose(table["DR.speed.2D"].iloc[1:], 1.0, rtol=1e-6)
        assert table["Row.number"].tolist() == list(range(1, n + 1))
        assert "DRc.longitude" not in table
        assert "VP.longitude" not in table
        assert result.corrected == False

    def test_frozen_movement(self):
        """Stationary rows do not move the track."""
        n = 40
        marked = np.ones(n)
        marked[10:21] = 0
        table = TrackPipeline().run(TrackInputs(
            timestamps=np.arange(n, dtype=float),
            heading=np.full(n, 45.0),
            speed=np.full(n, 2.0),
            start_lon=START[0],
            start_lat=START[1],
            marked_event=marked,
        )).table

        assert np.all(table["DR.longitude"].iloc[10:21] == table["DR.longitude"].iloc[9])
        assert np.all(table["DR.latitude"].iloc[10:21] == table["DR.latitude"].iloc[9])
        assert np.all(table["Speed.scaled"].iloc[10:21] == 0.0)
        assert_allclose(table["DR.distance.2D"].iloc[10:21], 0.0, atol=1e-9)
        assert table["DR.longitude"].iloc[21] > table["DR.longitude"].iloc[20]

    def test_current(self):
        """A perpendicular current of equal speed deflects the track by 45 degrees."""
        n = 20
        table = TrackPipeline().run(TrackInputs(
            timestamps=np.arange(n, dtype=float),
            heading=np.zeros(n),
            speed=np.ones(n),
            start_lon=0.0,
            start_lat=0.0,
            current_speed=1.0,
            current_heading=90.0,
        )).table

        assert_allclose(table["Integrated.heading"].iloc[1:], 45.0)
        assert_allclose(table["Integrated.radial.distance"].iloc[1:], np.sqrt(2.0))
        assert_allclose(table["DR.distance.2D"].iloc[1:], np.sqrt(2.0), rtol=1e-6)
        assert table["DR.longitude"].iloc[-1] > 0.0
        assert table["DR.latitude"].iloc[-1] > 0.0

    def test_time_dist_correction(self):
        """Time_Dist anchors every 60 s and a corrected track on the VPs."""
        config = ReckoningConfig(method="Time_Dist", thresh_t=60)
        result = TrackPipeline(config).run(self.create_biased_inputs())
        table = result.table
        lon, lat = true_path(600)

        expected = list(range(0, 600, 60)) + [599]
        assert result.anchors.tolist() == expected
        assert result.corrected == True
        assert len(result.segments) == 10
        assert np.flatnonzero(table["VP.used.to.correct"].to_numpy()).tolist() == expected

        assert_allclose(table["DRc.longitude"].iloc[expected], table["VP.longitude"].iloc[expected],
                        atol=1e-9)
        assert table["Distance.after.correction"].max() < 1e-3
        assert table["Distance.before.correction"].iloc[-1] > 50.0
        assert_allclose(table["DRc.longitude"], lon, atol=1e-7)
        assert_allclose(table["DRc.latitude"], lat, atol=1e-7)
        assert_allclose(table["Dist.corr.factor"], 1.0 / 0.9, rtol=1e-4)
        assert_allclose(table["Head.corr.factor"], 10.0, atol=1e-3)

    def test_bounded_track_stops_at_last_anchor(self):
        """With bound the corrected track ends at the last VP."""
        n = 45
        config = ReckoningConfig(method="All")
        table = TrackPipeline(config).run(self.create_biased_inputs(n=n, vp_every=10)).table

        assert np.all(np.isfinite(table["DRc.longitude"].iloc[:41]))
        assert np.all(np.isnan(table["DRc.longitude"].iloc[41:]))

    def test_unbounded_track_continues(self):
        """Without bound the last factors carry the track to its end."""
        n = 45
        lon, lat = true_path(n)
        config = ReckoningConfig(method="All", bound=False)
        result = TrackPipeline(config).run(self.create_biased_inputs(n=n, vp_every=10))

        assert result.segments[-1].bounded == False
        assert_allclose(result.table["DRc.longitude"], lon, atol=1e-7)
        assert_allclose(result.table["DRc.latitude"], lat, atol=1e-7)

    def test_divide_anchor_set(self):
        """Divide with thresh_t = 1 uses first, middle and last VP."""
        config = ReckoningConfig(method="Divide", thresh_t=1)
        result = TrackPipeline(config).run(self.create_biased_inputs())
        assert result.anchors.tolist() == [0, 300, 599]

    def test_backward_round_trip(self):
        """Integrating back from the forward end point reproduces the forward track."""
        n = 300
        rng = np.random.default_rng(11)
        heading = rng.uniform(0.0, 360.0, n)
        speed = rng.uniform(0.0, 3.0, n)

        def inputs(start):
            return TrackInputs(
                timestamps=np.arange(n, dtype=float),
                heading=heading,
                speed=speed,
                start_lon=start[0],
                start_lat=start[1],
            )

        forward = TrackPipeline().run(inputs(START)).table
        end = (forward["DR.longitude"].iloc[-1], forward["DR.latitude"].iloc[-1])
        backward = TrackPipeline(ReckoningConfig(outgoing=False)).run(inputs(end)).table

        assert_allclose(backward["DR.longitude"], forward["DR.longitude"], atol=1e-8)
        assert_allclose(backward["DR.latitude"], forward["DR.latitude"], atol=1e-8)
        assert_allclose(backward["DR.cumulative.distance.2D"], forward["DR.cumulative.distance.2D"],
                        rtol=1e-6, atol=1e-6)

    def test_backward_correction(self):
        """Correction seeded at the end point recovers the true path."""
        n = 120
        lon, lat = true_path(n)
        config = ReckoningConfig(method="Time_Dist", thresh_t=30, outgoing=False)
        result = TrackPipeline(config).run(
            self.create_biased_inputs(n=n, start=(lon[-1], lat[-1]))
        )

        assert result.anchors.tolist() == [0, 29, 59, 89, 119]
        assert_allclose(result.table["DRc.longitude"], lon, atol=1e-7)
        assert_allclose(result.table["DRc.latitude"], lat, atol=1e-7)

    def test_cumulative_distance_monotonic(self):
        """Cumulative distances never decrease."""
        rng = np.random.default_rng(5)
        n = 200
        inputs = self.create_biased_inputs(n=n, vp_every=7)
        inputs.heading = rng.uniform(0.0, 360.0, n)
        inputs.speed = rng.uniform(0.0, 2.0, n)
        table = TrackPipeline(ReckoningConfig(method="All", bound=False)).run(inputs).table

        for column in ("DR.cumulative.distance.2D", "DRc.cumulative.distance.2D",
                       "VP.cumulative.distance.2D"):
            assert np.all(np.diff(table[column].to_numpy()) >= 0), column

    def test_missing_verified_positions(self):
        """A correction method without VPs is a configuration error."""
        inputs = self.create_biased_inputs(n=10)
        inputs.vp_lon = None
        inputs.vp_lat = None
        with pytest.raises(MissingVerifiedPositions):
            TrackPipeline(ReckoningConfig(method="All")).run(inputs)

    def test_insufficient_anchors(self):
        """Too few VPs skip the correction with a note."""
        n = 20
        inputs = self.create_biased_inputs(n=n)
        inputs.vp_lon = np.full(n, np.nan)
        inputs.vp_lat = np.full(n, np.nan)
        result = TrackPipeline(ReckoningConfig(method="All")).run(inputs)

        assert result.corrected == False
        assert len(result.notes) == 1
        assert result.notes[0].startswith(InsufficientAnchors.__name__)
        assert "DRc.longitude" not in result.table
        assert "VP.present" in result.table
        assert result.table["VP.count"].iloc[-1] == 0

    def test_vp_me_filter(self):
        """VPs taken while stationary can be ignored."""
        n = 30
        marked = np.ones(n)
        marked[15:] = 0
        inputs = self.create_biased_inputs(n=n, marked_event=marked)
        result = TrackPipeline(ReckoningConfig(method="All", vp_me=True)).run(inputs)
        assert result.anchors.max() == 14

    def test_vp_me_filter_in_vp_columns(self):
        """VPs ignored while stationary are not counted in the output."""
        n = 10
        marked = np.ones(n)
        marked[5:] = 0
        inputs = self.create_biased_inputs(n=n, marked_event=marked)

        filtered = TrackPipeline(ReckoningConfig(method="All", vp_me=True)).run(inputs).table
        assert filtered["VP.present"].tolist() == [True] * 5 + [False] * 5
        assert filtered["VP.count"].iloc[-1] == 5
        assert_allclose(filtered["VP.distance.2D"].iloc[1:5], 1.0, rtol=1e-6)
        assert_allclose(filtered["VP.distance.2D"].iloc[5:], 0.0)
        assert_allclose(filtered["VP.seconds"].iloc[5:], 0.0)
        assert_allclose(filtered["VP.cumulative.distance.2D"].iloc[-1], 4.0, rtol=1e-6)
        # positions are still echoed as supplied
        assert np.all(np.isfinite(filtered["VP.longitude"]))

        unfiltered = TrackPipeline(ReckoningConfig(method="All")).run(inputs).table
        assert unfiltered["VP.count"].iloc[-1] == 10
        assert_allclose(unfiltered["VP.cumulative.distance.2D"].iloc[-1], 9.0, rtol=1e-6)

    def test_sensor_speed_echo(self):
        """The supplied speed is echoed next to the scaled speed."""
        n = 10
        marked = np.ones(n)
        marked[5:] = 0
        inputs = TrackInputs(
            timestamps=np.arange(n, dtype=float),
            heading=np.zeros(n),
            speed=np.full(n, 1.5),
            start_lon=0.0,
            start_lat=0.0,
            m=2.0,
            c=0.5,
            marked_event=marked,
        )

        table = TrackPipeline().run(inputs).table
        assert_allclose(table["Speed"], 1.5)
        assert_allclose(table["Speed.scaled"], [3.5] * 5 + [0.0] * 5)
        assert list(table.columns).index("Speed") + 1 == list(table.columns).index("Speed.scaled")

        capped = TrackPipeline(ReckoningConfig(max_speed=3.0)).run(inputs).table
        assert_allclose(capped["Speed"], 1.5)
        assert_allclose(capped["Speed.scaled"], [3.0] * 5 + [0.0] * 5)
        assert_allclose(capped["Radial.distance"].iloc[1:5], 3.0)

    def test_optional_columns(self):
        """Pitch and elevation appear only when supplied."""
        n = 10
        base = dict(
            timestamps=np.arange(n, dtype=float),
            heading=np.zeros(n),
            speed=np.full(n, 4.0),
            start_lon=0.0,
            start_lat=0.0,
        )
        plain = TrackPipeline().run(TrackInputs(**base)).table
        assert "Pitch" not in plain
        assert "Elevation" not in plain
        assert "DR.distance.3D" not in plain

        elevation = np.arange(n, dtype=float) * 3.0
        full = TrackPipeline().run(TrackInputs(pitch=np.full(n, 2.5), elevation=elevation, **base)).table
        assert_allclose(full["Pitch"], 2.5)
        assert_allclose(full["DR.distance.3D"].iloc[1:], 5.0, rtol=1e-6)
        assert_allclose(full["DR.cumulative.distance.3D"].iloc[-1], 45.0, rtol=1e-6)

    def test_column_order(self):
        """Columns follow the output schema order."""
        config = ReckoningConfig(method="All")
        table = TrackPipeline(config).run(self.create_biased_inputs(n=30, vp_every=5)).table
        order = [f.name for f in OUTPUT_FIELDS if f.name in table.columns]
        assert list(table.columns) == order
        assert "VP.used.to.correct" in table.columns

    def test_datetime_timestamps(self):
        """Date-time stamps are converted to seconds since the first sample."""
        stamps = pd.date_range("2024-05-01 12:00:00", periods=5, freq="2s")
        table = TrackPipeline().run(TrackInputs(
            timestamps=stamps.astype(str).to_numpy(),
            heading=np.zeros(5),
            speed=np.ones(5),
            start_lon=0.0,
            start_lat=0.0,
        )).table
        assert_allclose(table["DR.seconds"], [0.0, 2.0, 4.0, 6.0, 8.0])
        assert_allclose(table["DR.cumulative.distance.2D"].iloc[-1], 8.0, rtol=1e-6)


class TestCommandLine:
    """Tests for the command-line front end."""

    def create_frame(self, n=100):
        lon, lat = true_path(n)
        vp_lon = np.full(n, np.nan)
        vp_lat = np.full(n, np.nan)
        vp_lon[::5] = lon[::5]
        vp_lat[::5] = lat[::5]
        return pd.DataFrame({
            "Timestamp": np.arange(n, dtype=float),
            "Heading": np.full(n, 80.0),
            "Speed": np.full(n, 0.9),
            "VP.longitude": vp_lon,
            "VP.latitude": vp_lat,
        })

    def test_inputs_from_frame(self):
        """Known columns map onto the input fields."""
        inputs = inputs_from_frame(self.create_frame(n=10), *START)
        assert inputs.start_lon == START[0]
        assert len(inputs.vp_lon) == 10
        assert inputs.elevation is None

    def test_inputs_from_frame_missing_column(self):
        """Required columns must be present."""
        frame = self.create_frame(n=10).drop(columns=["Speed"])
        with pytest.raises(ValueError, match="Speed"):
            inputs_from_frame(frame, *START)

    def test_main(self):
        """The CLI reads a CSV and a YAML file and writes the output table."""
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            input_path = tmpdir / "track.csv"
            output_path = tmpdir / "track_out.csv"
            config_path = tmpdir / "config.yaml"
            self.create_frame().to_csv(input_path, index=False)
            config_path.write_text("method: Time_Dist\nthresh.t: 20\nOutgoing: true\n")

            status = main([
                "--input", str(input_path),
                "--output", str(output_path),
                "--start-lon", str(START[0]),
                "--start-lat", str(START[1]),
                "--config", str(config_path),
            ])

            assert status == 0
            table = pd.read_csv(output_path)
            assert len(table) == 100
            assert "DRc.longitude" in table.columns
            assert int(table["VP.used.to.correct"].sum()) == 6
