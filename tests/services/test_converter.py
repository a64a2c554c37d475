"""Tests for whole-workout conversion and export."""

import pytest

from rowbike_converter.exceptions import CalibrationRequiredError, UnsupportedTargetSpecError
from rowbike_converter.metrics.c2 import pace_to_watts, watts_to_pace
from rowbike_converter.metrics.calibration import Coefficients, predict_watts
from rowbike_converter.models import Interval, Modality, TargetSpec, Workout
from rowbike_converter.services.converter import (
    WorkoutConverter,
    convert_workout,
    format_conversion_for_export,
    get_rest_targets,
)
from rowbike_converter.utils.formatting import round_half_up


MOCK_CALIBRATION = Coefficients(a=0.0026, b=3.2)


@pytest.fixture
def row_to_bike_workout():
    """250 m @ 1:50/500m and 500 m @ 1:55/500m, 45 s rest."""
    return Workout(
        id="test",
        source_modality=Modality.ROW,
        target_modality=Modality.BIKE,
        target_spec=TargetSpec.PACE_500,
        intervals=[
            Interval(distance=250, target_value=110),
            Interval(distance=500, target_value=115),
        ],
        rest=45,
        damper_for_target=5,
    )


def _workout(source, target, spec, intervals, damper=5):
    return Workout(
        id="w",
        source_modality=source,
        target_modality=target,
        target_spec=spec,
        intervals=intervals,
        rest=60,
        damper_for_target=damper,
    )


class TestConvertWorkout:
    """Tests for convert_workout."""

    def test_row_to_bike(self, row_to_bike_workout):
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)

        assert len(result.intervals) == 2
        assert result.rest_seconds == 45
        assert result.damper == 5
        assert result.target_modality is Modality.BIKE

        first = result.intervals[0]
        assert first.rep == 1
        assert first.target_watts == 263
        assert 60 <= first.target_rpm < 120
        assert first.target_pace == pytest.approx(220.0)

    def test_cross_modality_distance_becomes_duration(self, row_to_bike_workout):
        """Elapsed time at the source pace is carried, distance is dropped."""
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)

        first, second = result.intervals
        assert first.distance_meters is None
        assert first.duration_seconds == 55
        assert second.distance_meters is None
        assert second.duration_seconds == 115

    def test_same_modality_distance_keeps_both(self):
        workout = _workout(
            Modality.BIKE, Modality.BIKE, TargetSpec.WATTS,
            [Interval(distance=1000, target_value=200)],
        )
        interval = convert_workout(workout, MOCK_CALIBRATION).intervals[0]

        assert interval.distance_meters == 1000
        assert interval.duration_seconds == round_half_up(watts_to_pace(200, False))
        assert interval.duration_seconds > 0

    def test_same_modality_duration_derives_distance(self):
        workout = _workout(
            Modality.ROW, Modality.ROW, TargetSpec.PACE_500,
            [Interval(duration=300, target_value=110)],
        )
        interval = convert_workout(workout).intervals[0]

        assert interval.duration_seconds == 300
        assert interval.distance_meters == pytest.approx(300 * 500 / 110, abs=1)

    def test_cross_modality_duration_passes_through(self):
        workout = _workout(
            Modality.ROW, Modality.BIKE, TargetSpec.PACE_500,
            [Interval(duration=300, target_value=110)],
        )
        interval = convert_workout(workout, MOCK_CALIBRATION).intervals[0]

        assert interval.duration_seconds == 300
        assert interval.distance_meters is None

    def test_interval_without_distance_or_duration(self):
        workout = _workout(
            Modality.ROW, Modality.BIKE, TargetSpec.WATTS, [Interval(target_value=250)],
        )
        interval = convert_workout(workout, MOCK_CALIBRATION).intervals[0]

        assert interval.duration_seconds is None
        assert interval.distance_meters is None
        assert interval.target_watts == 250

    def test_watts_spec(self, row_to_bike_workout):
        row_to_bike_workout.target_spec = TargetSpec.WATTS
        row_to_bike_workout.intervals = [Interval(distance=250, target_value=270)]
        interval = convert_workout(row_to_bike_workout, MOCK_CALIBRATION).intervals[0]

        assert interval.target_watts == 270
        assert interval.target_rpm >= 60

    def test_pace_1000_from_bike_source(self):
        """A bike pace is used in its own 1000 m unit for the elapsed time."""
        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.PACE_1000,
            [Interval(distance=1000, target_value=220)],
        )
        interval = convert_workout(workout).intervals[0]

        assert interval.target_watts == 263
        assert interval.duration_seconds == 220
        assert interval.target_pace == pytest.approx(110.0)

    def test_pace_500_from_bike_source(self):
        """A /500m pace quoted for the bike is doubled to its 1000 m unit."""
        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.PACE_500,
            [Interval(distance=1000, target_value=110)],
        )
        interval = convert_workout(workout).intervals[0]

        assert interval.duration_seconds == 220

    def test_rpm_spec_bike_to_row(self):
        """80 RPM on the calibrated bike becomes a reasonable rower pace."""
        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.RPM,
            [Interval(distance=1000, target_value=80)],
        )
        interval = convert_workout(workout, MOCK_CALIBRATION).intervals[0]

        assert 40 < interval.target_pace < 60
        assert 18 <= interval.target_rpm <= 32
        assert interval.distance_meters is None
        assert interval.duration_seconds > 0

    def test_rpm_spec_requires_calibration(self, row_to_bike_workout):
        row_to_bike_workout.target_spec = TargetSpec.RPM
        with pytest.raises(CalibrationRequiredError) as exc_info:
            convert_workout(row_to_bike_workout)
        assert exc_info.value.message == "Calibration required for RPM conversion"

    def test_generic_fallback(self, row_to_bike_workout):
        result = convert_workout(row_to_bike_workout)

        assert len(result.intervals) == 2
        assert result.intervals[0].target_watts > 0
        assert result.intervals[0].target_rpm >= 60

    def test_default_damper(self, row_to_bike_workout):
        row_to_bike_workout.damper_for_target = None
        assert convert_workout(row_to_bike_workout).damper == 5

    def test_unsupported_target_spec(self):
        workout = Workout.from_dict({
            "id": "x",
            "source_modality": "row",
            "target_modality": "bike",
            "target_spec": "heart_rate",
            "intervals": [{"target_value": 150, "duration": 60}],
        })
        with pytest.raises(UnsupportedTargetSpecError):
            convert_workout(workout, MOCK_CALIBRATION)

    def test_long_interval(self, row_to_bike_workout):
        row_to_bike_workout.intervals = [Interval(distance=5000, target_value=120)]
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)
        assert result.intervals[0].duration_seconds > 600

    def test_row_profile_not_used_for_bike_rate(self, make_profile, row_to_bike_workout):
        """A rower profile cannot predict cadence; the generic bike curve is used."""
        row_profile = make_profile(modality=Modality.ROW, a=40.0, b=-0.05)
        with_profile = convert_workout(row_to_bike_workout, row_profile)
        generic = convert_workout(row_to_bike_workout)

        assert with_profile.intervals[0].target_rpm == generic.intervals[0].target_rpm


class TestRestTargets:
    def test_band_and_watts(self):
        targets = get_rest_targets(5, MOCK_CALIBRATION)

        assert targets.rpm_min == 60
        assert targets.rpm_max == 65
        assert targets.watts == round_half_up(predict_watts(62.5, 0.0026, 3.2))
        assert 50 < targets.watts < 1500

    def test_generic_when_no_calibration(self):
        assert get_rest_targets(5).watts == get_rest_targets(5, MOCK_CALIBRATION).watts


class TestExport:
    """Tests for text and CSV export."""

    def test_text_export(self, row_to_bike_workout):
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)
        text = format_conversion_for_export(result, "text", MOCK_CALIBRATION)
        rest = get_rest_targets(5, MOCK_CALIBRATION)
        rpm = result.intervals[0].target_rpm

        assert text.startswith("BikeErg Workout (Damper 5):\n\n")
        assert f"1. 0:55 @ {rpm} RPM (263W)" in text
        assert f"2. 1:55 @ {result.intervals[1].target_rpm} RPM (230W)" in text
        assert text.endswith(f"\n\nRest: 45s @ 60-65 RPM ({rest.watts}W)")

    def test_text_export_row_heading(self):
        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.WATTS, [Interval(distance=500, target_value=200)],
        )
        text = format_conversion_for_export(convert_workout(workout))
        assert text.startswith("RowErg Workout (Damper 5):")

    def test_text_export_distance_only(self):
        workout = _workout(
            Modality.ROW, Modality.BIKE, TargetSpec.WATTS, [Interval(target_value=200)],
        )
        text = format_conversion_for_export(convert_workout(workout))
        assert "1. Interval @" in text

    def test_csv_export(self, row_to_bike_workout):
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)
        csv = format_conversion_for_export(result, "csv", MOCK_CALIBRATION)
        lines = csv.split("\n")
        rest = get_rest_targets(5, MOCK_CALIBRATION)
        rpm = result.intervals[0].target_rpm

        assert lines[0] == "Rep,Target Watts,Target RPM,Target Pace,Duration (s),Distance (m)"
        assert lines[1] == f"1,263,{rpm},220,55,"
        assert lines[2].startswith("2,230,")
        assert lines[3] == f"Rest,{rest.watts},60-65,Easy,45,"
        assert len(lines) == 4

    def test_csv_same_modality_has_distance(self):
        workout = _workout(
            Modality.BIKE, Modality.BIKE, TargetSpec.WATTS, [Interval(distance=1000, target_value=200)],
        )
        csv = format_conversion_for_export(convert_workout(workout), "csv")
        assert csv.split("\n")[1].endswith(",1000")

    def test_unknown_format(self, row_to_bike_workout):
        result = convert_workout(row_to_bike_workout, MOCK_CALIBRATION)
        with pytest.raises(ValueError):
            format_conversion_for_export(result, "xml")


class TestWorkoutConverter:
    """Tests for store-backed conversion."""

    def test_without_store_uses_generic(self, row_to_bike_workout):
        converter = WorkoutConverter()
        result, calibration = converter.convert_with_stored_calibration(row_to_bike_workout)

        assert calibration is None
        assert result.intervals[0].target_watts == 263

    def test_uses_newest_bike_calibration(self, store, make_profile, row_to_bike_workout):
        store.save(make_profile(a=0.0030, created_at=1_000))
        newest = store.save(make_profile(a=0.0040, created_at=2_000))
        store.save(make_profile(damper=7, a=0.0050, created_at=3_000))

        converter = WorkoutConverter(store)
        result, calibration = converter.convert_with_stored_calibration(row_to_bike_workout)

        assert calibration.id == newest.id
        assert result.intervals[0].target_watts == 263

    def test_rpm_spec_looks_up_bike_curve(self, store, make_profile):
        bike = store.save(make_profile(created_at=1_000))
        store.save(make_profile(modality=Modality.ROW, a=3.75, b=0.35, created_at=2_000))

        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.RPM, [Interval(distance=1000, target_value=80)],
        )
        converter = WorkoutConverter(store)

        assert converter.find_calibration(workout).id == bike.id

    def test_pace_spec_looks_up_target_curve(self, store, make_profile):
        store.save(make_profile(created_at=1_000))
        row = store.save(make_profile(modality=Modality.ROW, a=3.75, b=0.35, created_at=2_000))

        workout = _workout(
            Modality.BIKE, Modality.ROW, TargetSpec.PACE_1000, [Interval(distance=1000, target_value=220)],
        )
        assert WorkoutConverter(store).find_calibration(workout).id == row.id

    def test_export_delegates(self, row_to_bike_workout):
        converter = WorkoutConverter()
        result = converter.convert(row_to_bike_workout, MOCK_CALIBRATION)
        assert converter.export(result, "csv", MOCK_CALIBRATION) == format_conversion_for_export(
            result, "csv", MOCK_CALIBRATION
        )
        assert converter.rest_targets(5, MOCK_CALIBRATION) == get_rest_targets(5, MOCK_CALIBRATION)

    def test_pace_to_watts_matches_interval(self, row_to_bike_workout):
        result = WorkoutConverter().convert(row_to_bike_workout, MOCK_CALIBRATION)
        assert result.intervals[1].target_watts == round_half_up(pace_to_watts(115))
