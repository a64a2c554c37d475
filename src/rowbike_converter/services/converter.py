"""Workout conversion between RowErg and BikeErg.

Each interval's target is turned into watts, then re-expressed as a pace
and a rate on the target machine. Distance is only meaningful on the
machine it was measured on, so cross-modality conversions carry the
interval forward as elapsed time at the source pace.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..exceptions import CalibrationRequiredError, UnsupportedTargetSpecError
from ..metrics.c2 import pace_to_watts, watts_to_pace
from ..metrics.calibration import (
    Coefficients,
    clamp_rate,
    get_generic_for_modality,
    predict_rate,
    predict_watts,
)
from ..models import (
    CalibrationProfile,
    ConversionResult,
    ConvertedInterval,
    Interval,
    Modality,
    TargetSpec,
    Workout,
)
from ..utils.formatting import format_duration, format_number, round_half_up, round_to_tenth

logger = logging.getLogger(__name__)

DEFAULT_DAMPER = 5
REST_RPM_MIN = 60
REST_RPM_MAX = 65

Calibration = Union[CalibrationProfile, Coefficients]


@dataclass(frozen=True)
class RestTargets:
    """Easy recovery targets between intervals."""
    rpm_min: int
    rpm_max: int
    watts: int


def _pace_unit(modality: Modality) -> int:
    """Meters per pace unit: 500 m on the rower, 1000 m on the bike."""
    return 500 if modality is Modality.ROW else 1000


def _resolve_target_spec(target_spec: Union[TargetSpec, str]) -> TargetSpec:
    try:
        return TargetSpec(target_spec)
    except ValueError:
        raise UnsupportedTargetSpecError(str(target_spec)) from None


def _target_watts(
    interval: Interval,
    target_spec: TargetSpec,
    calibration: Optional[Calibration],
) -> float:
    value = interval.target_value
    if target_spec is TargetSpec.PACE_500:
        return pace_to_watts(value, True)
    if target_spec is TargetSpec.PACE_1000:
        return pace_to_watts(value, False)
    if target_spec is TargetSpec.WATTS:
        return value
    # TargetSpec.RPM
    if calibration is None:
        raise CalibrationRequiredError()
    return predict_watts(value, calibration.a, calibration.b)


def _rate_curve(
    calibration: Optional[Calibration],
    modality: Modality,
    damper: int,
) -> Calibration:
    """Curve used to predict the rate on a machine.

    A profile fitted on the other machine cannot predict this one's rate, so
    the generic curve stands in.
    """
    if calibration is None:
        return get_generic_for_modality(modality, damper)
    if isinstance(calibration, CalibrationProfile) and calibration.modality is not modality:
        return get_generic_for_modality(modality, damper)
    return calibration


def _source_pace(interval: Interval, workout: Workout, target_spec: TargetSpec, watts: float) -> float:
    """Pace of the interval on the source machine, in that machine's own unit."""
    source_is_row = workout.source_modality is Modality.ROW
    value = interval.target_value

    if target_spec is TargetSpec.PACE_500:
        return value if source_is_row else value * 2
    if target_spec is TargetSpec.PACE_1000:
        return value / 2 if source_is_row else value
    return watts_to_pace(watts, source_is_row)


def convert_workout(
    workout: Workout,
    calibration: Optional[Calibration] = None,
) -> ConversionResult:
    """Convert every interval of a workout to the target machine.

    Args:
        workout: The source workout.
        calibration: Fitted profile (or bare coefficients). When omitted a
            generic curve for the target machine and damper is used, except
            for RPM-specified workouts which need a real calibration.

    Returns:
        ConversionResult with one ConvertedInterval per source interval.

    Raises:
        CalibrationRequiredError: RPM targets without a calibration.
        UnsupportedTargetSpecError: Unknown target spec.
    """
    target_spec = _resolve_target_spec(workout.target_spec)
    damper = workout.damper_for_target or DEFAULT_DAMPER
    target = workout.target_modality
    source = workout.source_modality

    coefficients = _rate_curve(calibration, target, damper)
    cross_modality = workout.is_cross_modality
    target_is_row = target is Modality.ROW

    converted = []
    for index, interval in enumerate(workout.intervals):
        watts = _target_watts(interval, target_spec, calibration)

        target_pace = watts_to_pace(watts, target_is_row)
        target_rate = clamp_rate(predict_rate(watts, coefficients.a, coefficients.b, target), target)

        duration_seconds: Optional[int] = None
        distance_meters: Optional[int] = None

        if interval.distance:
            if cross_modality:
                source_pace = _source_pace(interval, workout, target_spec, watts)
                duration_seconds = round_half_up(interval.distance * source_pace / _pace_unit(source))
            else:
                distance_meters = round_half_up(interval.distance)
                duration_seconds = round_half_up(interval.distance * target_pace / _pace_unit(target))
        elif interval.duration:
            duration_seconds = round_half_up(interval.duration)
            if not cross_modality:
                meters_per_second = _pace_unit(target) / target_pace
                distance_meters = round_half_up(interval.duration * meters_per_second)

        converted.append(ConvertedInterval(
            rep=index + 1,
            target_watts=round_half_up(watts),
            target_rpm=round_half_up(target_rate),
            target_pace=round_to_tenth(target_pace),
            duration_seconds=duration_seconds,
            distance_meters=distance_meters,
        ))

    logger.debug(
        f"Converted workout {workout.id} ({source.value} -> {target.value}, "
        f"{len(converted)} intervals, damper {damper})"
    )

    return ConversionResult(
        intervals=converted,
        rest_seconds=workout.rest,
        damper=damper,
        target_modality=target,
    )


def get_rest_targets(damper: int, calibration: Optional[Calibration] = None) -> RestTargets:
    """Easy recovery band [60, 65] RPM with watts at its midpoint."""
    coefficients = _rate_curve(calibration, Modality.BIKE, damper)
    midpoint = (REST_RPM_MIN + REST_RPM_MAX) / 2
    watts = round_half_up(predict_watts(midpoint, coefficients.a, coefficients.b))
    return RestTargets(rpm_min=REST_RPM_MIN, rpm_max=REST_RPM_MAX, watts=watts)


def format_conversion_for_export(
    result: ConversionResult,
    fmt: str = "text",
    calibration: Optional[Calibration] = None,
) -> str:
    """Render a conversion as plain text or CSV."""
    rest = get_rest_targets(result.damper, calibration)

    if fmt == "csv":
        header = "Rep,Target Watts,Target RPM,Target Pace,Duration (s),Distance (m)"
        rows = [
            f"{i.rep},{i.target_watts},{i.target_rpm},{format_number(i.target_pace)},"
            f"{i.duration_seconds or ''},{i.distance_meters or ''}"
            for i in result.intervals
        ]
        rest_row = f"Rest,{rest.watts},{rest.rpm_min}-{rest.rpm_max},Easy,{result.rest_seconds},"
        return "\n".join([header, *rows, rest_row])

    if fmt != "text":
        raise ValueError(f"Unsupported export format: {fmt}")

    lines = []
    for interval in result.intervals:
        if interval.duration_seconds:
            work = format_duration(interval.duration_seconds)
        elif interval.distance_meters:
            work = f"{interval.distance_meters}m"
        else:
            work = "Interval"
        lines.append(f"{interval.rep}. {work} @ {interval.target_rpm} RPM ({interval.target_watts}W)")

    heading = f"{Modality(result.target_modality).display_name} Workout (Damper {result.damper}):"
    rest_line = f"Rest: {result.rest_seconds}s @ {rest.rpm_min}-{rest.rpm_max} RPM ({rest.watts}W)"
    return f"{heading}\n\n" + "\n".join(lines) + f"\n\n{rest_line}"


class WorkoutConverter:
    """Converts workouts, resolving calibrations from an explicit store.

    Usage:
        converter = WorkoutConverter(store)
        result, calibration = converter.convert_with_stored_calibration(workout)
        print(converter.export(result, "csv", calibration))
    """

    def __init__(self, store=None):
        """Initialize the converter.

        Args:
            store: Optional CalibrationStore used to look up calibrations.
        """
        self.store = store

    def convert(self, workout: Workout, calibration: Optional[Calibration] = None) -> ConversionResult:
        return convert_workout(workout, calibration)

    def find_calibration(self, workout: Workout) -> Optional[CalibrationProfile]:
        """Newest stored calibration matching the workout's damper.

        RPM-specified workouts need the bike curve that maps cadence to
        power; every other workout uses the target machine's curve.
        """
        if self.store is None:
            return None
        damper = workout.damper_for_target or DEFAULT_DAMPER
        spec = _resolve_target_spec(workout.target_spec)
        modality = Modality.BIKE if spec is TargetSpec.RPM else workout.target_modality
        return self.store.latest_by_damper(damper, modality=modality)

    def convert_with_stored_calibration(
        self, workout: Workout
    ) -> Tuple[ConversionResult, Optional[CalibrationProfile]]:
        """Convert using the newest stored calibration, if any."""
        calibration = self.find_calibration(workout)
        if calibration is None:
            logger.info(
                f"No calibration stored for damper {workout.damper_for_target or DEFAULT_DAMPER}, "
                "using generic curve"
            )
        return convert_workout(workout, calibration), calibration

    def rest_targets(self, damper: int, calibration: Optional[Calibration] = None) -> RestTargets:
        return get_rest_targets(damper, calibration)

    def export(
        self,
        result: ConversionResult,
        fmt: str = "text",
        calibration: Optional[Calibration] = None,
    ) -> str:
        return format_conversion_for_export(result, fmt, calibration)
