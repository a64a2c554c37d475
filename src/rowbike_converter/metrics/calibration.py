"""Power curve calibration: fitting, prediction and generic fallbacks.

Bike curves relate cadence to power, ``watts = a * rpm^b``. Row curves
relate power to an estimated stroke rate, ``spm = a * watts^b``. Both are
fitted by ordinary least squares in log-log space.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Tuple

from ..exceptions import (
    DegenerateSamplesError,
    InsufficientSamplesError,
    MissingFieldDataError,
)
from ..models import CalibrationProfile, Modality, Sample
from .c2 import C2_POWER_CONSTANT

MIN_SAMPLES = 3
MIN_VALID_R2 = 0.95

RPM_MIN = 60
RPM_MAX = 120
STROKE_RATE_MIN = 18
STROKE_RATE_MAX = 32

# Generic curves used when a user has no fitted calibration
GENERIC_BIKE_A = 0.0026
GENERIC_BIKE_B = 3.2
GENERIC_BIKE_DAMPER_STEP = 0.1
GENERIC_ROW_A = 3.75
GENERIC_ROW_B = 0.35
GENERIC_ROW_DAMPER_STEP = 0.05


@dataclass(frozen=True)
class PowerCurveFit:
    """Coefficients of a fitted power curve and its fit quality."""
    a: float
    b: float
    r2: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Coefficients:
    """Power curve coefficients without fit statistics."""
    a: float
    b: float


# =============================================================================
# Fitting
# =============================================================================

def _log_linear_regression(xs: Sequence[float], ys: Sequence[float]) -> Tuple[float, float, float]:
    """Closed-form OLS of ln(y) on ln(x).

    Returns:
        Tuple of (a, b, r2) where ln(y) = ln(a) + b * ln(x).
    """
    log_x = [math.log(x) for x in xs]
    log_y = [math.log(y) for y in ys]
    n = len(log_x)

    sum_x = sum(log_x)
    sum_y = sum(log_y)
    sum_xx = sum(x * x for x in log_x)
    sum_xy = sum(x * y for x, y in zip(log_x, log_y))

    if min(log_x) == max(log_x):
        raise ZeroDivisionError("regressor has zero variance")

    b = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    log_a = (sum_y - b * sum_x) / n

    mean_y = sum_y / n
    ss_tot = sum((y - mean_y) ** 2 for y in log_y)
    ss_res = sum((y - (log_a + b * x)) ** 2 for x, y in zip(log_x, log_y))
    # Constant responses have no variance to explain
    if ss_tot == 0 or min(log_y) == max(log_y):
        r2 = 0.0
    else:
        r2 = 1 - ss_res / ss_tot

    return math.exp(log_a), b, r2


def estimate_stroke_rate(pace_500: float, watts: float) -> float:
    """Estimate stroke rate from a row pace and the power actually produced.

    Empirical relation: the base rate for a pace is scaled by how efficiently
    the rower converts effort into C2 power at that pace.
    """
    pace_ratio = pace_500 / 500
    base_sr = 2.0 / math.sqrt(pace_ratio) * 12
    efficiency = watts / (C2_POWER_CONSTANT / math.pow(pace_ratio, 3))
    estimated_sr = base_sr * math.pow(efficiency, 0.3)
    return clamp_stroke_rate(estimated_sr)


def fit_power_curve(samples: List[Sample], modality: Modality = Modality.BIKE) -> PowerCurveFit:
    """Fit a power curve to calibration samples.

    Args:
        samples: At least three samples for the given modality.
        modality: ``bike`` fits watts on rpm; ``row`` fits stroke rate on watts.

    Returns:
        PowerCurveFit with coefficients a, b and R² in log space.

    Raises:
        InsufficientSamplesError: Fewer than three samples.
        MissingFieldDataError: A sample lacks the modality's rate field.
        DegenerateSamplesError: All regressor values are identical.
    """
    if len(samples) < MIN_SAMPLES:
        raise InsufficientSamplesError(sample_count=len(samples))

    modality = Modality(modality)

    if modality is Modality.BIKE:
        for index, sample in enumerate(samples):
            if sample.rpm is None:
                raise MissingFieldDataError("rpm", modality.value, index)
        xs = [s.rpm for s in samples]
        ys = [s.watts for s in samples]
    else:
        for index, sample in enumerate(samples):
            if sample.pace_500 is None:
                raise MissingFieldDataError("pace_500", modality.value, index)
        xs = [s.watts for s in samples]
        ys = [estimate_stroke_rate(s.pace_500, s.watts) for s in samples]

    try:
        a, b, r2 = _log_linear_regression(xs, ys)
    except ZeroDivisionError:
        raise DegenerateSamplesError(modality.value) from None

    return PowerCurveFit(a=a, b=b, r2=r2)


# =============================================================================
# Prediction
# =============================================================================

def predict_watts(rpm: float, a: float, b: float) -> float:
    """Bike: watts produced at a cadence."""
    return a * math.pow(rpm, b)


def predict_rpm(watts: float, a: float, b: float) -> float:
    """Bike: cadence needed for a power (inverse of predict_watts)."""
    return math.pow(watts / a, 1 / b)


def predict_stroke_rate(watts: float, a: float, b: float) -> float:
    """Row: stroke rate expected at a power."""
    return a * math.pow(watts, b)


def predict_rate(watts: float, a: float, b: float, modality: Modality) -> float:
    """Rate on the given machine for a power: stroke rate (row) or rpm (bike)."""
    if Modality(modality) is Modality.ROW:
        return predict_stroke_rate(watts, a, b)
    return predict_rpm(watts, a, b)


def validate_calibration(calibration: CalibrationProfile) -> bool:
    """A calibration is usable when R² >= 0.95 over at least three samples."""
    return calibration.r2 >= MIN_VALID_R2 and len(calibration.samples) >= MIN_SAMPLES


# =============================================================================
# Generic calibrations
# =============================================================================

def get_generic_calibration(damper: int) -> Coefficients:
    """Fallback BikeErg curve. Rough estimate; calibrating is recommended."""
    damper_multiplier = 1 + (damper - 5) * GENERIC_BIKE_DAMPER_STEP
    return Coefficients(a=GENERIC_BIKE_A * damper_multiplier, b=GENERIC_BIKE_B)


def get_generic_row_calibration(damper: int) -> Coefficients:
    """Fallback RowErg curve."""
    damper_multiplier = 1 + (damper - 5) * GENERIC_ROW_DAMPER_STEP
    return Coefficients(a=GENERIC_ROW_A * damper_multiplier, b=GENERIC_ROW_B)


def get_generic_for_modality(modality: Modality, damper: int) -> Coefficients:
    if Modality(modality) is Modality.ROW:
        return get_generic_row_calibration(damper)
    return get_generic_calibration(damper)


# =============================================================================
# Clamping and bands
# =============================================================================

def clamp_rpm(rpm: float) -> float:
    return max(RPM_MIN, min(RPM_MAX, rpm))


def clamp_stroke_rate(stroke_rate: float) -> float:
    return max(STROKE_RATE_MIN, min(STROKE_RATE_MAX, stroke_rate))


def clamp_rate(rate: float, modality: Modality) -> float:
    if Modality(modality) is Modality.ROW:
        return clamp_stroke_rate(rate)
    return clamp_rpm(rate)


def get_rpm_band(target_rpm: float, band_size: float = 2) -> Dict[str, float]:
    """Inclusive cadence band around a target, clamped to [60, 120]."""
    clamped = clamp_rpm(target_rpm)
    return {
        "min": max(RPM_MIN, clamped - band_size),
        "max": min(RPM_MAX, clamped + band_size),
    }


def get_stroke_rate_band(target_rate: float, band_size: float = 2) -> Dict[str, float]:
    """Inclusive stroke rate band around a target, clamped to [18, 32]."""
    clamped = clamp_stroke_rate(target_rate)
    return {
        "min": max(STROKE_RATE_MIN, clamped - band_size),
        "max": min(STROKE_RATE_MAX, clamped + band_size),
    }
