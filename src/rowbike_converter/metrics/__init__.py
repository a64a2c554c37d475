"""Ergometer metrics: Concept2 unit conversions and power curve calibration."""

from .c2 import (
    pace_to_watts,
    watts_to_pace,
    watts_to_calories_per_hour,
    format_pace,
    parse_pace,
)
from .calibration import (
    Coefficients,
    PowerCurveFit,
    fit_power_curve,
    estimate_stroke_rate,
    predict_watts,
    predict_rpm,
    predict_stroke_rate,
    predict_rate,
    validate_calibration,
    get_generic_calibration,
    get_generic_row_calibration,
    get_generic_for_modality,
    clamp_rpm,
    clamp_stroke_rate,
    clamp_rate,
    get_rpm_band,
    get_stroke_rate_band,
)

__all__ = [
    # Unit conversion
    "pace_to_watts",
    "watts_to_pace",
    "watts_to_calories_per_hour",
    "format_pace",
    "parse_pace",
    # Calibration
    "Coefficients",
    "PowerCurveFit",
    "fit_power_curve",
    "estimate_stroke_rate",
    "predict_watts",
    "predict_rpm",
    "predict_stroke_rate",
    "predict_rate",
    "validate_calibration",
    "get_generic_calibration",
    "get_generic_row_calibration",
    "get_generic_for_modality",
    "clamp_rpm",
    "clamp_stroke_rate",
    "clamp_rate",
    "get_rpm_band",
    "get_stroke_rate_band",
]
