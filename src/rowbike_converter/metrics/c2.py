"""Concept2 pace <-> watts conversions.

Based on Concept2's standard formula: watts = 2.8 / (pace / 500)^3, where
pace is seconds per 500 m. BikeErg paces are quoted per 1000 m and are
halved to their 500 m equivalent before the formula is applied.
"""

import math

from ..exceptions import InvalidPaceFormatError

C2_POWER_CONSTANT = 2.8


def pace_to_watts(pace_seconds: float, is_primary_unit_500m: bool = True) -> float:
    """Convert a pace to watts.

    Args:
        pace_seconds: Pace in seconds per 500 m (RowErg) or per 1000 m (BikeErg).
        is_primary_unit_500m: True when the pace is per 500 m.

    Returns:
        Power in watts.
    """
    pace_per_500 = pace_seconds if is_primary_unit_500m else pace_seconds / 2
    return C2_POWER_CONSTANT / math.pow(pace_per_500 / 500, 3)


def watts_to_pace(watts: float, is_primary_unit_500m: bool = True) -> float:
    """Convert watts to a pace; exact inverse of pace_to_watts."""
    pace_per_500 = math.pow(C2_POWER_CONSTANT / watts, 1 / 3) * 500
    if is_primary_unit_500m:
        return pace_per_500
    return pace_per_500 * 2


def watts_to_calories_per_hour(watts: float) -> float:
    """C2 approximation: Cal/hr = 4 * watts + 300."""
    return 4 * watts + 300


def format_pace(pace_seconds: float) -> str:
    """Format seconds as M:SS.T with the tenths digit truncated."""
    # Round away float noise first so 110.3 keeps its tenth
    total_tenths = int(math.floor(round(pace_seconds * 10, 6)))
    minutes = total_tenths // 600
    seconds = (total_tenths // 10) % 60
    tenths = total_tenths % 10
    return f"{minutes}:{seconds:02d}.{tenths}"


def parse_pace(pace_string: str) -> float:
    """Parse "1:50" or "1:50.0" into seconds.

    Raises:
        InvalidPaceFormatError: If the string is not two colon-separated
            non-negative numbers.
    """
    parts = pace_string.strip().split(":")
    if len(parts) != 2:
        raise InvalidPaceFormatError(pace_string)

    try:
        minutes = float(parts[0])
        seconds = float(parts[1])
    except ValueError:
        raise InvalidPaceFormatError(pace_string) from None

    if not (math.isfinite(minutes) and math.isfinite(seconds)):
        raise InvalidPaceFormatError(pace_string)
    if minutes < 0 or seconds < 0:
        raise InvalidPaceFormatError(pace_string)

    return minutes * 60 + seconds
