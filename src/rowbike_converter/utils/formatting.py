"""Number formatting and rounding helpers shared by export and sync."""

import math
from typing import Optional, Union

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def round_to_tenth(value: float) -> float:
    """Round to 0.1 using half-up rounding."""
    return math.floor(value * 10 + 0.5) / 10


def format_number(value: Optional[Number]) -> str:
    """Render a number without a trailing '.0' for integral values.

    Integral floats (80.0) and ints (80) must render identically so that
    values round-tripped through JSON or a database produce the same text.
    """
    if value is None:
        return "None"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def format_duration(seconds: int) -> str:
    """Format whole seconds as M:SS."""
    return f"{seconds // 60}:{seconds % 60:02d}"
