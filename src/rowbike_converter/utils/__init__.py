"""Utility helpers."""

from .formatting import (
    format_duration,
    format_number,
    round_half_up,
    round_to_tenth,
)

__all__ = [
    "format_duration",
    "format_number",
    "round_half_up",
    "round_to_tenth",
]
