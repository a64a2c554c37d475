"""Content fingerprints used to match calibrations across stores.

Ids differ between the local and remote stores, so two profiles are the
same calibration when their damper and sample content hash agree.
"""

from typing import Iterable

from ..models import CalibrationProfile, Sample
from ..utils.formatting import format_number

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return sign + "".join(reversed(digits))


def rolling_hash(text: str) -> int:
    """32-bit signed rolling hash, ``h = h * 31 + code`` with wraparound."""
    h = 0
    for char in text:
        h = _to_int32((h << 5) - h + ord(char))
    return h


def hash_samples(samples: Iterable[Sample]) -> str:
    """Order-independent base-36 hash of ``"rate,watts"`` sample strings."""
    parts = sorted(f"{format_number(s.rate)},{format_number(s.watts)}" for s in samples)
    return _to_base36(rolling_hash("|".join(parts)))


def calibration_fingerprint(profile: CalibrationProfile) -> str:
    """``"<damper>-<samples hash>"``; ids and timestamps play no part."""
    return f"{profile.damper}-{hash_samples(profile.samples)}"
