"""Row/Bike Converter.

Convert RowErg and BikeErg workouts using personal power-curve
calibrations, and keep calibrations in sync with a remote store.
"""

__version__ = "0.1.0"

from .exceptions import RowBikeError
from .models import (
    CalibrationProfile,
    ConversionResult,
    ConvertedInterval,
    Interval,
    Modality,
    Sample,
    TargetSpec,
    UserProfile,
    Workout,
)

__all__ = [
    "__version__",
    "RowBikeError",
    "CalibrationProfile",
    "ConversionResult",
    "ConvertedInterval",
    "Interval",
    "Modality",
    "Sample",
    "TargetSpec",
    "UserProfile",
    "Workout",
]
