"""Workout conversion and data transfer services."""

from .converter import (
    RestTargets,
    WorkoutConverter,
    convert_workout,
    format_conversion_for_export,
    get_rest_targets,
)
from .data_transfer import export_data, import_data

__all__ = [
    "RestTargets",
    "WorkoutConverter",
    "convert_workout",
    "format_conversion_for_export",
    "get_rest_targets",
    "export_data",
    "import_data",
]
