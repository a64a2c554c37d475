"""Calibration persistence: the store contract and its backends."""

from .store import CalibrationStore
from .sqlite_store import SQLiteCalibrationStore
from .supabase_store import SupabaseCalibrationStore

__all__ = [
    "CalibrationStore",
    "SQLiteCalibrationStore",
    "SupabaseCalibrationStore",
]
