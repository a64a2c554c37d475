"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from ..config import Settings, get_settings
from ..db.sqlite_store import SQLiteCalibrationStore
from ..db.store import CalibrationStore
from ..db.supabase_store import SupabaseCalibrationStore
from ..exceptions import ValidationError
from ..sync.remote import USER_ID_HEADER


@lru_cache
def _initialize_sqlite(db_path: str) -> None:
    SQLiteCalibrationStore(db_path).initialize()


def build_store(user_id: str, settings: Optional[Settings] = None) -> CalibrationStore:
    """Build the configured store backend scoped to one user."""
    settings = settings or get_settings()

    if settings.storage_backend == "supabase":
        return SupabaseCalibrationStore(
            url=settings.supabase_url,
            key=settings.supabase_service_key,
            user_id=user_id,
        )

    _initialize_sqlite(str(settings.database_path))
    return SQLiteCalibrationStore(settings.database_path, user_id=user_id)


def get_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """The calling user, taken from the X-User-Id header."""
    if not x_user_id or not x_user_id.strip():
        raise ValidationError(f"{USER_ID_HEADER} header is required", field=USER_ID_HEADER)
    return x_user_id.strip()


def get_calibration_store(user_id: str = Depends(get_user_id)) -> CalibrationStore:
    """Get a calibration store for the calling user."""
    return build_store(user_id)
