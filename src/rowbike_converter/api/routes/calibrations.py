"""
Calibration API routes.

The remote store used by sync:
- GET    /api/calibrations        list the caller's calibrations
- POST   /api/calibrations        store an uploaded calibration
- DELETE /api/calibrations/{id}   delete one calibration
"""

import logging

from fastapi import APIRouter, Depends

from ..deps import get_calibration_store
from ...db.store import CalibrationStore
from ...exceptions import CalibrationNotFoundError
from ...schemas import (
    CalibrationListResponse,
    CalibrationPayload,
    CreateCalibrationResponse,
    DeleteCalibrationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CalibrationListResponse)
def list_calibrations(store: CalibrationStore = Depends(get_calibration_store)):
    """List calibrations, newest first."""
    profiles = store.list_all()
    return CalibrationListResponse(
        calibrations=[CalibrationPayload.from_profile(p) for p in profiles]
    )


@router.post("", response_model=CreateCalibrationResponse)
def create_calibration(
    payload: CalibrationPayload,
    store: CalibrationStore = Depends(get_calibration_store),
):
    """Store a calibration. The store assigns a fresh id and timestamps."""
    saved = store.save(payload.to_profile().without_identity())
    logger.info(f"Stored calibration {saved.id} (damper {saved.damper}) for user {store.user_id}")
    return CreateCalibrationResponse(success=True, calibration_id=str(saved.id))


@router.delete("/{calibration_id}", response_model=DeleteCalibrationResponse)
def delete_calibration(
    calibration_id: str,
    store: CalibrationStore = Depends(get_calibration_store),
):
    """Delete a calibration and its samples."""
    if not store.delete(calibration_id):
        raise CalibrationNotFoundError(calibration_id)
    return DeleteCalibrationResponse(success=True)
