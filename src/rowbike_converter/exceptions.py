"""
Custom exceptions for the Row/Bike converter.

Every error carries:
- A descriptive message
- An error code for API responses
- HTTP status code mapping
- Optional details for debugging
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Calibration / conversion errors
    INSUFFICIENT_SAMPLES = "INSUFFICIENT_SAMPLES"
    MISSING_FIELD_DATA = "MISSING_FIELD_DATA"
    CALIBRATION_REQUIRED = "CALIBRATION_REQUIRED"
    CALIBRATION_NOT_FOUND = "CALIBRATION_NOT_FOUND"
    INVALID_PACE_FORMAT = "INVALID_PACE_FORMAT"
    UNSUPPORTED_TARGET_SPEC = "UNSUPPORTED_TARGET_SPEC"

    # Sync / storage errors
    OFFLINE = "OFFLINE"
    REMOTE_REQUEST_FAILED = "REMOTE_REQUEST_FAILED"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class RowBikeError(Exception):
    """
    Base exception for all converter errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Validation Errors (400)
# ============================================================================

class ValidationError(RowBikeError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=error_details,
        )


class InsufficientSamplesError(ValidationError):
    """Raised when a power curve fit is attempted on fewer than 3 samples."""

    def __init__(
        self,
        message: str = "Need at least 3 samples for calibration",
        sample_count: Optional[int] = None,
    ) -> None:
        details = {"sample_count": sample_count} if sample_count is not None else None
        super().__init__(message=message, field="samples", details=details)
        self.code = ErrorCode.INSUFFICIENT_SAMPLES


class DegenerateSamplesError(InsufficientSamplesError):
    """Raised when every sample shares the same regressor value."""

    def __init__(self, modality: str) -> None:
        super().__init__(
            message=f"{modality} samples must span at least two distinct values to fit a curve",
        )
        self.details["modality"] = modality


class MissingFieldDataError(ValidationError):
    """Raised when a sample lacks the field its modality requires."""

    def __init__(self, field: str, modality: str, index: Optional[int] = None) -> None:
        details: Dict[str, Any] = {"modality": modality}
        if index is not None:
            details["sample_index"] = index
        super().__init__(
            message=f"{modality} calibration samples require '{field}'",
            field=field,
            details=details,
        )
        self.code = ErrorCode.MISSING_FIELD_DATA


class CalibrationRequiredError(ValidationError):
    """Raised when an RPM-specified workout is converted without a calibration."""

    def __init__(self, message: str = "Calibration required for RPM conversion") -> None:
        super().__init__(message=message, field="calibration")
        self.code = ErrorCode.CALIBRATION_REQUIRED


class InvalidPaceFormatError(ValidationError):
    """Raised when a pace string is not in M:SS(.T) form."""

    def __init__(self, value: str) -> None:
        super().__init__(
            message="Invalid pace format",
            field="pace",
            details={"value": value},
        )
        self.code = ErrorCode.INVALID_PACE_FORMAT


class UnsupportedTargetSpecError(ValidationError):
    """Raised when a workout uses an unknown target specification."""

    def __init__(self, target_spec: str) -> None:
        super().__init__(
            message=f"Unsupported target spec: {target_spec}",
            field="target_spec",
        )
        self.code = ErrorCode.UNSUPPORTED_TARGET_SPEC


# ============================================================================
# Not Found Errors (404)
# ============================================================================

class NotFoundError(RowBikeError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        message = f"{resource_type} with ID '{resource_id}' not found"
        error_details = details or {}
        error_details["resource_type"] = resource_type
        error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            status_code=404,
            details=error_details,
        )


class CalibrationNotFoundError(NotFoundError):
    """Raised when a calibration profile is not found."""

    def __init__(self, calibration_id: str) -> None:
        super().__init__(resource_type="Calibration", resource_id=str(calibration_id))
        self.code = ErrorCode.CALIBRATION_NOT_FOUND


# ============================================================================
# Sync / Storage Errors
# ============================================================================

class OfflineError(RowBikeError):
    """Raised when a sync is attempted without network connectivity."""

    def __init__(self, message: str = "Cannot sync while offline") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.OFFLINE,
            status_code=503,
        )


class RemoteRequestFailure(RowBikeError):
    """Raised on transport errors, non-2xx responses or malformed payloads."""

    def __init__(
        self,
        message: str,
        remote_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.remote_status = remote_status
        error_details = details or {}
        if remote_status is not None:
            error_details["remote_status"] = remote_status
        super().__init__(
            message=message,
            code=ErrorCode.REMOTE_REQUEST_FAILED,
            status_code=502,
            details=error_details,
        )


class StorageFailure(RowBikeError):
    """Raised when a local persistence operation fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        super().__init__(
            message=message,
            code=ErrorCode.STORAGE_FAILURE,
            status_code=500,
            details=error_details,
        )
