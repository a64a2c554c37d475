"""Wire schemas for the remote calibration endpoint.

Shared by the FastAPI routes that serve the endpoint and the httpx client
that calls it, so both ends validate the same shapes.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .models import CalibrationProfile, Modality, Sample, SampleSource


class SamplePayload(BaseModel):
    """A calibration sample on the wire."""
    rpm: Optional[float] = None
    pace_500: Optional[float] = None
    watts: float
    source: SampleSource = SampleSource.MANUAL
    timestamp: int

    def to_sample(self) -> Sample:
        return Sample(
            watts=self.watts,
            rpm=self.rpm,
            pace_500=self.pace_500,
            source=self.source,
            timestamp=self.timestamp,
        )

    @classmethod
    def from_sample(cls, sample: Sample) -> "SamplePayload":
        return cls(
            rpm=sample.rpm,
            pace_500=sample.pace_500,
            watts=sample.watts,
            source=sample.source,
            timestamp=sample.timestamp,
        )


class CalibrationPayload(BaseModel):
    """A calibration profile on the wire."""
    id: Optional[Union[int, str]] = None
    modality: Modality = Modality.BIKE
    damper: int = Field(..., ge=1, le=10)
    a: float = Field(..., gt=0)
    b: float
    r2: float
    samples: List[SamplePayload] = Field(default_factory=list)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def to_profile(self) -> CalibrationProfile:
        return CalibrationProfile(
            id=self.id,
            modality=self.modality,
            damper=self.damper,
            a=self.a,
            b=self.b,
            r2=self.r2,
            samples=[s.to_sample() for s in self.samples],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_profile(cls, profile: CalibrationProfile) -> "CalibrationPayload":
        return cls(
            id=profile.id,
            modality=profile.modality,
            damper=profile.damper,
            a=profile.a,
            b=profile.b,
            r2=profile.r2,
            samples=[SamplePayload.from_sample(s) for s in profile.samples],
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class CalibrationListResponse(BaseModel):
    """Response body for ``GET /api/calibrations``."""
    calibrations: List[CalibrationPayload] = Field(default_factory=list)


class CreateCalibrationResponse(BaseModel):
    """Response body for ``POST /api/calibrations``."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    calibration_id: str = Field(..., alias="calibrationId")


class DeleteCalibrationResponse(BaseModel):
    """Response body for ``DELETE /api/calibrations/{id}``."""
    success: bool = True
