"""Domain models for calibrations, workouts and conversion results."""

import time
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import ValidationError


ProfileId = Union[int, str]


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class Modality(str, Enum):
    """Ergometer modalities."""
    ROW = "row"
    BIKE = "bike"

    @property
    def display_name(self) -> str:
        return "RowErg" if self is Modality.ROW else "BikeErg"


class TargetSpec(str, Enum):
    """How interval targets are expressed in a source workout."""
    PACE_500 = "pace_500"
    PACE_1000 = "pace_1000"
    WATTS = "watts"
    RPM = "rpm"


class SampleSource(str, Enum):
    """Where a calibration sample came from."""
    MANUAL = "manual"
    BLE = "ble"


class PreferredUnits(str, Enum):
    """Display units a user prefers."""
    WATTS = "watts"
    PACE = "pace"
    RPM = "rpm"


@dataclass(frozen=True)
class Sample:
    """A single calibration measurement.

    Bike samples carry ``rpm``; row samples carry ``pace_500`` (seconds
    per 500 m). ``watts`` is always present.
    """
    watts: float
    rpm: Optional[float] = None
    pace_500: Optional[float] = None
    source: SampleSource = SampleSource.MANUAL
    timestamp: int = field(default_factory=now_ms)

    def __post_init__(self):
        object.__setattr__(self, "source", SampleSource(self.source))

    @property
    def rate(self) -> Optional[float]:
        """The modality-specific rate field (rpm, else row pace)."""
        return self.rpm if self.rpm is not None else self.pace_500

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "watts": self.watts,
            "source": self.source.value,
            "timestamp": self.timestamp,
        }
        if self.rpm is not None:
            data["rpm"] = self.rpm
        if self.pace_500 is not None:
            data["pace_500"] = self.pace_500
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sample":
        return cls(
            watts=data["watts"],
            rpm=data.get("rpm"),
            pace_500=data.get("pace_500"),
            source=data.get("source", SampleSource.MANUAL.value),
            timestamp=int(data.get("timestamp") or now_ms()),
        )


@dataclass(frozen=True)
class CalibrationProfile:
    """A fitted power curve for one modality and damper setting.

    Profiles are never re-fitted in place; a newer profile supersedes an
    older one for the same damper.
    """
    modality: Modality
    damper: int
    a: float
    b: float
    r2: float
    samples: List[Sample] = field(default_factory=list)
    id: Optional[ProfileId] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "modality", Modality(self.modality))
        if not 1 <= int(self.damper) <= 10:
            raise ValidationError(
                f"Damper must be between 1 and 10, got {self.damper}",
                field="damper",
            )
        if self.a <= 0:
            raise ValidationError("Coefficient 'a' must be positive", field="a")

    def with_id(self, profile_id: ProfileId, created_at: int, updated_at: int) -> "CalibrationProfile":
        """Copy of this profile carrying storage-assigned fields."""
        return replace(self, id=profile_id, created_at=created_at, updated_at=updated_at)

    def without_identity(self) -> "CalibrationProfile":
        """Copy stripped of storage id and timestamps."""
        return replace(self, id=None, created_at=None, updated_at=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "modality": self.modality.value,
            "damper": self.damper,
            "a": self.a,
            "b": self.b,
            "r2": self.r2,
            "samples": [s.to_dict() for s in self.samples],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalibrationProfile":
        return cls(
            id=data.get("id"),
            modality=data.get("modality", Modality.BIKE.value),
            damper=int(data["damper"]),
            a=float(data["a"]),
            b=float(data["b"]),
            r2=float(data["r2"]),
            samples=[Sample.from_dict(s) for s in data.get("samples", [])],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class Interval:
    """One work interval. Distance drives the interval when present."""
    target_value: float
    distance: Optional[float] = None
    duration: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Interval":
        return cls(
            target_value=float(data["target_value"]),
            distance=data.get("distance"),
            duration=data.get("duration"),
        )


@dataclass
class Workout:
    """A workout to be converted from one modality to another."""
    id: str
    source_modality: Modality
    target_modality: Modality
    target_spec: TargetSpec
    intervals: List[Interval] = field(default_factory=list)
    rest: int = 0
    damper_for_target: Optional[int] = None

    def __post_init__(self):
        self.source_modality = Modality(self.source_modality)
        self.target_modality = Modality(self.target_modality)

    @property
    def is_cross_modality(self) -> bool:
        return self.source_modality != self.target_modality

    def to_dict(self) -> Dict[str, Any]:
        spec = self.target_spec.value if isinstance(self.target_spec, TargetSpec) else self.target_spec
        return {
            "id": self.id,
            "source_modality": self.source_modality.value,
            "target_modality": self.target_modality.value,
            "target_spec": spec,
            "damper_for_target": self.damper_for_target,
            "intervals": [i.to_dict() for i in self.intervals],
            "rest": self.rest,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workout":
        spec = data["target_spec"]
        try:
            spec = TargetSpec(spec)
        except ValueError:
            # Left as a raw string; conversion reports it as unsupported.
            pass
        return cls(
            id=str(data["id"]),
            source_modality=data["source_modality"],
            target_modality=data["target_modality"],
            target_spec=spec,
            intervals=[Interval.from_dict(i) for i in data.get("intervals", [])],
            rest=int(data.get("rest", 0)),
            damper_for_target=data.get("damper_for_target"),
        )


@dataclass
class ConvertedInterval:
    """Targets for one interval on the target machine."""
    rep: int
    target_watts: int
    target_rpm: int
    target_pace: float
    duration_seconds: Optional[int] = None
    distance_meters: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConversionResult:
    """A fully converted workout."""
    intervals: List[ConvertedInterval]
    rest_seconds: int
    damper: int
    target_modality: Modality = Modality.BIKE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intervals": [i.to_dict() for i in self.intervals],
            "rest_seconds": self.rest_seconds,
            "damper": self.damper,
            "target_modality": Modality(self.target_modality).value,
        }


@dataclass
class UserProfile:
    """Per-user display preferences."""
    id: str
    preferred_units: PreferredUnits = PreferredUnits.WATTS
    last_damper: int = 5
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def __post_init__(self):
        self.preferred_units = PreferredUnits(self.preferred_units)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "preferred_units": self.preferred_units.value,
            "last_damper": self.last_damper,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=str(data["id"]),
            preferred_units=data.get("preferred_units", PreferredUnits.WATTS.value),
            last_damper=int(data.get("last_damper", 5)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
