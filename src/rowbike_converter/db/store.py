"""Calibration store contract.

The store abstracts where calibrations, user profiles and workouts live so
the converter and the sync reconciler can run against the on-device SQLite
database or the server-side Supabase tables without code changes.

Usage:
    # SQLite (on-device)
    store = SQLiteCalibrationStore(db_path="rowbike.db")

    # Supabase (server-side)
    store = SupabaseCalibrationStore(url=SUPABASE_URL, key=SUPABASE_KEY, user_id=uid)

    latest = store.latest_by_damper(5, modality=Modality.BIKE)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import (
    CalibrationProfile,
    Modality,
    ProfileId,
    UserProfile,
    Workout,
)


class CalibrationStore(ABC):
    """Abstract base class for calibration stores.

    Key differences between backends:

    SQLite:
        - INTEGER AUTOINCREMENT ids
        - Timestamps stored as integer milliseconds
        - Sample cascade via ON DELETE CASCADE (foreign_keys pragma)

    Supabase:
        - UUID ids
        - TIMESTAMPTZ columns, converted to milliseconds at the boundary
        - Row-Level Security; the store filters by user_id explicitly

    Every store instance is scoped to a single user.
    """

    user_id: str = "default"

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the backend (create tables or verify connectivity)."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release backend resources."""
        pass

    # =========================================================================
    # Calibrations
    # =========================================================================

    @abstractmethod
    def save(self, profile: CalibrationProfile) -> CalibrationProfile:
        """Insert a profile, or replace it when it already carries an id.

        ``created_at`` is kept when present, ``updated_at`` is always set to
        now.

        Returns:
            The saved profile including its storage id and timestamps.
        """
        pass

    @abstractmethod
    def get(self, profile_id: ProfileId) -> Optional[CalibrationProfile]:
        """Get a single profile with its samples, or None."""
        pass

    @abstractmethod
    def list_by_damper(self, damper: int) -> List[CalibrationProfile]:
        """Profiles for a damper setting, newest first."""
        pass

    @abstractmethod
    def list_all(self) -> List[CalibrationProfile]:
        """All profiles, sorted by created_at descending."""
        pass

    @abstractmethod
    def delete(self, profile_id: ProfileId) -> bool:
        """Delete a profile and its samples.

        Returns:
            True if deleted, False if not found.
        """
        pass

    def latest_by_damper(
        self,
        damper: int,
        modality: Optional[Modality] = None,
    ) -> Optional[CalibrationProfile]:
        """Newest profile for a damper, optionally restricted to a modality."""
        for profile in self.list_by_damper(damper):
            if modality is None or profile.modality is Modality(modality):
                return profile
        return None

    # =========================================================================
    # User profiles and workouts
    # =========================================================================

    @abstractmethod
    def save_user_profile(self, profile: UserProfile) -> UserProfile:
        pass

    @abstractmethod
    def get_user_profile(self, profile_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def list_user_profiles(self) -> List[UserProfile]:
        pass

    @abstractmethod
    def save_workout(self, workout: Workout) -> Workout:
        pass

    @abstractmethod
    def list_workouts(self) -> List[Workout]:
        pass

    # =========================================================================
    # Maintenance
    # =========================================================================

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every profile, calibration and workout for this user."""
        pass

    def get_info(self) -> Dict[str, Any]:
        """Counts of stored records."""
        return {
            "backend": self.__class__.__name__,
            "user_id": self.user_id,
            "profile_count": len(self.list_user_profiles()),
            "calibration_count": len(self.list_all()),
            "workout_count": len(self.list_workouts()),
        }
