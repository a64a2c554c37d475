"""Supabase/PostgreSQL calibration store.

The server-side store behind the remote calibration endpoint.

PostgreSQL/Supabase-Specific Considerations:
    - UUID ids generated by the database
    - TIMESTAMPTZ columns; converted to integer milliseconds at the boundary
    - Coefficients stored as coefficient_a / coefficient_b / r_squared
    - The REST API has no multi-statement transactions, so a failed sample
      insert is compensated by deleting the freshly inserted profile

Environment Variables:
    ROWBIKE_SUPABASE_URL          - Project URL (https://xxx.supabase.co)
    ROWBIKE_SUPABASE_SERVICE_KEY  - Service role key (bypasses RLS)
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from ..exceptions import StorageFailure
from ..models import (
    CalibrationProfile,
    ProfileId,
    Sample,
    UserProfile,
    Workout,
    now_ms,
)
from .store import CalibrationStore

logger = logging.getLogger(__name__)

PROFILES_TABLE = "calibration_profiles"
SAMPLES_TABLE = "calibration_samples"
USER_PROFILES_TABLE = "user_profiles"
WORKOUTS_TABLE = "workouts"


def ms_to_iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def iso_to_ms(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return round(parsed.timestamp() * 1000)


class SupabaseCalibrationStore(CalibrationStore):
    """Supabase implementation of the CalibrationStore contract.

    Usage:
        store = SupabaseCalibrationStore(
            url="https://xxx.supabase.co",
            key="service-key",
            user_id="user-123",
        )
        profiles = store.list_all()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        user_id: str = "default",
        client: Optional[Client] = None,
    ):
        """Initialize the store.

        Args:
            url: Supabase project URL.
            key: Supabase service key.
            user_id: Owner of every record read or written by this store.
            client: Pre-built client; skips url/key handling when given.

        Raises:
            ValueError: If neither a client nor url and key are provided.
        """
        if client is None and not (url and key):
            raise ValueError(
                "Supabase URL and key not provided. Set ROWBIKE_SUPABASE_URL and "
                "ROWBIKE_SUPABASE_SERVICE_KEY, or pass a client."
            )
        self.url = url
        self.key = key
        self.user_id = user_id
        self._client: Optional[Client] = client

    @property
    def client(self) -> Client:
        """Lazy-initialize Supabase client."""
        if self._client is None:
            self._client = create_client(self.url, self.key)
        return self._client

    def initialize(self) -> None:
        """Verify the connection. Tables are created from POSTGRES_SCHEMA by a migration."""
        self._execute(
            self.client.table(PROFILES_TABLE).select("id").limit(1),
            "initialize",
        )

    def close(self) -> None:
        self._client = None

    def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        """Run a query builder and return its rows."""
        try:
            result = query.execute()
        except Exception as e:
            raise StorageFailure(f"Supabase {operation} failed: {e}", operation=operation) from e
        return result.data or []

    # =========================================================================
    # Calibrations
    # =========================================================================

    def save(self, profile: CalibrationProfile) -> CalibrationProfile:
        now = now_ms()
        created_at = profile.created_at or now
        data = {
            "user_id": self.user_id,
            "modality": profile.modality.value,
            "damper": profile.damper,
            "coefficient_a": profile.a,
            "coefficient_b": profile.b,
            "r_squared": profile.r2,
            "created_at": ms_to_iso(created_at),
            "updated_at": ms_to_iso(now),
        }

        profile_id = str(profile.id) if profile.id is not None else None
        if profile_id is not None:
            owner = self._owner_of(profile_id, "save")
            if owner is not None and owner != self.user_id:
                logger.warning(f"Calibration {profile_id} belongs to another user; inserting as new")
                profile_id = None

        if profile_id is None:
            rows = self._execute(self.client.table(PROFILES_TABLE).insert(data), "save")
            if not rows:
                raise StorageFailure("Supabase returned no row for inserted profile", operation="save")
            profile_id = rows[0]["id"]
            is_new = True
        else:
            data["id"] = profile_id
            self._execute(self.client.table(PROFILES_TABLE).upsert(data), "save")
            self._execute(
                self.client.table(SAMPLES_TABLE).delete().eq("calibration_id", profile_id),
                "save",
            )
            is_new = False

        if profile.samples:
            sample_rows = [
                {
                    "calibration_id": profile_id,
                    "rpm": s.rpm,
                    "pace_500": s.pace_500,
                    "watts": s.watts,
                    "source": s.source.value,
                    "timestamp_recorded": ms_to_iso(s.timestamp),
                }
                for s in profile.samples
            ]
            try:
                self._execute(self.client.table(SAMPLES_TABLE).insert(sample_rows), "save")
            except StorageFailure:
                if is_new:
                    logger.warning(f"Sample insert failed, removing profile {profile_id}")
                    self._execute(
                        self.client.table(PROFILES_TABLE).delete().eq("id", profile_id),
                        "cleanup",
                    )
                raise

        logger.debug(f"Saved calibration {profile_id} for user {self.user_id}")
        return profile.with_id(profile_id, created_at, now)

    def get(self, profile_id: ProfileId) -> Optional[CalibrationProfile]:
        rows = self._execute(
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("id", str(profile_id))
            .eq("user_id", self.user_id)
            .limit(1),
            "get",
        )
        if not rows:
            return None
        return self._rows_to_profiles(rows)[0]

    def list_by_damper(self, damper: int) -> List[CalibrationProfile]:
        rows = self._execute(
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("user_id", self.user_id)
            .eq("damper", damper)
            .order("created_at", desc=True),
            "list_by_damper",
        )
        return self._rows_to_profiles(rows)

    def list_all(self) -> List[CalibrationProfile]:
        rows = self._execute(
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("user_id", self.user_id)
            .order("created_at", desc=True),
            "list_all",
        )
        return self._rows_to_profiles(rows)

    def delete(self, profile_id: ProfileId) -> bool:
        # Ownership check before deleting; samples go via ON DELETE CASCADE
        if self._owner_of(str(profile_id), "delete") != self.user_id:
            return False

        self._execute(
            self.client.table(PROFILES_TABLE).delete().eq("id", str(profile_id)),
            "delete",
        )
        logger.debug(f"Deleted calibration {profile_id} for user {self.user_id}")
        return True

    def _owner_of(self, profile_id: str, operation: str) -> Optional[str]:
        """user_id owning a calibration row, or None if the row does not exist."""
        rows = self._execute(
            self.client.table(PROFILES_TABLE).select("user_id").eq("id", profile_id).limit(1),
            operation,
        )
        if not rows:
            return None
        return rows[0].get("user_id")

    def _rows_to_profiles(self, rows: List[Dict[str, Any]]) -> List[CalibrationProfile]:
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        sample_rows = self._execute(
            self.client.table(SAMPLES_TABLE)
            .select("*")
            .in_("calibration_id", ids)
            .order("timestamp_recorded"),
            "load_samples",
        )

        samples_by_profile: Dict[Any, List[Sample]] = {}
        for s in sample_rows:
            samples_by_profile.setdefault(s["calibration_id"], []).append(Sample(
                watts=s["watts"],
                rpm=s.get("rpm"),
                pace_500=s.get("pace_500"),
                source=s.get("source") or "manual",
                timestamp=iso_to_ms(s["timestamp_recorded"]),
            ))

        return [
            CalibrationProfile(
                id=row["id"],
                modality=row.get("modality") or "bike",
                damper=row["damper"],
                a=row["coefficient_a"],
                b=row["coefficient_b"],
                r2=row["r_squared"],
                samples=samples_by_profile.get(row["id"], []),
                created_at=iso_to_ms(row.get("created_at")),
                updated_at=iso_to_ms(row.get("updated_at")),
            )
            for row in rows
        ]

    # =========================================================================
    # User profiles
    # =========================================================================

    def save_user_profile(self, profile: UserProfile) -> UserProfile:
        now = now_ms()
        created_at = profile.created_at or now
        self._execute(
            self.client.table(USER_PROFILES_TABLE).upsert({
                "id": profile.id,
                "user_id": self.user_id,
                "preferred_units": profile.preferred_units.value,
                "last_damper": profile.last_damper,
                "created_at": ms_to_iso(created_at),
                "updated_at": ms_to_iso(now),
            }),
            "save_user_profile",
        )
        return UserProfile(
            id=profile.id,
            preferred_units=profile.preferred_units,
            last_damper=profile.last_damper,
            created_at=created_at,
            updated_at=now,
        )

    def get_user_profile(self, profile_id: str) -> Optional[UserProfile]:
        rows = self._execute(
            self.client.table(USER_PROFILES_TABLE)
            .select("*")
            .eq("id", profile_id)
            .eq("user_id", self.user_id)
            .limit(1),
            "get_user_profile",
        )
        if not rows:
            return None
        return self._dict_to_user_profile(rows[0])

    def list_user_profiles(self) -> List[UserProfile]:
        rows = self._execute(
            self.client.table(USER_PROFILES_TABLE).select("*").eq("user_id", self.user_id),
            "list_user_profiles",
        )
        return [self._dict_to_user_profile(row) for row in rows]

    @staticmethod
    def _dict_to_user_profile(data: Dict[str, Any]) -> UserProfile:
        return UserProfile(
            id=data["id"],
            preferred_units=data.get("preferred_units") or "watts",
            last_damper=data.get("last_damper") or 5,
            created_at=iso_to_ms(data.get("created_at")),
            updated_at=iso_to_ms(data.get("updated_at")),
        )

    # =========================================================================
    # Workouts
    # =========================================================================

    def save_workout(self, workout: Workout) -> Workout:
        self._execute(
            self.client.table(WORKOUTS_TABLE).upsert({
                "id": workout.id,
                "user_id": self.user_id,
                "source_modality": workout.source_modality.value,
                "target_modality": workout.target_modality.value,
                "payload": workout.to_dict(),
            }),
            "save_workout",
        )
        return workout

    def list_workouts(self) -> List[Workout]:
        rows = self._execute(
            self.client.table(WORKOUTS_TABLE)
            .select("payload")
            .eq("user_id", self.user_id)
            .order("created_at"),
            "list_workouts",
        )
        workouts = []
        for row in rows:
            payload = row["payload"]
            if isinstance(payload, str):
                payload = json.loads(payload)
            workouts.append(Workout.from_dict(payload))
        return workouts

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear_all(self) -> None:
        for table in (PROFILES_TABLE, USER_PROFILES_TABLE, WORKOUTS_TABLE):
            self._execute(
                self.client.table(table).delete().eq("user_id", self.user_id),
                "clear_all",
            )
        logger.info(f"Cleared all data for user {self.user_id}")
