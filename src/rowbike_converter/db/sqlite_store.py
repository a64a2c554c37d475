"""SQLite calibration store.

The on-device store. Profiles and their samples live in two tables joined
by ``calibration_id``; deleting a profile cascades to its samples.

SQLite-Specific Considerations:
    - INTEGER AUTOINCREMENT ids
    - Timestamps stored as integer milliseconds
    - foreign_keys pragma must be enabled per connection for the cascade
    - WAL journal for concurrent readers while a sync pass writes
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from ..exceptions import StorageFailure
from ..models import (
    CalibrationProfile,
    ProfileId,
    Sample,
    UserProfile,
    Workout,
    now_ms,
)
from .schema import SCHEMA, SCHEMA_VERSION
from .store import CalibrationStore

logger = logging.getLogger(__name__)


def _row_id(profile_id: ProfileId) -> Optional[int]:
    """Integer row id, or None for ids minted elsewhere (e.g. Supabase UUIDs)."""
    try:
        return int(profile_id)
    except (TypeError, ValueError):
        return None


class SQLiteCalibrationStore(CalibrationStore):
    """SQLite implementation of the CalibrationStore contract.

    Usage:
        store = SQLiteCalibrationStore("rowbike.db")
        store.initialize()

        saved = store.save(profile)
        latest = store.latest_by_damper(5)
    """

    def __init__(self, db_path, user_id: str = "default"):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
            user_id: Owner of every record read or written by this store.
        """
        self.db_path = Path(db_path)
        self.user_id = user_id

    def initialize(self) -> None:
        """Create tables if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
        logger.debug(f"Initialized calibration store at {self.db_path}")

    def close(self) -> None:
        # Connections are opened per operation
        pass

    @contextmanager
    def _get_connection(self):
        """Get a database connection with foreign keys and WAL enabled."""
        try:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageFailure(f"Cannot open database: {e}", operation="connect") from e

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageFailure(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # =========================================================================
    # Calibrations
    # =========================================================================

    def save(self, profile: CalibrationProfile) -> CalibrationProfile:
        now = now_ms()
        created_at = profile.created_at or now

        profile_id = _row_id(profile.id)
        if profile.id is not None and profile_id is None:
            logger.debug(f"Calibration id {profile.id!r} is not a local row id; inserting as new")

        with self._get_connection() as conn:
            if profile_id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO calibration_profiles
                        (user_id, modality, damper, a, b, r2, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        self.user_id, profile.modality.value, profile.damper,
                        profile.a, profile.b, profile.r2, created_at, now,
                    ),
                )
                profile_id = cursor.lastrowid
            else:
                # Replace: drop the previous samples via cascade, then reinsert
                conn.execute(
                    "DELETE FROM calibration_profiles WHERE id = ? AND user_id = ?",
                    (profile_id, self.user_id),
                )
                conn.execute(
                    """
                    INSERT INTO calibration_profiles
                        (id, user_id, modality, damper, a, b, r2, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        profile_id, self.user_id, profile.modality.value, profile.damper,
                        profile.a, profile.b, profile.r2, created_at, now,
                    ),
                )

            conn.executemany(
                """
                INSERT INTO calibration_samples
                    (calibration_id, position, rpm, pace_500, watts, source, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        profile_id, position, s.rpm, s.pace_500, s.watts,
                        s.source.value, s.timestamp,
                    )
                    for position, s in enumerate(profile.samples)
                ],
            )

        logger.debug(
            f"Saved {profile.modality.value} calibration {profile_id} "
            f"(damper {profile.damper}, {len(profile.samples)} samples)"
        )
        return profile.with_id(profile_id, created_at, now)

    def get(self, profile_id: ProfileId) -> Optional[CalibrationProfile]:
        profile_id = _row_id(profile_id)
        if profile_id is None:
            return None

        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM calibration_profiles WHERE id = ? AND user_id = ?",
                (profile_id, self.user_id),
            ).fetchone()
            if row is None:
                return None
            return self._row_to_profile(conn, row)

    def list_by_damper(self, damper: int) -> List[CalibrationProfile]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM calibration_profiles
                WHERE user_id = ? AND damper = ?
                ORDER BY created_at DESC, id DESC
                """,
                (self.user_id, damper),
            ).fetchall()
            return [self._row_to_profile(conn, row) for row in rows]

    def list_all(self) -> List[CalibrationProfile]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM calibration_profiles
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (self.user_id,),
            ).fetchall()
            return [self._row_to_profile(conn, row) for row in rows]

    def delete(self, profile_id: ProfileId) -> bool:
        profile_id = _row_id(profile_id)
        if profile_id is None:
            return False

        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM calibration_profiles WHERE id = ? AND user_id = ?",
                (profile_id, self.user_id),
            )
            deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted calibration {profile_id}")
        return deleted

    def _row_to_profile(self, conn: sqlite3.Connection, row: sqlite3.Row) -> CalibrationProfile:
        sample_rows = conn.execute(
            """
            SELECT rpm, pace_500, watts, source, timestamp
            FROM calibration_samples
            WHERE calibration_id = ?
            ORDER BY position
            """,
            (row["id"],),
        ).fetchall()

        return CalibrationProfile(
            id=row["id"],
            modality=row["modality"],
            damper=row["damper"],
            a=row["a"],
            b=row["b"],
            r2=row["r2"],
            samples=[
                Sample(
                    watts=s["watts"],
                    rpm=s["rpm"],
                    pace_500=s["pace_500"],
                    source=s["source"],
                    timestamp=s["timestamp"],
                )
                for s in sample_rows
            ],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # =========================================================================
    # User profiles
    # =========================================================================

    def save_user_profile(self, profile: UserProfile) -> UserProfile:
        now = now_ms()
        created_at = profile.created_at or now

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO user_profiles
                    (id, user_id, preferred_units, last_damper, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    profile.id, self.user_id, profile.preferred_units.value,
                    profile.last_damper, created_at, now,
                ),
            )

        return UserProfile(
            id=profile.id,
            preferred_units=profile.preferred_units,
            last_damper=profile.last_damper,
            created_at=created_at,
            updated_at=now,
        )

    def get_user_profile(self, profile_id: str) -> Optional[UserProfile]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM user_profiles WHERE id = ? AND user_id = ?",
                (profile_id, self.user_id),
            ).fetchone()

        if row is None:
            return None
        return self._row_to_user_profile(row)

    def list_user_profiles(self) -> List[UserProfile]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM user_profiles WHERE user_id = ? ORDER BY created_at",
                (self.user_id,),
            ).fetchall()
        return [self._row_to_user_profile(row) for row in rows]

    @staticmethod
    def _row_to_user_profile(row: sqlite3.Row) -> UserProfile:
        return UserProfile(
            id=row["id"],
            preferred_units=row["preferred_units"],
            last_damper=row["last_damper"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # =========================================================================
    # Workouts
    # =========================================================================

    def save_workout(self, workout: Workout) -> Workout:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO workouts
                    (id, user_id, source_modality, target_modality, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    workout.id, self.user_id, workout.source_modality.value,
                    workout.target_modality.value, json.dumps(workout.to_dict()), now_ms(),
                ),
            )
        return workout

    def list_workouts(self) -> List[Workout]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT payload FROM workouts WHERE user_id = ? ORDER BY created_at",
                (self.user_id,),
            ).fetchall()
        return [Workout.from_dict(json.loads(row["payload"])) for row in rows]

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear_all(self) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM calibration_profiles WHERE user_id = ?", (self.user_id,))
            conn.execute("DELETE FROM user_profiles WHERE user_id = ?", (self.user_id,))
            conn.execute("DELETE FROM workouts WHERE user_id = ?", (self.user_id,))
        logger.info(f"Cleared all data for user {self.user_id}")

    def get_info(self):
        info = super().get_info()
        info["db_path"] = str(self.db_path)
        return info
