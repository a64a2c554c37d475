"""Tests for the calibration database schemas.

This module tests:
1. SQLite constraints (damper range, modality, sample cascade)
2. The Postgres schema declares the same tables as the SQLite one
"""

import re
import sqlite3

import pytest

from rowbike_converter.db.schema import POSTGRES_SCHEMA, SCHEMA


def _tables(ddl):
    return set(re.findall(r"CREATE TABLE IF NOT EXISTS (\w+)", ddl))


@pytest.fixture
def conn():
    """In-memory database with the SQLite schema applied."""
    connection = sqlite3.connect(":memory:")
    connection.execute("PRAGMA foreign_keys=ON")
    connection.executescript(SCHEMA)
    yield connection
    connection.close()


def _insert_profile(conn, damper=5, modality="bike"):
    cursor = conn.execute(
        """
        INSERT INTO calibration_profiles (modality, damper, a, b, r2, created_at, updated_at)
        VALUES (?, ?, 0.0026, 3.2, 0.98, 0, 0)
        """,
        (modality, damper),
    )
    return cursor.lastrowid


class TestSQLiteConstraints:
    """Tests for CHECK and foreign key constraints."""

    @pytest.mark.parametrize("damper", [0, 11])
    def test_damper_out_of_range(self, conn, damper):
        with pytest.raises(sqlite3.IntegrityError):
            _insert_profile(conn, damper=damper)

    def test_unknown_modality(self, conn):
        with pytest.raises(sqlite3.IntegrityError):
            _insert_profile(conn, modality="ski")

    def test_unknown_sample_source(self, conn):
        profile_id = _insert_profile(conn)
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                """
                INSERT INTO calibration_samples (calibration_id, position, rpm, watts, source, timestamp)
                VALUES (?, 0, 80, 200, 'bluetooth', 0)
                """,
                (profile_id,),
            )

    def test_samples_cascade(self, conn):
        profile_id = _insert_profile(conn)
        conn.execute(
            """
            INSERT INTO calibration_samples (calibration_id, position, rpm, watts, timestamp)
            VALUES (?, 0, 80, 200, 0)
            """,
            (profile_id,),
        )

        conn.execute("DELETE FROM calibration_profiles WHERE id = ?", (profile_id,))

        assert conn.execute("SELECT COUNT(*) FROM calibration_samples").fetchone()[0] == 0


class TestPostgresSchema:
    def test_same_data_tables(self):
        """Both backends store the same collections."""
        assert _tables(POSTGRES_SCHEMA) == _tables(SCHEMA) - {"schema_version"}

    def test_samples_cascade(self):
        assert "REFERENCES calibration_profiles(id) ON DELETE CASCADE" in POSTGRES_SCHEMA
