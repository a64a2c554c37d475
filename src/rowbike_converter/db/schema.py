"""Database schemas for the calibration stores."""

SCHEMA_VERSION = 2

# SQLite schema for the on-device store
SCHEMA = """
CREATE TABLE IF NOT EXISTS calibration_profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL DEFAULT 'default',
    modality TEXT NOT NULL DEFAULT 'bike' CHECK (modality IN ('row', 'bike')),
    damper INTEGER NOT NULL CHECK (damper BETWEEN 1 AND 10),
    a REAL NOT NULL,
    b REAL NOT NULL,
    r2 REAL NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS calibration_samples (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    calibration_id INTEGER NOT NULL
        REFERENCES calibration_profiles(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    rpm REAL,
    pace_500 REAL,
    watts REAL NOT NULL,
    source TEXT NOT NULL DEFAULT 'manual' CHECK (source IN ('manual', 'ble')),
    timestamp INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_profiles (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL DEFAULT 'default',
    preferred_units TEXT NOT NULL DEFAULT 'watts',
    last_damper INTEGER NOT NULL DEFAULT 5,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS workouts (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL DEFAULT 'default',
    source_modality TEXT NOT NULL,
    target_modality TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    PRIMARY KEY (user_id, id)
);

CREATE INDEX IF NOT EXISTS idx_calibration_profiles_user_damper
    ON calibration_profiles(user_id, damper);
CREATE INDEX IF NOT EXISTS idx_calibration_profiles_created_at
    ON calibration_profiles(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_calibration_samples_calibration_id
    ON calibration_samples(calibration_id);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);
"""

# PostgreSQL schema for the Supabase-backed remote store
POSTGRES_SCHEMA = """
CREATE EXTENSION IF NOT EXISTS "uuid-ossp";

CREATE TABLE IF NOT EXISTS calibration_profiles (
  id UUID DEFAULT uuid_generate_v4() PRIMARY KEY,
  user_id TEXT NOT NULL,
  modality TEXT NOT NULL DEFAULT 'bike' CHECK (modality IN ('row', 'bike')),
  damper INTEGER NOT NULL,
  coefficient_a DOUBLE PRECISION NOT NULL,
  coefficient_b DOUBLE PRECISION NOT NULL,
  r_squared DOUBLE PRECISION NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS calibration_samples (
  id UUID DEFAULT uuid_generate_v4() PRIMARY KEY,
  calibration_id UUID REFERENCES calibration_profiles(id) ON DELETE CASCADE,
  rpm DOUBLE PRECISION,
  pace_500 DOUBLE PRECISION,
  watts DOUBLE PRECISION NOT NULL,
  source TEXT CHECK (source IN ('manual', 'ble')) DEFAULT 'manual',
  timestamp_recorded TIMESTAMP WITH TIME ZONE NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_profiles (
  id TEXT NOT NULL,
  user_id TEXT NOT NULL,
  preferred_units TEXT CHECK (preferred_units IN ('watts', 'pace', 'rpm')) DEFAULT 'watts',
  last_damper INTEGER DEFAULT 5,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS workouts (
  id TEXT NOT NULL,
  user_id TEXT NOT NULL,
  source_modality TEXT NOT NULL,
  target_modality TEXT NOT NULL,
  payload JSONB NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  PRIMARY KEY (user_id, id)
);

CREATE INDEX IF NOT EXISTS idx_calibration_profiles_user_id ON calibration_profiles(user_id);
CREATE INDEX IF NOT EXISTS idx_calibration_profiles_created_at ON calibration_profiles(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_calibration_samples_calibration_id ON calibration_samples(calibration_id);
"""
