# backend/playout/db/schema_sql.py
#
# Tables the playout engine reads and writes. The admin side of the platform
# owns most of them; this DDL covers only the columns used here and is meant
# for local bring-up (`python -m playout.db.schema_sql`).

from playout.config import get_db_connection
from playout.logging_config import configure_logging, get_logger

SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS pgcrypto;

CREATE TABLE IF NOT EXISTS regions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    code TEXT NOT NULL UNIQUE,
    regulator_name TEXT,
    requires_pre_approval BOOLEAN,
    regulation_notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS screens (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    code TEXT NOT NULL UNIQUE,
    publisher_org_id UUID,
    name VARCHAR(255),
    city VARCHAR(100) NOT NULL,
    region_code VARCHAR(10) NOT NULL,
    screen_classification TEXT DEFAULT 'vehicle'
        CHECK (screen_classification IN ('vehicle', 'billboard', 'indoor')),
    latitude NUMERIC(10, 7),
    longitude NUMERIC(10, 7),
    last_seen_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS screen_groups (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    publisher_org_id UUID,
    name VARCHAR(255) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS screen_group_members (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    group_id UUID NOT NULL REFERENCES screen_groups(id) ON DELETE CASCADE,
    screen_id UUID NOT NULL REFERENCES screens(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (group_id, screen_id)
);

CREATE TABLE IF NOT EXISTS campaigns (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS flights (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    start_datetime TIMESTAMPTZ NOT NULL,
    end_datetime TIMESTAMPTZ NOT NULL,
    target_type TEXT NOT NULL CHECK (target_type IN ('screen', 'screen_group')),
    target_id UUID NOT NULL,
    status TEXT NOT NULL DEFAULT 'scheduled'
        CHECK (status IN ('scheduled', 'active', 'paused', 'completed'))
);

CREATE TABLE IF NOT EXISTS creatives (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    file_url TEXT NOT NULL,
    duration_seconds INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending_review'
        CHECK (status IN ('pending_review', 'approved', 'rejected')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS flight_creatives (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    flight_id UUID NOT NULL REFERENCES flights(id) ON DELETE CASCADE,
    creative_id UUID NOT NULL REFERENCES creatives(id) ON DELETE CASCADE,
    weight INTEGER NOT NULL DEFAULT 1 CHECK (weight >= 0)
);

CREATE TABLE IF NOT EXISTS creative_approvals (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    creative_id UUID NOT NULL REFERENCES creatives(id) ON DELETE CASCADE,
    region_id UUID NOT NULL REFERENCES regions(id),
    status TEXT NOT NULL CHECK (status IN ('pending', 'approved', 'rejected')),
    approval_code TEXT,
    approved_by_user_id UUID,
    approved_at TIMESTAMPTZ,
    rejected_reason TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (creative_id, region_id)
);

CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    screen_id UUID NOT NULL REFERENCES screens(id) ON DELETE CASCADE,
    auth_token TEXT NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    software_version TEXT,
    config_hash TEXT,
    last_seen_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS play_events (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    player_id TEXT NOT NULL REFERENCES players(id),
    screen_id UUID NOT NULL REFERENCES screens(id),
    creative_id UUID NOT NULL REFERENCES creatives(id),
    campaign_id UUID NOT NULL REFERENCES campaigns(id),
    flight_id UUID REFERENCES flights(id),
    started_at TIMESTAMPTZ NOT NULL,
    duration_seconds INTEGER NOT NULL,
    play_status TEXT NOT NULL,
    lat NUMERIC(10, 7),
    lng NUMERIC(10, 7),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS heartbeats (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    player_id TEXT NOT NULL REFERENCES players(id),
    screen_id UUID NOT NULL REFERENCES screens(id),
    "timestamp" TIMESTAMPTZ NOT NULL,
    status TEXT NOT NULL,
    software_version VARCHAR(50),
    storage_free_mb INTEGER,
    cpu_usage NUMERIC(5, 2),
    network_type VARCHAR(20),
    signal_strength INTEGER,
    lat NUMERIC(10, 7),
    lng NUMERIC(10, 7),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS screen_location_history (
    id TEXT PRIMARY KEY,
    screen_id UUID NOT NULL REFERENCES screens(id) ON DELETE CASCADE,
    player_id TEXT REFERENCES players(id),
    recorded_at TIMESTAMPTZ NOT NULL,
    latitude NUMERIC(10, 7) NOT NULL,
    longitude NUMERIC(10, 7) NOT NULL,
    source TEXT NOT NULL DEFAULT 'heartbeat'
);

CREATE INDEX IF NOT EXISTS ix_flights_status_window
    ON flights (status, start_datetime, end_datetime);
CREATE INDEX IF NOT EXISTS ix_screen_location_history_screen_recorded
    ON screen_location_history (screen_id, recorded_at DESC);
CREATE INDEX IF NOT EXISTS ix_players_screen_active
    ON players (screen_id) WHERE is_active;
"""


def init_schema(conn=None) -> None:
    """Create the playout tables if they are missing."""
    owns_connection = conn is None
    if owns_connection:
        conn = get_db_connection()

    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_connection:
            conn.close()


if __name__ == "__main__":
    configure_logging()
    init_schema()
    get_logger(__name__).info("schema_initialised")
