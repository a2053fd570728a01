# backend/playout/config.py
import os

import psycopg2

DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")

DB_NAME = os.getenv("DB_NAME", "dooh_playout")
DB_USER = os.getenv("DB_USER", "dooh_playout")
DB_PASSWORD = os.getenv("DB_PASSWORD", "dooh_playout_password")
DB_CONNECT_TIMEOUT = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))

ENV = os.getenv("ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Comma-separated list, "*" for any origin
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*")

# Server-side key used to digest player secrets before they are stored
PLAYER_TOKEN_SECRET = os.getenv("PLAYER_TOKEN_SECRET", "change-me-player-token-secret")

# Shared key for the compliance officer approval endpoint; empty disables it
COMPLIANCE_API_KEY = os.getenv("COMPLIANCE_API_KEY", "")

CONFIG_HASH_LENGTH = int(os.getenv("CONFIG_HASH_LENGTH", "16"))

GEOFENCE_MIN_INTERVAL_SECONDS = float(os.getenv("GEOFENCE_MIN_INTERVAL_SECONDS", "300"))
GEOFENCE_MIN_DISTANCE_METERS = float(os.getenv("GEOFENCE_MIN_DISTANCE_METERS", "200"))


def get_db_connection():
    conn = psycopg2.connect(
        host=DB_HOST,
        port=DB_PORT,
        dbname=DB_NAME,
        user=DB_USER,
        password=DB_PASSWORD,
        connect_timeout=DB_CONNECT_TIMEOUT,
    )
    return conn
