# updown/online/config.py
"""Database configuration for the PostgreSQL room store."""
import os

DATABASE_CONFIG = {
    "host": os.getenv("UPDOWN_DB_HOST", "localhost"),
    "port": os.getenv("UPDOWN_DB_PORT", "5432"),
    "database": os.getenv("UPDOWN_DB_NAME", "updown"),
    "user": os.getenv("UPDOWN_DB_USER", os.getenv("USER", "postgres")),
    "password": os.getenv("UPDOWN_DB_PASSWORD", ""),
}

NOTIFY_CHANNEL = "game_rooms"
