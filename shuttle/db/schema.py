"""Database schema definitions."""

from __future__ import annotations

import sqlite3

PLAYER_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    classification TEXT NOT NULL DEFAULT 'none',
    position INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (classification IN ('seed', 'separated', 'normal', 'none'))
);
"""

PLAYER_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_players_position ON players (position);",
    "CREATE INDEX IF NOT EXISTS idx_players_classification ON players (classification);",
]

AUDIT_LOG_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    title TEXT NOT NULL,
    details TEXT,
    level TEXT NOT NULL DEFAULT 'info',
    tournament_id TEXT,
    context_json TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

AUDIT_LOG_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_audit_log_event_type ON audit_log (event_type);",
    "CREATE INDEX IF NOT EXISTS idx_audit_log_tournament ON audit_log (tournament_id);",
]


SCHEMA_SQL = [
    PLAYER_TABLE_SQL,
    AUDIT_LOG_TABLE_SQL,
    *PLAYER_INDEXES_SQL,
    *AUDIT_LOG_INDEXES_SQL,
]


def initialize_schema(connection: sqlite3.Connection) -> None:
    """Initialize database schema if needed."""
    with connection:
        for statement in SCHEMA_SQL:
            connection.execute(statement)
