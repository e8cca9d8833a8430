"""
Centralized SQLite Schema Initialization.

Defines the canonical schema for the FinSync local snapshot store and
provides a single entry-point -- :func:`initialize_schema` -- that creates
all required tables idempotently.  A single-row ``schema_version`` table
records which version the file was created at so later releases can roll
it forward without data loss.

Usage::

    import sqlite3
    from finsync.logger import StructuredLogger
    from finsync.schema import initialize_schema

    conn = sqlite3.connect("finsync_local.db")
    initialize_schema(conn, StructuredLogger(name="finsync.schema"))
"""

from __future__ import annotations

import sqlite3

from finsync.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

# ---------------------------------------------------------------------------
# Schema version -- bump this whenever the DDL changes.
# ---------------------------------------------------------------------------
CURRENT_SCHEMA_VERSION: int = 1

# ---------------------------------------------------------------------------
# DDL statements for every table in the local database.
# ---------------------------------------------------------------------------
_TABLE_DEFINITIONS: list[str] = [
    # -- single-row version tracker -------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- last known collection per (kind, owner) ------------------------------
    """
    CREATE TABLE IF NOT EXISTS record_snapshots (
        kind TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        payload TEXT NOT NULL,
        record_count INTEGER NOT NULL DEFAULT 0,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (kind, owner_id)
    )
    """,
]


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the stored schema version, or ``0`` for a fresh database."""
    conn.execute(_TABLE_DEFINITIONS[0])
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Upsert the version tracker.  Does **not** commit."""
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local SQLite database matches the current schema version.

    Creates every table in :data:`_TABLE_DEFINITIONS` and records
    :data:`CURRENT_SCHEMA_VERSION` inside one transaction.  On failure the
    transaction is rolled back and the error re-raised, so the next
    startup retries from a clean state.

    Safe to call on every startup.
    """
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info("Schema is up to date (version %d).", current)
        return

    try:
        for ddl in _TABLE_DEFINITIONS:
            conn.execute(ddl)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error(
            "Schema initialisation failed — rolled back to version %d.", current,
        )
        raise

    logger.info("Schema initialised at version %d.", CURRENT_SCHEMA_VERSION)
