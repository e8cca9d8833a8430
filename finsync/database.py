"""
Database Abstraction Layer.

Implements the dual-store pattern for FinSync:

- **Supabase (cloud PostgreSQL)**: the authoritative remote store, reached
  through the asynchronous ``supabase.AsyncClient`` so remote calls
  suspend the event loop instead of blocking it.

- **SQLite (local)**: the durable snapshot store.  Each coordinator writes
  its last good collection here so the application can start, and keep
  working, without connectivity.

Data access is performed through the Repository pattern.  This module only
manages the raw *connections*; it contains no query logic.

Usage (dependency injection at startup)::

    from finsync.database import DatabaseManager
    from finsync.logger import StructuredLogger

    db = await DatabaseManager.open(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.SQLITE_PATH),
        logger=StructuredLogger(name="finsync.database"),
    )
    # Inject `db` into repositories.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from supabase import AsyncClient, acreate_client

from finsync.logger import StructuredLogger


class DatabaseManager:
    """Holds the optional Supabase client and the local SQLite connection.

    When no Supabase client is supplied the manager runs in offline mode:
    the :pyattr:`supabase` property raises ``RuntimeError``, which the
    remote repositories classify as ``RemoteUnavailable`` so every load
    degrades to the local snapshot.

    Parameters
    ----------
    sqlite_path:
        Filesystem path for the local SQLite database file, or
        ``":memory:"``.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    supabase:
        An initialised ``AsyncClient``, or ``None`` for offline mode.
    """

    def __init__(
        self,
        sqlite_path: Path | str,
        logger: StructuredLogger,
        supabase: Optional[AsyncClient] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._supabase: Optional[AsyncClient] = supabase
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)
        self._closed: bool = False

        if supabase is None:
            self._logger.warning(
                "Supabase client not configured — running in offline mode."
            )

    @classmethod
    async def open(
        cls,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Path | str,
        logger: StructuredLogger,
    ) -> DatabaseManager:
        """Create the Supabase client (when credentials exist) and open SQLite.

        Credential or initialisation failures are logged and leave the
        manager in offline mode rather than aborting startup.
        """
        client: Optional[AsyncClient] = None
        if supabase_url and supabase_key:
            try:
                client = await acreate_client(supabase_url, supabase_key)
                logger.info("Supabase client initialized.")
            except (ValueError, TypeError) as exc:
                logger.warning(
                    "Supabase credential format error: %s. Running in offline mode.",
                    exc,
                )
            except Exception as exc:
                logger.error(
                    "Unexpected Supabase initialization failure: %s. "
                    "Running in offline mode.",
                    exc,
                    exc_info=True,
                )
        return cls(sqlite_path=sqlite_path, logger=logger, supabase=client)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> AsyncClient:
        """Return the initialised Supabase client.

        Raises
        ------
        RuntimeError
            If the client was not initialised (offline mode).
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "The application is running in offline mode."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        """``True`` when the Supabase client is available."""
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the initialised SQLite connection."""
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Lock guarding every SQLite statement.

        Snapshot I/O runs on worker threads via ``asyncio.to_thread``, so
        all access to the shared connection goes through this lock::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.sqlite.commit()
        """
        return self._write_lock

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the local SQLite connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._closed:
                return
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed.")
            except sqlite3.ProgrammingError:
                pass
            self._closed = True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: Path | str) -> sqlite3.Connection:
        """Open (or create) the SQLite database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
