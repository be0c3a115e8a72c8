"""SQLite database for the shared song catalog and tuning confirmations."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from songscout.utils.constants import DEFAULT_DB_FILENAME
from songscout.utils.logger import get_logger

logger = get_logger("db.database")

SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Songs: the shared catalog, one row per normalized (title, artist)
CREATE TABLE IF NOT EXISTS songs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    title_key TEXT NOT NULL,
    artist_key TEXT NOT NULL,
    is_live INTEGER NOT NULL DEFAULT 0,
    duration_seconds INTEGER,
    bpm INTEGER CHECK (bpm IS NULL OR bpm > 0),
    bpm_source TEXT,
    tuning TEXT NOT NULL DEFAULT 'standard',
    tuning_source TEXT NOT NULL DEFAULT 'default',
    external_id TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (title_key, artist_key)
);

-- Tuning confirmations: user-verified tunings, one per (song, user, band)
CREATE TABLE IF NOT EXISTS song_tuning_confirmations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    song_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    confirmed_tuning TEXT NOT NULL,
    user_id TEXT NOT NULL DEFAULT '',
    band_id TEXT NOT NULL DEFAULT '',
    confirmed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (song_id, user_id, band_id),
    FOREIGN KEY (song_id) REFERENCES songs(id) ON DELETE CASCADE
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_songs_missing_duration ON songs(duration_seconds)
    WHERE duration_seconds IS NULL;
CREATE INDEX IF NOT EXISTS idx_confirmations_song ON song_tuning_confirmations(song_id);
"""


class Database:
    """SQLite database manager for Song Scout.

    Handles connection management and schema creation.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file. If None, uses
                the default filename in the current directory. ``":memory:"``
                gives a private in-memory catalog.
        """
        if db_path == ":memory:":
            self._db_path: Path | None = None
        else:
            self._db_path = Path(db_path) if db_path else Path(DEFAULT_DB_FILENAME)
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection to the database and ensure schema is created.

        Returns:
            Active SQLite connection.
        """
        if self._connection is not None:
            return self._connection

        if self._db_path is not None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self._db_path)
        else:
            target = ":memory:"

        # Enrichment threads read through the same connection; catalog
        # writes all happen sequentially on the caller's thread.
        self._connection = sqlite3.connect(target, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Database connected: %s", target)
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active connection, connecting if necessary."""
        if self._connection is None:
            return self.connect()
        return self._connection

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and record the schema version."""
        conn = self._connection
        if conn is None:
            return

        conn.executescript(CREATE_TABLES_SQL)

        cursor = conn.execute("SELECT COUNT(*) FROM schema_version")
        count = cursor.fetchone()[0]

        if count == 0:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info("Database schema created (version %d)", SCHEMA_VERSION)
        else:
            current_version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
            logger.debug("Database schema version %d", current_version)

    def __enter__(self) -> Database:
        """Open the database connection for use as a context manager."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the database connection when exiting the context."""
        self.close()
