"""Data access layer -- repository pattern for songs and tuning confirmations."""

from __future__ import annotations

import sqlite3
from typing import Any

from songscout.models.song import CanonicalSong
from songscout.utils.constants import EXISTING_SONGS_LIMIT
from songscout.utils.errors import PersistenceConflict
from songscout.utils.logger import get_logger
from songscout.utils.text import normalize_key, song_key

logger = get_logger("db.repositories")

# A re-discovered song refreshes its row, but never erases known enrichment
# and never overrides a tuning a user confirmed.
_UPSERT_SQL = """
INSERT INTO songs (
    title, artist, title_key, artist_key, is_live, duration_seconds,
    bpm, bpm_source, tuning, tuning_source, external_id
) VALUES (
    :title, :artist, :title_key, :artist_key, :is_live, :duration_seconds,
    :bpm, :bpm_source, :tuning, :tuning_source, :external_id
)
ON CONFLICT (title_key, artist_key) DO UPDATE SET
    title = excluded.title,
    artist = excluded.artist,
    is_live = excluded.is_live,
    duration_seconds = COALESCE(excluded.duration_seconds, songs.duration_seconds),
    bpm = COALESCE(excluded.bpm, songs.bpm),
    bpm_source = CASE WHEN excluded.bpm IS NULL THEN songs.bpm_source ELSE excluded.bpm_source END,
    tuning = CASE
        WHEN songs.tuning_source = 'user' AND excluded.tuning_source != 'user' THEN songs.tuning
        ELSE excluded.tuning END,
    tuning_source = CASE
        WHEN songs.tuning_source = 'user' AND excluded.tuning_source != 'user' THEN songs.tuning_source
        ELSE excluded.tuning_source END,
    external_id = COALESCE(excluded.external_id, songs.external_id),
    updated_at = CURRENT_TIMESTAMP
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SongRepository:
    """Data access layer for CanonicalSong rows in the shared catalog.

    Songs are global: they belong to no single band or user, so writes go
    through this repository directly rather than any per-caller scope.
    """

    # Columns that update_fields() may touch.
    _VALID_COLUMNS: frozenset[str] = frozenset({
        "title", "artist", "is_live", "duration_seconds", "bpm",
        "bpm_source", "tuning", "tuning_source", "external_id",
    })

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize with an active database connection.

        Args:
            connection: SQLite connection (with Row factory enabled).
        """
        self._conn = connection

    def upsert(self, song: CanonicalSong) -> CanonicalSong:
        """Insert a song, or update the existing row with the same key.

        Args:
            song: Song to store. Its ``id`` is filled in.

        Returns:
            The stored row as a CanonicalSong (artwork carried over from
            the input, since it is never persisted).

        Raises:
            PersistenceConflict: If the write violates a constraint other
                than the (title, artist) key.
        """
        data = song.as_dict()
        try:
            self._conn.execute(_UPSERT_SQL, data)
            self._conn.commit()
        except sqlite3.IntegrityError as e:
            self._conn.rollback()
            raise PersistenceConflict(f"Upsert failed for {song.artist} - {song.title}: {e}") from e

        stored = self.get_by_key(song.title, song.artist)
        if stored is None:
            raise PersistenceConflict(f"Upserted row vanished: {song.artist} - {song.title}")
        stored.album_artwork = song.album_artwork
        song.id = stored.id
        return stored

    def update_fields(self, song_id: int, updates: dict[str, Any]) -> bool:
        """Update selected columns of one song.

        Raises:
            ValueError: If ``updates`` names a column outside the whitelist.

        Returns:
            True if a row was updated.
        """
        if not updates:
            return False
        invalid = set(updates) - self._VALID_COLUMNS
        if invalid:
            raise ValueError(f"Unexpected song columns: {invalid}")

        set_clause = ", ".join(f"{k} = ?" for k in updates)
        values = list(updates.values()) + [song_id]
        cursor = self._conn.execute(
            f"UPDATE songs SET {set_clause}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            values,
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def get_by_id(self, song_id: int) -> CanonicalSong | None:
        cursor = self._conn.execute("SELECT * FROM songs WHERE id = ?", (song_id,))
        row = cursor.fetchone()
        return self._row_to_song(row) if row else None

    def get_by_key(self, title: str, artist: str) -> CanonicalSong | None:
        """Look up a song by its normalized (title, artist) key."""
        title_key, artist_key = song_key(title, artist)
        cursor = self._conn.execute(
            "SELECT * FROM songs WHERE title_key = ? AND artist_key = ?",
            (title_key, artist_key),
        )
        row = cursor.fetchone()
        return self._row_to_song(row) if row else None

    def search_by_title(self, query: str, limit: int = EXISTING_SONGS_LIMIT) -> list[CanonicalSong]:
        """Case-insensitive title substring search.

        Matches against the stored ``title_key``, which is case-folded in
        Python, so non-ASCII titles match regardless of case.

        Args:
            query: Text that must appear somewhere in the title.
            limit: Maximum number of rows.

        Returns:
            Matching songs, oldest first.
        """
        key = normalize_key(query)
        if not key:
            return []
        pattern = f"%{_escape_like(key)}%"
        cursor = self._conn.execute(
            "SELECT * FROM songs WHERE title_key LIKE ? ESCAPE '\\' ORDER BY id LIMIT ?",
            (pattern, limit),
        )
        return [self._row_to_song(row) for row in cursor.fetchall()]

    def list_missing_duration(self, limit: int | None = None) -> list[CanonicalSong]:
        """Songs with no stored duration, oldest first."""
        sql = "SELECT * FROM songs WHERE duration_seconds IS NULL ORDER BY id"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        cursor = self._conn.execute(sql, params)
        return [self._row_to_song(row) for row in cursor.fetchall()]

    def get_all(self) -> list[CanonicalSong]:
        cursor = self._conn.execute("SELECT * FROM songs ORDER BY id")
        return [self._row_to_song(row) for row in cursor.fetchall()]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM songs").fetchone()[0]

    def _row_to_song(self, row: sqlite3.Row) -> CanonicalSong:
        """Convert a database row to a CanonicalSong."""
        return CanonicalSong(
            title=row["title"],
            artist=row["artist"],
            is_live=bool(row["is_live"]),
            duration_seconds=row["duration_seconds"],
            bpm=row["bpm"],
            bpm_source=row["bpm_source"],
            tuning=row["tuning"],
            tuning_source=row["tuning_source"],
            external_id=row["external_id"],
            id=row["id"],
        )


class TuningConfirmationRepository:
    """Data access layer for user-confirmed tunings."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize with an active database connection.

        Args:
            connection: SQLite connection.
        """
        self._conn = connection

    def confirm(
        self,
        song_id: int,
        title: str,
        artist: str,
        tuning: str,
        user_id: str = "",
        band_id: str = "",
    ) -> dict[str, Any]:
        """Store (or replace) a user's confirmation of a song's tuning.

        Returns:
            The stored confirmation row as a dictionary.
        """
        self._conn.execute(
            """INSERT INTO song_tuning_confirmations
                   (song_id, title, artist, confirmed_tuning, user_id, band_id)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT (song_id, user_id, band_id) DO UPDATE SET
                   confirmed_tuning = excluded.confirmed_tuning,
                   confirmed_at = CURRENT_TIMESTAMP""",
            (song_id, title.lower(), artist.lower(), tuning, user_id, band_id),
        )
        self._conn.commit()
        cursor = self._conn.execute(
            """SELECT * FROM song_tuning_confirmations
               WHERE song_id = ? AND user_id = ? AND band_id = ?""",
            (song_id, user_id, band_id),
        )
        return dict(cursor.fetchone())

    def latest_for_song(self, song_id: int) -> str | None:
        """Most recently confirmed tuning for a song, across all users."""
        cursor = self._conn.execute(
            """SELECT confirmed_tuning FROM song_tuning_confirmations
               WHERE song_id = ? ORDER BY confirmed_at DESC, id DESC LIMIT 1""",
            (song_id,),
        )
        row = cursor.fetchone()
        return row["confirmed_tuning"] if row else None

    def find(
        self,
        song_id: int | None = None,
        title: str | None = None,
        artist: str | None = None,
        user_id: str | None = None,
        band_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """List confirmations by song id, or by (title, artist), optionally
        narrowed to one user and/or band.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if song_id is not None:
            clauses.append("song_id = ?")
            params.append(song_id)
        elif title and artist:
            clauses.extend(["title = ?", "artist = ?"])
            params.extend([title.lower(), artist.lower()])
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if band_id is not None:
            clauses.append("band_id = ?")
            params.append(band_id)

        sql = "SELECT * FROM song_tuning_confirmations"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY confirmed_at DESC, id DESC"
        cursor = self._conn.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]
