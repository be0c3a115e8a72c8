"""Deduplication & persistence gate between search results and the catalog.

Search results are merged with rows already in the catalog: stored songs
come first (after any missing BPM / tuning is backfilled), followed by new
discoveries whose normalized (title, artist) key is not already present.
"""

from __future__ import annotations

from songscout.core.bpm_resolver import BpmResolver
from songscout.core.tuning_resolver import (
    TUNING_SOURCE_DEFAULT,
    TUNING_SOURCE_FALLBACK,
    TUNING_SOURCE_SONGSTERR,
    TUNING_SOURCE_USER,
    TuningResolver,
)
from songscout.db.repositories import SongRepository, TuningConfirmationRepository
from songscout.models.song import CanonicalSong
from songscout.utils.constants import DEFAULT_TUNING, EXISTING_SONGS_LIMIT, MAX_SEARCH_RESULTS
from songscout.utils.logger import get_logger

logger = get_logger("core.persistence_gate")


class PersistenceGate:
    """Merges ranked discoveries with stored songs and writes the catalog."""

    def __init__(
        self,
        songs: SongRepository,
        bpm_resolver: BpmResolver,
        tuning_resolver: TuningResolver,
        confirmations: TuningConfirmationRepository | None = None,
        max_results: int = MAX_SEARCH_RESULTS,
        existing_limit: int = EXISTING_SONGS_LIMIT,
    ) -> None:
        """Initialize the gate.

        Args:
            songs: Catalog repository (songs are shared, not per-caller).
            bpm_resolver: Used to backfill missing BPM on stored rows.
            tuning_resolver: Supplies the fallback-table tuning for corrections.
            confirmations: User-confirmed tunings, which always win.
            max_results: Cap on the merged result list.
            existing_limit: How many stored rows a search may pull in.
        """
        self._songs = songs
        self._bpm = bpm_resolver
        self._tuning = tuning_resolver
        self._confirmations = confirmations
        self._max_results = max_results
        self._existing_limit = existing_limit
        self.writes = 0

    # --- Tuning correction ---

    def expected_tuning(self, song: CanonicalSong) -> tuple[str, str]:
        """The tuning a stored row should carry right now, with its source.

        A user confirmation wins. Otherwise the static table decides; rows
        with no table entry keep a user or Songsterr tuning and fall back to
        standard for everything else.
        """
        if self._confirmations is not None and song.id is not None:
            confirmed = self._confirmations.latest_for_song(song.id)
            if confirmed:
                return confirmed, TUNING_SOURCE_USER

        listed = self._tuning.fallback_tuning(song.title)
        if listed != DEFAULT_TUNING:
            return listed, TUNING_SOURCE_FALLBACK
        if song.tuning_source in (TUNING_SOURCE_USER, TUNING_SOURCE_SONGSTERR):
            return song.tuning, song.tuning_source
        return DEFAULT_TUNING, TUNING_SOURCE_DEFAULT

    # --- Existing rows ---

    def backfill_song(self, song: CanonicalSong) -> bool:
        """Fill in missing BPM and correct the tuning of one stored row.

        The row is written only if something changed; ``song`` is updated
        in place either way.

        Returns:
            True if the row was written.
        """
        updates: dict = {}

        if song.bpm is None:
            bpm, source = self._bpm.resolve_with_source(song.artist, song.title)
            if bpm:
                updates["bpm"] = bpm
                updates["bpm_source"] = source

        tuning, tuning_source = self.expected_tuning(song)
        if (song.tuning or DEFAULT_TUNING) != tuning:
            updates["tuning"] = tuning
            updates["tuning_source"] = tuning_source

        if not updates or song.id is None:
            return False

        self._songs.update_fields(song.id, updates)
        for field_name, value in updates.items():
            setattr(song, field_name, value)
        self.writes += 1
        logger.debug("Backfilled song %d (%s - %s): %s", song.id, song.artist, song.title, updates)
        return True

    def load_existing(self, query: str) -> list[CanonicalSong]:
        """Stored songs whose title contains the query, with backfill applied.

        Rows are processed one at a time so each write happens exactly once.
        """
        existing = self._songs.search_by_title(query, limit=self._existing_limit)
        written = sum(1 for song in existing if self.backfill_song(song))
        if existing:
            logger.info("Loaded %d stored songs for '%s' (%d backfilled)", len(existing), query, written)
        return existing

    # --- Merge / write ---

    def merge(
        self,
        existing: list[CanonicalSong],
        discovered: list[CanonicalSong],
    ) -> list[CanonicalSong]:
        """Existing rows first, then up to the remaining slots of new songs.

        Discoveries whose normalized key matches an existing row, or an
        earlier discovery, are dropped.
        """
        seen = {song.key for song in existing}
        fresh: list[CanonicalSong] = []
        for song in discovered:
            if song.key in seen:
                continue
            seen.add(song.key)
            fresh.append(song)

        room = max(0, self._max_results - len(existing))
        return existing + fresh[:room]

    def upsert(self, song: CanonicalSong) -> CanonicalSong:
        """Insert or update a song keyed on its normalized (title, artist)."""
        stored = self._songs.upsert(song)
        self.writes += 1
        logger.info("Stored song %d: %s - %s", stored.id, stored.artist, stored.title)
        return stored

    def cleanup_tunings(self) -> tuple[int, int]:
        """Re-apply the tuning correction across the whole catalog.

        Rows with a user-sourced tuning are left alone.

        Returns:
            (total songs examined, songs corrected).
        """
        songs = self._songs.get_all()
        corrected = 0
        for song in songs:
            if song.tuning_source == TUNING_SOURCE_USER:
                continue
            tuning, source = self.expected_tuning(song)
            if (song.tuning or DEFAULT_TUNING) == tuning:
                continue
            logger.debug(
                "Correcting tuning for %s - %s: %s -> %s",
                song.artist, song.title, song.tuning, tuning,
            )
            if song.id is not None and self._songs.update_fields(
                song.id, {"tuning": tuning, "tuning_source": source}
            ):
                corrected += 1
                self.writes += 1
        logger.info("Tuning cleanup: corrected %d of %d songs", corrected, len(songs))
        return len(songs), corrected
