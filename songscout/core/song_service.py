"""Song service -- the engine's outer surface: search, create, bulk, maintenance."""

from __future__ import annotations

from typing import Any

import requests

from songscout.core.bpm_resolver import BpmResolver, SpotifyClient
from songscout.core.bulk_resolver import BulkMatchResolver, BulkProgressCallback
from songscout.core.catalog_client import CatalogSearchClient
from songscout.core.duration_backfill import (
    BackfillOutcome,
    BackfillReport,
    DurationBackfill,
    MusicBrainzDurationSource,
)
from songscout.core.enrichment import SongEnricher
from songscout.core.fuzzy_matcher import FuzzyMatcher
from songscout.core.persistence_gate import PersistenceGate
from songscout.core.ranking import RelevanceRanker
from songscout.core.reference_data import ReferenceData, default_reference_data
from songscout.core.spotify_auth import SpotifyTokenCache
from songscout.core.tuning_resolver import (
    TUNING_SOURCE_DEFAULT,
    TUNING_SOURCE_USER,
    SongsterrClient,
    TuningResolver,
)
from songscout.db.database import Database
from songscout.db.repositories import SongRepository, TuningConfirmationRepository
from songscout.models.bulk_match import BulkMatchItem, BulkMatchResult
from songscout.models.config import AppConfig
from songscout.models.song import CanonicalSong
from songscout.models.tuning import is_known_tuning
from songscout.utils.constants import DEFAULT_BACKFILL_BATCH_SIZE, DEFAULT_TUNING
from songscout.utils.errors import InvalidInput
from songscout.utils.logger import get_logger

logger = get_logger("core.song_service")


class SongService:
    """Runs the discovery pipeline and catalog maintenance operations.

    Search flow: stored rows (backfilled) -> catalog search -> ranking ->
    enrichment of the top results -> merge with stored rows.
    """

    def __init__(
        self,
        songs: SongRepository,
        confirmations: TuningConfirmationRepository,
        catalog: CatalogSearchClient,
        ranker: RelevanceRanker,
        enricher: SongEnricher,
        gate: PersistenceGate,
        bulk: BulkMatchResolver,
        backfill: DurationBackfill,
        max_results: int,
    ) -> None:
        self._songs = songs
        self._confirmations = confirmations
        self._catalog = catalog
        self._ranker = ranker
        self._enricher = enricher
        self._gate = gate
        self._bulk = bulk
        self._backfill = backfill
        self._max_results = max_results

    @property
    def bulk(self) -> BulkMatchResolver:
        return self._bulk

    def search(self, query: str | None) -> list[CanonicalSong]:
        """Search for songs by free text.

        Raises:
            InvalidInput: If the query is missing or blank.

        Returns:
            Stored songs first, then new discoveries; empty when the catalog
            has nothing for the query.
        """
        if not query or not query.strip():
            raise InvalidInput("Query parameter is required")
        query = query.strip()

        existing = self._gate.load_existing(query)

        candidates = self._catalog.search(query)
        if not candidates:
            logger.info("No catalog results for '%s'", query)
            return []

        ranked = self._ranker.rank(query, candidates)
        discovered = self._enricher.enrich_many(
            [scored.candidate for scored in ranked[: self._max_results]]
        )
        results = self._gate.merge(existing, discovered)
        logger.info(
            "Search '%s': %d stored + %d new", query, len(existing), len(results) - len(existing),
        )
        return results

    def create_song(self, payload: dict[str, Any]) -> CanonicalSong:
        """Create (or refresh) a catalog song from a request payload.

        Raises:
            InvalidInput: If title or artist is missing, or the tuning is unknown.
        """
        title = (payload.get("title") or "").strip()
        artist = (payload.get("artist") or "").strip()
        if not title or not artist:
            raise InvalidInput("Title and artist are required")

        tuning = payload.get("tuning") or DEFAULT_TUNING
        if not is_known_tuning(tuning):
            raise InvalidInput(f"Unknown tuning: {tuning}")
        tuning_source = payload.get("tuning_source") or (
            TUNING_SOURCE_DEFAULT if tuning == DEFAULT_TUNING else TUNING_SOURCE_USER
        )

        bpm = payload.get("bpm")
        if bpm is not None:
            try:
                bpm = int(bpm)
            except (TypeError, ValueError) as e:
                raise InvalidInput(f"Invalid bpm: {payload.get('bpm')!r}") from e

        duration = payload.get("duration_seconds")
        if duration is not None:
            try:
                duration = int(duration)
            except (TypeError, ValueError) as e:
                raise InvalidInput(f"Invalid duration: {payload.get('duration_seconds')!r}") from e

        song = CanonicalSong(
            title=title,
            artist=artist,
            is_live=bool(payload.get("is_live") or False),
            duration_seconds=duration,
            bpm=bpm,
            bpm_source=payload.get("bpm_source") or ("user" if bpm else None),
            tuning=tuning,
            tuning_source=tuning_source,
            external_id=payload.get("external_id") or None,
            album_artwork=payload.get("album_artwork") or None,
        )
        return self._gate.upsert(song)

    def bulk_durations(
        self,
        items: list[BulkMatchItem | dict],
        progress_callback: BulkProgressCallback | None = None,
    ) -> list[BulkMatchResult]:
        """Resolve durations for an ordered batch of (artist, title) pairs."""
        if progress_callback is not None:
            self._bulk.progress_callback = progress_callback
        return self._bulk.resolve(items)

    def confirm_tuning(
        self,
        song_id: int,
        tuning: str,
        user_id: str = "",
        band_id: str = "",
    ) -> CanonicalSong:
        """Record a user-confirmed tuning and apply it to the song row.

        Raises:
            InvalidInput: If the tuning is unknown or the song does not exist.
        """
        if not is_known_tuning(tuning):
            raise InvalidInput(f"Unknown tuning: {tuning}")
        song = self._songs.get_by_id(song_id)
        if song is None:
            raise InvalidInput(f"Song not found: {song_id}")

        self._confirmations.confirm(song_id, song.title, song.artist, tuning, user_id, band_id)
        self._songs.update_fields(song_id, {"tuning": tuning, "tuning_source": TUNING_SOURCE_USER})
        song.tuning = tuning
        song.tuning_source = TUNING_SOURCE_USER
        logger.info("Tuning confirmed for %s - %s: %s", song.artist, song.title, tuning)
        return song

    def cleanup_tunings(self) -> tuple[int, int]:
        return self._gate.cleanup_tunings()

    def backfill_durations(
        self,
        song_id: int | None = None,
        batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE,
    ) -> BackfillOutcome | BackfillReport:
        """Fill missing durations for one song, or for a batch of songs."""
        if song_id is not None:
            return self._backfill.backfill_song(song_id)
        return self._backfill.backfill_batch(batch_size)


def build_service(
    config: AppConfig,
    database: Database,
    reference: ReferenceData | None = None,
    session: requests.Session | None = None,
) -> SongService:
    """Wire every engine component from configuration.

    Args:
        config: Application configuration.
        database: Open (or openable) catalog database.
        reference: Static tables (defaults to the bundled data).
        session: Shared HTTP session for every integration.
    """
    reference = reference or default_reference_data()
    session = session or requests.Session()
    matcher = FuzzyMatcher(threshold=config.fuzzy_threshold)

    conn = database.connection
    songs = SongRepository(conn)
    confirmations = TuningConfirmationRepository(conn)

    catalog = CatalogSearchClient(
        session=session,
        timeout=config.catalog_timeout,
        lookup_timeout=config.lookup_timeout,
        min_interval=config.catalog_rate_limit,
    )

    spotify = None
    if config.spotify_configured:
        tokens = SpotifyTokenCache(
            config.spotify_client_id,
            config.spotify_client_secret,
            session=session,
            timeout=config.spotify_timeout,
        )
        spotify = SpotifyClient(tokens, session=session, timeout=config.spotify_timeout)
    else:
        logger.info("Spotify credentials not configured; BPM comes from the fallback table only")
    bpm = BpmResolver(spotify=spotify, reference=reference)

    songsterr = None
    if config.songsterr_enabled:
        songsterr = SongsterrClient(session=session, timeout=config.tuning_timeout, matcher=matcher)
    tuning = TuningResolver(songsterr=songsterr, reference=reference)

    gate = PersistenceGate(
        songs,
        bpm,
        tuning,
        confirmations=confirmations,
        max_results=config.max_results,
    )
    bulk = BulkMatchResolver(
        catalog,
        min_match_score=config.bulk_min_match_score,
        confident_score=config.bulk_confident_score,
        ambiguity_margin=config.bulk_ambiguity_margin,
    )
    musicbrainz = MusicBrainzDurationSource(matcher=matcher) if config.musicbrainz_enabled else None

    return SongService(
        songs=songs,
        confirmations=confirmations,
        catalog=catalog,
        ranker=RelevanceRanker(reference=reference, matcher=matcher, max_results=config.max_results),
        enricher=SongEnricher(bpm, tuning, max_workers=config.enrichment_workers),
        gate=gate,
        bulk=bulk,
        backfill=DurationBackfill(songs, catalog, musicbrainz=musicbrainz),
        max_results=config.max_results,
    )
