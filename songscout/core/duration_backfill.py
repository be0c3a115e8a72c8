"""Duration backfill -- fills in missing song lengths from iTunes, then MusicBrainz."""

from __future__ import annotations

from dataclasses import dataclass, field

import musicbrainzngs

from songscout.core.catalog_client import CatalogSearchClient
from songscout.core.fuzzy_matcher import FuzzyMatcher
from songscout.db.repositories import SongRepository
from songscout.models.candidate import Candidate
from songscout.models.song import CanonicalSong
from songscout.utils.constants import (
    DEFAULT_BACKFILL_BATCH_SIZE,
    DURATION_LOOKUP_LIMIT,
    MILLISECONDS_PER_SECOND,
    MUSICBRAINZ_APP_NAME,
    MUSICBRAINZ_APP_VERSION,
    MUSICBRAINZ_CONTACT,
    MUSICBRAINZ_RATE_LIMIT,
)
from songscout.utils.errors import InvalidInput, UpstreamUnavailable
from songscout.utils.logger import get_logger
from songscout.utils.rate_limiter import RateLimiter, rate_limiter
from songscout.utils.text import normalize_key, round_half_up

logger = get_logger("core.duration_backfill")

STATUS_UPDATED = "updated"
STATUS_ALREADY_SET = "already_set"
STATUS_NOT_FOUND = "not_found"
STATUS_UPDATE_FAILED = "update_failed"


@dataclass
class BackfillOutcome:
    """What happened to one song during a backfill run."""

    song_id: int
    title: str
    artist: str
    status: str
    duration_seconds: int | None = None
    source: str | None = None


@dataclass
class BackfillReport:
    """Summary of a batch backfill run."""

    outcomes: list[BackfillOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.status == STATUS_UPDATED)


class MusicBrainzDurationSource:
    """Looks up recording lengths in MusicBrainz (free, no key, 1 req/s)."""

    def __init__(self, matcher: FuzzyMatcher | None = None, limiter: RateLimiter | None = None) -> None:
        self._fuzzy = matcher or FuzzyMatcher()
        self._limiter = limiter or rate_limiter
        # Required by the MusicBrainz TOS
        musicbrainzngs.set_useragent(
            MUSICBRAINZ_APP_NAME,
            MUSICBRAINZ_APP_VERSION,
            MUSICBRAINZ_CONTACT,
        )

    def duration_for(self, artist: str, title: str) -> int | None:
        """Length in seconds of the first recording credited to ``artist``.

        Raises:
            UpstreamUnavailable: If the MusicBrainz request fails.
        """
        self._limiter.wait("musicbrainz", MUSICBRAINZ_RATE_LIMIT)
        try:
            result = musicbrainzngs.search_recordings(
                recording=title,
                artist=artist,
                limit=DURATION_LOOKUP_LIMIT,
                strict=False,
            )
        except musicbrainzngs.WebServiceError as e:
            raise UpstreamUnavailable("musicbrainz", str(e)) from e

        recordings = result.get("recording-list") if isinstance(result, dict) else None
        for rec in recordings or []:
            if not isinstance(rec, dict):
                continue
            length_ms = rec.get("length")
            if not length_ms:
                continue
            credit = rec.get("artist-credit-phrase")
            credit = credit if isinstance(credit, str) else ""
            if credit and not self._fuzzy.artist_matches(artist, credit):
                continue
            try:
                return round_half_up(int(length_ms) / MILLISECONDS_PER_SECOND)
            except (TypeError, ValueError):
                continue
        return None


class DurationBackfill:
    """Fills ``duration_seconds`` on stored songs that lack it.

    Lookup order:
    1. iTunes: the result whose title and artist contain (or are contained
       in) the stored ones.
    2. iTunes: the first result that reports a duration.
    3. MusicBrainz recording search, when enabled.
    """

    def __init__(
        self,
        songs: SongRepository,
        catalog: CatalogSearchClient,
        musicbrainz: MusicBrainzDurationSource | None = None,
    ) -> None:
        self._songs = songs
        self._catalog = catalog
        self._musicbrainz = musicbrainz

    @staticmethod
    def _best_catalog_match(artist: str, title: str, candidates: list[Candidate]) -> Candidate | None:
        want_title = normalize_key(title)
        want_artist = normalize_key(artist)
        for candidate in candidates:
            got_title = normalize_key(candidate.title)
            got_artist = normalize_key(candidate.artist)
            title_ok = got_title == want_title or want_title in got_title or got_title in want_title
            artist_ok = got_artist == want_artist or want_artist in got_artist or got_artist in want_artist
            if title_ok and artist_ok:
                return candidate
        return candidates[0] if candidates else None

    def find_duration(self, artist: str, title: str) -> tuple[int | None, str | None]:
        """Look a duration up without writing anything.

        Returns:
            (seconds, source) or (None, None).
        """
        try:
            candidates = self._catalog.lookup(artist, title, limit=DURATION_LOOKUP_LIMIT)
        except UpstreamUnavailable as e:
            logger.warning("iTunes duration lookup failed for %s - %s: %s", artist, title, e.detail)
            candidates = []

        match = self._best_catalog_match(artist, title, candidates)
        if match is not None and match.duration_seconds:
            return match.duration_seconds, "itunes"

        if self._musicbrainz is not None:
            try:
                seconds = self._musicbrainz.duration_for(artist, title)
            except UpstreamUnavailable as e:
                logger.warning("MusicBrainz duration lookup failed for %s - %s: %s", artist, title, e.detail)
                seconds = None
            if seconds:
                return seconds, "musicbrainz"
        return None, None

    def _backfill(self, song: CanonicalSong) -> BackfillOutcome:
        outcome = BackfillOutcome(song_id=song.id or 0, title=song.title, artist=song.artist, status=STATUS_NOT_FOUND)
        if song.duration_seconds:
            outcome.status = STATUS_ALREADY_SET
            outcome.duration_seconds = song.duration_seconds
            return outcome

        seconds, source = self.find_duration(song.artist, song.title)
        if not seconds or song.id is None:
            return outcome

        outcome.duration_seconds = seconds
        outcome.source = source
        if self._songs.update_fields(song.id, {"duration_seconds": seconds}):
            song.duration_seconds = seconds
            outcome.status = STATUS_UPDATED
        else:
            outcome.status = STATUS_UPDATE_FAILED
        return outcome

    def backfill_song(self, song_id: int) -> BackfillOutcome:
        """Backfill one song by id.

        Raises:
            InvalidInput: If no song has this id.
        """
        song = self._songs.get_by_id(song_id)
        if song is None:
            raise InvalidInput(f"Song not found: {song_id}")
        outcome = self._backfill(song)
        logger.info("Duration backfill for song %d: %s", song_id, outcome.status)
        return outcome

    def backfill_batch(self, batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE) -> BackfillReport:
        """Backfill up to ``batch_size`` songs that have no duration, one at a time."""
        report = BackfillReport()
        for song in self._songs.list_missing_duration(limit=batch_size):
            report.outcomes.append(self._backfill(song))

        logger.info("Duration backfill: updated %d of %d songs", report.updated, report.processed)
        return report
