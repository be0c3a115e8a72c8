"""Tuning resolution -- confirmed tuning, static table, then Songsterr."""

from __future__ import annotations

import requests

from songscout.core.fuzzy_matcher import FuzzyMatcher
from songscout.core.reference_data import ReferenceData, default_reference_data
from songscout.models.tuning import TuningInfo, describe_tuning, is_known_tuning
from songscout.utils.constants import (
    DEFAULT_TUNING,
    SONGSTERR_GUITAR_INSTRUMENT_HINTS,
    SONGSTERR_SEARCH_URL,
    SONGSTERR_SONG_URL,
    SONGSTERR_TIMEOUT_SECONDS,
    USER_AGENT,
)
from songscout.utils.errors import UpstreamUnavailable
from songscout.utils.logger import get_logger
from songscout.utils.rate_limiter import RateLimiter, rate_limiter
from songscout.utils.text import normalize_key

logger = get_logger("core.tuning_resolver")

TUNING_SOURCE_USER = "user"
TUNING_SOURCE_FALLBACK = "fallback"
TUNING_SOURCE_SONGSTERR = "songsterr"
TUNING_SOURCE_DEFAULT = "default"

_SERVICE = "songsterr"
_NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def midi_to_note(value: int) -> str:
    """Name a MIDI note number without its octave (40 -> 'E')."""
    return _NOTE_NAMES[value % 12]


def tuning_string(raw: list) -> str:
    """Render a Songsterr tuning array as space-separated notes, low string first.

    Songsterr sends either note names or MIDI numbers (highest string
    first); both come out as e.g. "D A D G B E".
    """
    if raw and all(isinstance(v, int) for v in raw):
        pitches = sorted(raw) if raw[0] > raw[-1] else list(raw)
        return " ".join(midi_to_note(v) for v in pitches)
    return " ".join(str(v).strip() for v in raw if str(v).strip())


class SongsterrClient:
    """Looks up guitar tunings in the Songsterr tab database."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = SONGSTERR_TIMEOUT_SECONDS,
        matcher: FuzzyMatcher | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        self._timeout = timeout
        self._fuzzy = matcher or FuzzyMatcher()
        self._limiter = limiter or rate_limiter

    def _get_json(self, url: str, params: dict | None = None):
        self._limiter.wait(_SERVICE)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable(_SERVICE, str(e)) from e
        except ValueError as e:
            raise UpstreamUnavailable(_SERVICE, f"invalid JSON: {e}") from e

    @staticmethod
    def _artist_name(song: dict) -> str | None:
        # Search hits carry the artist as {"name": ...}; some carry a bare string
        artist = song.get("artist")
        if isinstance(artist, dict):
            artist = artist.get("name")
        return artist if isinstance(artist, str) else None

    def _pick_song(self, results: list[dict], title: str, artist: str) -> dict:
        """Best title+artist match among search results, else the first one."""
        title_key = normalize_key(title)
        for song in results:
            raw_title = song.get("title")
            song_title = normalize_key(raw_title) if isinstance(raw_title, str) else ""
            song_artist = self._artist_name(song)
            title_ok = bool(song_title) and (song_title in title_key or title_key in song_title)
            if title_ok and self._fuzzy.artist_matches(artist, song_artist):
                return song
        return results[0]

    def guitar_tunings(self, title: str, artist: str) -> list[str]:
        """Return raw guitar tuning strings for the best-matching tab.

        Raises:
            UpstreamUnavailable: If either Songsterr request fails.
        """
        pattern = f"{normalize_key(title)} {normalize_key(artist)}".strip()
        data = self._get_json(SONGSTERR_SEARCH_URL, {"pattern": pattern})
        if not isinstance(data, list):
            return []
        results = [r for r in data if isinstance(r, dict)]
        if not results:
            return []

        song = self._pick_song(results, title, artist)
        song_id = song.get("id")
        if not isinstance(song_id, (int, str)) or isinstance(song_id, bool) or song_id == "":
            logger.debug("Songsterr hit without a usable id: %r", song_id)
            return []

        detail = self._get_json(SONGSTERR_SONG_URL.format(song_id=song_id))
        tunings = detail.get("tunings") if isinstance(detail, dict) else None
        if not isinstance(tunings, list):
            return []

        found = []
        for entry in tunings:
            if not isinstance(entry, dict):
                continue
            instrument = str(entry.get("instrument") or "").lower()
            if not any(hint in instrument for hint in SONGSTERR_GUITAR_INSTRUMENT_HINTS):
                continue
            raw = entry.get("tuning")
            if isinstance(raw, list) and raw:
                found.append(tuning_string(raw))
        return found


class TuningResolver:
    """Resolves a song's tuning through a fixed priority chain.

    1. A user-confirmed tuning, when the caller supplies one.
    2. The static title table (lists only non-standard tunings).
    3. Songsterr, consulted only when step 2 says "standard".

    The result is never empty; absence of evidence means "standard".
    """

    def __init__(
        self,
        songsterr: SongsterrClient | None = None,
        reference: ReferenceData | None = None,
    ) -> None:
        self._songsterr = songsterr
        self._ref = reference or default_reference_data()

    def fallback_tuning(self, title: str | None) -> str:
        """Tuning from the static table, or the default."""
        return self._ref.fallback_tuning(title) or DEFAULT_TUNING

    def map_songsterr_tuning(self, raw: str) -> str:
        """Map a raw tuning string onto a canonical label.

        Exact table first (both string orders), then substring patterns,
        then standard.
        """
        notes = " ".join(raw.split())
        label = self._ref.songsterr_exact.get(notes)
        if label is None:
            label = self._ref.songsterr_exact.get(" ".join(reversed(notes.split())))
        if label is not None:
            return label
        for needle, pattern_label in self._ref.songsterr_patterns:
            if needle in raw:
                return pattern_label
        return DEFAULT_TUNING

    def _from_songsterr(self, artist: str, title: str) -> str | None:
        if self._songsterr is None:
            return None
        try:
            tunings = self._songsterr.guitar_tunings(title, artist)
        except UpstreamUnavailable as e:
            logger.warning("Songsterr lookup failed for %s - %s: %s", artist, title, e.detail)
            return None
        if not tunings:
            return None
        label = self.map_songsterr_tuning(tunings[0])
        logger.debug("Songsterr tuning for %s - %s: %r -> %s", artist, title, tunings[0], label)
        return label

    def resolve(
        self,
        artist: str,
        title: str,
        confirmed: str | None = None,
    ) -> tuple[str, str]:
        """Resolve the tuning for a song.

        Args:
            artist: Performing artist.
            title: Song title.
            confirmed: A user-confirmed tuning label, if one exists.

        Returns:
            (tuning_label, source) with source one of 'user', 'fallback',
            'songsterr' or 'default'.
        """
        if confirmed and is_known_tuning(confirmed):
            return confirmed, TUNING_SOURCE_USER

        listed = self._ref.fallback_tuning(title)
        if listed:
            return listed, TUNING_SOURCE_FALLBACK

        suggested = self._from_songsterr(artist, title)
        if suggested and suggested != DEFAULT_TUNING:
            return suggested, TUNING_SOURCE_SONGSTERR
        return DEFAULT_TUNING, TUNING_SOURCE_DEFAULT

    @staticmethod
    def describe(label: str | None) -> TuningInfo:
        """Display name and notes for a tuning label."""
        return describe_tuning(label)
