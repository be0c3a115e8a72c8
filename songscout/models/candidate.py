"""Candidate models -- raw catalog tracks before and after scoring."""

from __future__ import annotations

from dataclasses import dataclass

from songscout.utils.constants import MILLISECONDS_PER_SECOND
from songscout.utils.text import round_half_up, song_key


@dataclass
class Candidate:
    """A single track returned by the external catalog search.

    Transient: candidates are never persisted as-is. Only the fields the
    ranking and enrichment stages need are kept; the raw payload stays at
    the catalog client boundary.

    Attributes:
        title: Track title as reported by the catalog.
        artist: Artist name as reported by the catalog.
        external_id: Catalog track id (stringified).
        duration_ms: Track length in milliseconds, if known.
        discovery_index: Position in the accumulated raw search stream,
            used as a popularity prior (lower = earlier = more popular).
        track_price: Purchase price, if the track is for sale.
        collection_name: Album / collection the track belongs to.
        track_number: Position within the collection.
        release_date: ISO release date string from the catalog.
        artwork_url: Album artwork URL (display only, never stored).
        genre: Primary genre name.
    """

    title: str
    artist: str
    external_id: str = ""
    duration_ms: int | None = None
    discovery_index: int = 0
    track_price: float | None = None
    collection_name: str | None = None
    track_number: int | None = None
    release_date: str | None = None
    artwork_url: str | None = None
    genre: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Normalized (title, artist) dedup key."""
        return song_key(self.title, self.artist)

    @property
    def duration_seconds(self) -> int | None:
        if self.duration_ms is None:
            return None
        return round_half_up(self.duration_ms / MILLISECONDS_PER_SECOND)

    @property
    def release_year(self) -> int | None:
        """Year parsed from the release date, or None if unparseable."""
        if not self.release_date or len(self.release_date) < 4:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            return None


@dataclass
class ScoredCandidate:
    """A candidate paired with its relevance score."""

    candidate: Candidate
    score: int

    @property
    def sort_key(self) -> tuple[int, int]:
        # Descending score, then earliest discovery wins ties
        return (-self.score, self.candidate.discovery_index)
