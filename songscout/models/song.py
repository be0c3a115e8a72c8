"""Canonical song model -- the deduplicated, persisted catalog record."""

from __future__ import annotations

from dataclasses import dataclass, field

from songscout.utils.constants import DEFAULT_TUNING
from songscout.utils.text import song_key

# Title words that mark a recording as a live / unplugged version
LIVE_TITLE_MARKERS = ("live", "concert", "acoustic")


def is_live_title(title: str | None) -> bool:
    """Check whether a title looks like a live or acoustic recording."""
    if not title:
        return False
    lowered = title.lower()
    return any(marker in lowered for marker in LIVE_TITLE_MARKERS)


@dataclass
class CanonicalSong:
    """A song in the shared catalog, with resolved tempo and tuning.

    Attributes:
        title: Song title.
        artist: Performing artist.
        is_live: Whether this is a live / acoustic recording.
        duration_seconds: Length in whole seconds, if known.
        bpm: Tempo in beats per minute. None (never 0) when unknown.
        bpm_source: Where the BPM came from ('spotify', 'fallback', 'user').
        tuning: Canonical tuning label. Never empty; 'standard' by default.
        tuning_source: Where the tuning came from ('user', 'fallback',
            'songsterr', 'default').
        external_id: Catalog track id of the recording this was built from.
        album_artwork: Artwork URL. Transient: shown in search results but
            not written to the catalog.
        id: Database row id, None until persisted.
    """

    title: str
    artist: str
    is_live: bool = False
    duration_seconds: int | None = None
    bpm: int | None = None
    bpm_source: str | None = None
    tuning: str = DEFAULT_TUNING
    tuning_source: str = "default"
    external_id: str | None = None
    album_artwork: str | None = field(default=None, compare=False)
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.bpm:
            # 0 and negative tempos are "unknown"
            self.bpm = None
            self.bpm_source = None
        if not self.tuning:
            self.tuning = DEFAULT_TUNING

    @property
    def key(self) -> tuple[str, str]:
        """Normalized (title, artist) uniqueness key."""
        return song_key(self.title, self.artist)

    def as_dict(self) -> dict:
        """Serialize the song for database storage (excludes transient artwork)."""
        title_key, artist_key = self.key
        return {
            "title": self.title,
            "artist": self.artist,
            "title_key": title_key,
            "artist_key": artist_key,
            "is_live": int(self.is_live),
            "duration_seconds": self.duration_seconds,
            "bpm": self.bpm,
            "bpm_source": self.bpm_source,
            "tuning": self.tuning,
            "tuning_source": self.tuning_source,
            "external_id": self.external_id,
        }

    def to_response(self) -> dict:
        """Serialize for an API / CLI response, artwork included."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "is_live": self.is_live,
            "duration_seconds": self.duration_seconds,
            "bpm": self.bpm,
            "tuning": self.tuning,
            "tuning_source": self.tuning_source,
            "external_id": self.external_id,
            "album_artwork": self.album_artwork,
        }
