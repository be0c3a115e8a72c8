"""Error taxonomy for the song discovery engine."""

from __future__ import annotations


class SongScoutError(Exception):
    """Base class for all engine errors."""


class UpstreamUnavailable(SongScoutError):
    """An external API timed out, returned non-2xx, or sent an unusable body.

    Callers on enrichment paths convert this into "no data"; only the bulk
    lookup path lets it reach the caller, where it becomes a per-item error.
    """

    def __init__(self, service: str, detail: str) -> None:
        super().__init__(f"{service} unavailable: {detail}")
        self.service = service
        self.detail = detail


class InvalidInput(SongScoutError, ValueError):
    """A required field (query, title, artist) is missing or malformed."""


class PersistenceConflict(SongScoutError):
    """A write collided in a way the declared upsert key could not absorb."""
