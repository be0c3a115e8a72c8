"""Bulk duration-match models: per-item status, results and run summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BulkMatchStatus(Enum):
    """Lifecycle of a single (artist, title) item in a bulk batch."""

    PENDING = "pending"
    LOADING = "loading"
    FOUND = "found"
    MULTIPLE = "multiple"
    NOT_FOUND = "not_found"
    ERROR = "error"

    def is_terminal(self) -> bool:
        """Check if this status is a final classification for the item."""
        return self in {
            BulkMatchStatus.FOUND,
            BulkMatchStatus.MULTIPLE,
            BulkMatchStatus.NOT_FOUND,
            BulkMatchStatus.ERROR,
        }

    def needs_user_action(self) -> bool:
        """Only ambiguous items wait on the user to pick a recording."""
        return self is BulkMatchStatus.MULTIPLE


@dataclass(frozen=True)
class BulkMatchItem:
    """One requested (artist, title) pair."""

    artist: str
    title: str


@dataclass
class DisambiguationOption:
    """A plausible recording offered to the user for an ambiguous item."""

    id: str
    artist: str
    title: str
    duration_seconds: int
    artwork: str | None = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "artist": self.artist,
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "artwork": self.artwork,
        }


@dataclass
class BulkMatchResult:
    """Classified outcome for one bulk item.

    ``options`` is only populated when ``status`` is MULTIPLE; ``error`` only
    when it is ERROR.
    """

    artist: str
    title: str
    status: BulkMatchStatus = BulkMatchStatus.PENDING
    duration_seconds: int | None = None
    options: list[DisambiguationOption] = field(default_factory=list)
    error: str | None = None

    def as_dict(self) -> dict:
        data: dict = {
            "artist": self.artist,
            "title": self.title,
            "status": self.status.value,
        }
        if self.duration_seconds is not None:
            data["duration_seconds"] = self.duration_seconds
        if self.status is BulkMatchStatus.MULTIPLE:
            data["matches"] = [opt.as_dict() for opt in self.options]
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class BulkRunSummary:
    """Counts for a bulk run, filled in as items complete."""

    total: int = 0
    found: int = 0
    multiple: int = 0
    not_found: int = 0
    errors: int = 0
    cancelled: bool = False

    @property
    def completed(self) -> int:
        return self.found + self.multiple + self.not_found + self.errors

    def record(self, status: BulkMatchStatus) -> None:
        """Count one finished item."""
        if status is BulkMatchStatus.FOUND:
            self.found += 1
        elif status is BulkMatchStatus.MULTIPLE:
            self.multiple += 1
        elif status is BulkMatchStatus.NOT_FOUND:
            self.not_found += 1
        elif status is BulkMatchStatus.ERROR:
            self.errors += 1
