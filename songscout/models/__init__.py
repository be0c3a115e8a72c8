"""Data models for Song Scout."""

from songscout.models.candidate import Candidate, ScoredCandidate
from songscout.models.song import CanonicalSong
from songscout.models.bulk_match import (
    BulkMatchItem,
    BulkMatchResult,
    BulkMatchStatus,
    BulkRunSummary,
    DisambiguationOption,
)
from songscout.models.tuning import TuningInfo
from songscout.models.config import AppConfig

__all__ = [
    "Candidate",
    "ScoredCandidate",
    "CanonicalSong",
    "BulkMatchItem",
    "BulkMatchResult",
    "BulkMatchStatus",
    "BulkRunSummary",
    "DisambiguationOption",
    "TuningInfo",
    "AppConfig",
]
