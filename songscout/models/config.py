"""Typed configuration model for Song Scout.

All configuration values have explicit types, defaults, and documentation.
Built from the YAML config file via ``AppConfig.from_dict()``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

from songscout.utils.constants import (
    CATALOG_LOOKUP_TIMEOUT_SECONDS,
    CATALOG_RATE_LIMIT,
    CATALOG_TIMEOUT_SECONDS,
    DEFAULT_BACKFILL_BATCH_SIZE,
    DEFAULT_BULK_AMBIGUITY_MARGIN,
    DEFAULT_BULK_CONFIDENT_SCORE,
    DEFAULT_BULK_MIN_MATCH_SCORE,
    DEFAULT_DB_FILENAME,
    DEFAULT_ENRICHMENT_WORKERS,
    DEFAULT_LOG_FILENAME,
    FUZZY_MATCH_THRESHOLD,
    MAX_SEARCH_RESULTS,
    SONGSTERR_TIMEOUT_SECONDS,
    SPOTIFY_TIMEOUT_SECONDS,
)


@dataclass
class AppConfig:
    """Strongly-typed configuration for the Song Scout engine.

    Attributes:
        db_path: SQLite catalog file.
        spotify_client_id: Spotify client-credentials id (BPM lookups).
        spotify_client_secret: Spotify client-credentials secret.
        songsterr_enabled: Whether to query Songsterr for tunings.
        musicbrainz_enabled: Whether duration backfill may fall back to MusicBrainz.
        catalog_timeout: Seconds per catalog search strategy.
        lookup_timeout: Seconds per bulk (artist, title) catalog lookup.
        spotify_timeout: Seconds per Spotify request.
        tuning_timeout: Seconds per Songsterr request.
        catalog_rate_limit: Minimum seconds between catalog requests.
        max_results: Maximum songs returned by a search.
        enrichment_workers: Threads used to enrich ranked candidates.
        fuzzy_threshold: Minimum rapidfuzz score (0-100) for artist matches.
        bulk_min_match_score: Bulk candidates at or below this are discarded.
        bulk_confident_score: Bulk best match must exceed this to be 'found'.
        bulk_ambiguity_margin: Bulk best match must beat the runner-up by
            more than this to be 'found'.
        backfill_batch_size: Songs per duration backfill run.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to the log file. None writes songscout.log beside
            the catalog database.
        log_to_file: False logs to the console only.
    """

    # --- Storage ---
    db_path: str = DEFAULT_DB_FILENAME

    # --- API Keys ---
    spotify_client_id: str = ""
    spotify_client_secret: str = ""

    # --- Integrations ---
    songsterr_enabled: bool = True
    musicbrainz_enabled: bool = True

    # --- Timeouts ---
    catalog_timeout: float = CATALOG_TIMEOUT_SECONDS
    lookup_timeout: float = CATALOG_LOOKUP_TIMEOUT_SECONDS
    spotify_timeout: float = SPOTIFY_TIMEOUT_SECONDS
    tuning_timeout: float = SONGSTERR_TIMEOUT_SECONDS

    # --- Rate Limits ---
    catalog_rate_limit: float = CATALOG_RATE_LIMIT

    # --- Search ---
    max_results: int = MAX_SEARCH_RESULTS
    enrichment_workers: int = DEFAULT_ENRICHMENT_WORKERS
    fuzzy_threshold: int = FUZZY_MATCH_THRESHOLD

    # --- Bulk Resolution ---
    bulk_min_match_score: int = DEFAULT_BULK_MIN_MATCH_SCORE
    bulk_confident_score: int = DEFAULT_BULK_CONFIDENT_SCORE
    bulk_ambiguity_margin: int = DEFAULT_BULK_AMBIGUITY_MARGIN

    # --- Backfill ---
    backfill_batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE

    # --- Logging ---
    log_level: str = "INFO"
    log_file: str | None = None
    log_to_file: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Create an AppConfig from a raw dictionary (e.g., from YAML).

        Unknown keys are silently ignored so YAML files with extra or future
        keys don't break older code.
        """
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields and v is not None}
        return cls(**filtered)

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def spotify_configured(self) -> bool:
        return bool(self.spotify_client_id and self.spotify_client_secret)

    @property
    def db_path_resolved(self) -> Path:
        return Path(self.db_path).expanduser().resolve()

    @property
    def log_path_resolved(self) -> Path | None:
        if not self.log_to_file:
            return None
        if self.log_file:
            return Path(self.log_file).expanduser().resolve()
        return self.db_path_resolved.parent / DEFAULT_LOG_FILENAME
