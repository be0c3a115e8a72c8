"""Song Scout -- Entry point and command-line interface."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

import yaml

from songscout.models.bulk_match import BulkMatchResult
from songscout.models.config import AppConfig
from songscout.utils.constants import (
    APP_NAME,
    APP_VERSION,
    CATALOG_LOOKUP_TIMEOUT_SECONDS,
    CATALOG_TIMEOUT_SECONDS,
    DEFAULT_BULK_AMBIGUITY_MARGIN,
    DEFAULT_BULK_CONFIDENT_SCORE,
    DEFAULT_BULK_MIN_MATCH_SCORE,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_ENRICHMENT_WORKERS,
    FUZZY_MATCH_THRESHOLD,
    MAX_SEARCH_RESULTS,
    SONGSTERR_TIMEOUT_SECONDS,
    SPOTIFY_TIMEOUT_SECONDS,
)
from songscout.utils.errors import SongScoutError
from songscout.utils.logger import get_logger, setup_logger
from songscout.utils.text import format_duration

# Timeout keys and the defaults they fall back to when non-positive.
_TIMEOUT_DEFAULTS = {
    "catalog_timeout": CATALOG_TIMEOUT_SECONDS,
    "lookup_timeout": CATALOG_LOOKUP_TIMEOUT_SECONDS,
    "spotify_timeout": SPOTIFY_TIMEOUT_SECONDS,
    "tuning_timeout": SONGSTERR_TIMEOUT_SECONDS,
}

# Positive integer keys and their defaults.
_COUNT_DEFAULTS = {
    "max_results": MAX_SEARCH_RESULTS,
    "enrichment_workers": DEFAULT_ENRICHMENT_WORKERS,
}

# Environment variables that override config.yaml.
_ENV_OVERRIDES = {
    "SPOTIFY_CLIENT_ID": "spotify_client_id",
    "SPOTIFY_CLIENT_SECRET": "spotify_client_secret",
}


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: dict) -> list[str]:
    """Validate configuration values and return a list of warnings.

    Checks:
    - Timeouts are positive numbers
    - Result limits and worker counts are positive integers
    - fuzzy_threshold is within 0-100
    - Bulk scores are non-negative and confident >= minimum

    Invalid values are replaced in ``config`` so the caller can still build
    an ``AppConfig`` from it.

    Args:
        config: Configuration dictionary.

    Returns:
        List of human-readable warning strings. Empty if all checks pass.
    """
    warnings: list[str] = []

    for key, default in _TIMEOUT_DEFAULTS.items():
        if key not in config:
            continue
        value = config[key]
        if not _is_number(value) or value <= 0:
            warnings.append(f"{key} must be a positive number, got {value!r}. Using default ({default}).")
            config[key] = default

    for key, default in _COUNT_DEFAULTS.items():
        if key not in config:
            continue
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            warnings.append(f"{key} must be a positive integer, got {value!r}. Using default ({default}).")
            config[key] = default

    threshold = config.get("fuzzy_threshold", FUZZY_MATCH_THRESHOLD)
    if not _is_number(threshold) or not (0 <= threshold <= 100):
        warnings.append(
            f"fuzzy_threshold must be 0-100, got {threshold!r}. "
            f"Using default ({FUZZY_MATCH_THRESHOLD})."
        )
        config["fuzzy_threshold"] = FUZZY_MATCH_THRESHOLD

    for key, default in (
        ("bulk_min_match_score", DEFAULT_BULK_MIN_MATCH_SCORE),
        ("bulk_confident_score", DEFAULT_BULK_CONFIDENT_SCORE),
        ("bulk_ambiguity_margin", DEFAULT_BULK_AMBIGUITY_MARGIN),
    ):
        value = config.get(key, default)
        if not _is_number(value) or value < 0:
            warnings.append(f"{key} must be a non-negative number, got {value!r}. Using default ({default}).")
            config[key] = default

    min_score = config.get("bulk_min_match_score", DEFAULT_BULK_MIN_MATCH_SCORE)
    confident = config.get("bulk_confident_score", DEFAULT_BULK_CONFIDENT_SCORE)
    if confident < min_score:
        warnings.append(
            f"bulk_confident_score ({confident}) must be >= bulk_min_match_score "
            f"({min_score}). Swapping them."
        )
        config["bulk_confident_score"] = min_score
        config["bulk_min_match_score"] = confident

    return warnings


def load_config(config_path: Path | str | None = None) -> dict:
    """Load configuration from config.yaml, then apply environment overrides.

    Args:
        config_path: Explicit config file. Defaults to ``config/config.yaml``
            next to the package.

    Returns:
        Configuration dictionary (suitable for ``AppConfig.from_dict()``).
    """
    config: dict = {}

    path = Path(config_path) if config_path else Path(__file__).parent.parent / "config" / DEFAULT_CONFIG_FILENAME
    if path.exists():
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    return config


# --- Output ---

def _print_song(song) -> None:
    bpm = f"{song.bpm} BPM" if song.bpm else "-- BPM"
    print(
        f"{song.artist} - {song.title}  [{format_duration(song.duration_seconds)}]  "
        f"{bpm}  {song.tuning} ({song.tuning_source})"
    )


def _print_bulk_result(result: BulkMatchResult) -> None:
    line = f"{result.status.value:<10} {result.artist} - {result.title}"
    if result.duration_seconds is not None:
        line += f"  [{format_duration(result.duration_seconds)}]"
    if result.error:
        line += f"  ({result.error})"
    print(line)
    if not result.status.needs_user_action():
        return
    for option in result.options:
        print(f"    {option.id}: {option.artist} - {option.title} [{format_duration(option.duration_seconds)}]")


# --- Commands ---

def _cmd_search(service, args: argparse.Namespace) -> int:
    results = service.search(args.query)
    if args.json:
        print(json.dumps([song.to_response() for song in results], indent=2))
        return 0
    if not results:
        print("No results.")
    for song in results:
        _print_song(song)
    return 0


def _cmd_add(service, args: argparse.Namespace) -> int:
    payload = {
        "title": args.title,
        "artist": args.artist,
        "bpm": args.bpm,
        "tuning": args.tuning,
        "duration_seconds": args.duration,
        "is_live": args.live,
    }
    song = service.create_song(payload)
    print(f"Stored song {song.id}:")
    _print_song(song)
    return 0


def _cmd_bulk(service, args: argparse.Namespace) -> int:
    with open(args.file, encoding="utf-8") as f:
        items = json.load(f)

    def on_progress(completed: int, total: int, result: BulkMatchResult) -> None:
        print(f"[{completed}/{total}] {result.artist} - {result.title}: {result.status.value}", file=sys.stderr)

    results = service.bulk_durations(items, progress_callback=on_progress)
    if args.json:
        print(json.dumps([r.as_dict() for r in results], indent=2))
    else:
        for result in results:
            _print_bulk_result(result)
    summary = service.bulk.summary
    print(
        f"{summary.total} songs: {summary.found} found, {summary.multiple} multiple, "
        f"{summary.not_found} not found, {summary.errors} errors",
        file=sys.stderr,
    )
    return 0


def _cmd_backfill(service, args: argparse.Namespace) -> int:
    if args.song_id is not None:
        outcome = service.backfill_durations(song_id=args.song_id)
        print(f"{outcome.artist} - {outcome.title}: {outcome.status}")
        return 0
    report = service.backfill_durations(batch_size=args.batch_size)
    for outcome in report.outcomes:
        detail = f" {format_duration(outcome.duration_seconds)} via {outcome.source}" if outcome.source else ""
        print(f"{outcome.status:<14} {outcome.artist} - {outcome.title}{detail}")
    print(f"Updated {report.updated} of {report.processed} songs")
    return 0


def _cmd_cleanup(service, args: argparse.Namespace) -> int:
    total, corrected = service.cleanup_tunings()
    print(f"Corrected {corrected} of {total} songs")
    return 0


def _cmd_confirm(service, args: argparse.Namespace) -> int:
    song = service.confirm_tuning(args.song_id, args.tuning, user_id=args.user, band_id=args.band)
    _print_song(song)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="songscout", description=f"{APP_NAME} v{APP_VERSION}")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--db", help="SQLite catalog file (overrides config)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search the catalog and print ranked, enriched songs")
    p.add_argument("query")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_search)

    p = sub.add_parser("add", help="Create or refresh a song in the catalog")
    p.add_argument("--title", required=True)
    p.add_argument("--artist", required=True)
    p.add_argument("--bpm", type=int)
    p.add_argument("--tuning")
    p.add_argument("--duration", type=int, help="Length in seconds")
    p.add_argument("--live", action="store_true")
    p.set_defaults(func=_cmd_add)

    p = sub.add_parser("bulk", help="Resolve durations for a JSON list of {artist, title}")
    p.add_argument("file")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_bulk)

    p = sub.add_parser("backfill-durations", help="Fill in missing song durations")
    p.add_argument("--batch-size", type=int)
    p.add_argument("--song-id", type=int)
    p.set_defaults(func=_cmd_backfill)

    p = sub.add_parser("cleanup-tunings", help="Re-apply tuning corrections across the catalog")
    p.set_defaults(func=_cmd_cleanup)

    p = sub.add_parser("confirm-tuning", help="Record a user-confirmed tuning for a song")
    p.add_argument("song_id", type=int)
    p.add_argument("tuning")
    p.add_argument("--user", default="")
    p.add_argument("--band", default="")
    p.set_defaults(func=_cmd_confirm)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point. Loads config, sets up logging, and runs a command."""
    from songscout.core.song_service import build_service
    from songscout.db.database import Database

    args = build_parser().parse_args(argv)

    raw_config = load_config(args.config)
    if args.db:
        raw_config["db_path"] = args.db
    if args.log_level:
        raw_config["log_level"] = args.log_level

    # Validate the raw dict first (mutates to fix invalid values)
    config_warnings = validate_config(raw_config)
    config = AppConfig.from_dict(raw_config)

    setup_logger(log_level=config.log_level, log_file=config.log_path_resolved)
    logger = get_logger("main")
    logger.debug("%s v%s starting", APP_NAME, APP_VERSION)

    for warning in config_warnings:
        logger.warning("Config: %s", warning)

    if args.command == "backfill-durations" and args.batch_size is None:
        args.batch_size = config.backfill_batch_size

    with Database(config.db_path_resolved) as db:
        service = build_service(config, db)
        try:
            return args.func(service, args)
        except SongScoutError as e:
            logger.error("%s", e)
            return 1
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read input: %s", e)
            return 1


if __name__ == "__main__":
    sys.exit(main())
