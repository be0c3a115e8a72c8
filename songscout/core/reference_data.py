"""Loader for the versioned static data assets in ``songscout/data``.

Chart hits, BPM / tuning fallbacks, artist sets and the Songsterr tuning map
live in YAML so they can be updated without touching ranking logic. Every
key and name is normalized on load; callers look entries up with
``normalize_key`` output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from songscout.models.tuning import is_known_tuning
from songscout.utils.logger import get_logger
from songscout.utils.text import normalize_key

logger = get_logger("core.reference_data")

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class ChartEntry:
    """One historical chart run for a title."""

    artist: str
    peak_position: int
    year: int

    @property
    def artist_key(self) -> str:
        return normalize_key(self.artist)


@dataclass(frozen=True)
class ReferenceData:
    """All static lookup tables used by ranking and enrichment."""

    chart_hits: dict[str, tuple[ChartEntry, ...]] = field(default_factory=dict)
    bpm_fallbacks: dict[str, int] = field(default_factory=dict)
    tuning_fallbacks: dict[str, str] = field(default_factory=dict)
    popular_artists: frozenset[str] = frozenset()
    legendary_artists: frozenset[str] = frozenset()
    songsterr_exact: dict[str, str] = field(default_factory=dict)
    songsterr_patterns: tuple[tuple[str, str], ...] = ()
    versions: dict[str, str] = field(default_factory=dict)

    def chart_entries(self, title_key: str) -> tuple[ChartEntry, ...]:
        return self.chart_hits.get(title_key, ())

    def fallback_bpm(self, title: str | None) -> int | None:
        return self.bpm_fallbacks.get(normalize_key(title))

    def fallback_tuning(self, title: str | None) -> str | None:
        """Return the listed non-standard tuning for a title, or None."""
        return self.tuning_fallbacks.get(normalize_key(title))


def _read_yaml(path: Path) -> dict:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: expected a mapping at top level")
    return data


def _parse_chart_hits(raw: dict) -> dict[str, tuple[ChartEntry, ...]]:
    hits: dict[str, tuple[ChartEntry, ...]] = {}
    for title, entries in (raw.get("hits") or {}).items():
        key = normalize_key(str(title))
        parsed = tuple(
            ChartEntry(
                artist=str(entry["artist"]),
                peak_position=int(entry.get("peak_position") or 0),
                year=int(entry.get("year") or 0),
            )
            for entry in entries or []
        )
        if key in hits:
            logger.warning("Duplicate chart key after normalization: %r", key)
            parsed = hits[key] + parsed
        hits[key] = parsed
    return hits


def _parse_tunings(raw: dict) -> dict[str, str]:
    tunings: dict[str, str] = {}
    for title, label in (raw.get("tunings") or {}).items():
        if not is_known_tuning(label):
            raise ValueError(f"Unknown tuning label {label!r} for {title!r}")
        tunings[normalize_key(str(title))] = label
    return tunings


def _parse_songsterr_map(raw: dict) -> tuple[dict[str, str], tuple[tuple[str, str], ...]]:
    exact: dict[str, str] = {}
    for tuning_string, label in (raw.get("exact") or {}).items():
        if not is_known_tuning(label):
            raise ValueError(f"Unknown tuning label {label!r} for {tuning_string!r}")
        exact[" ".join(str(tuning_string).split())] = label
    patterns = tuple(
        (str(p["contains"]), str(p["tuning"])) for p in raw.get("patterns") or []
    )
    return exact, patterns


def load_reference_data(data_dir: Path | str | None = None) -> ReferenceData:
    """Read every data asset from *data_dir* (default: the bundled tables).

    Raises:
        FileNotFoundError: If an asset is missing.
        ValueError: If an asset is malformed or names an unknown tuning.
    """
    base = Path(data_dir) if data_dir else DATA_DIR

    chart_raw = _read_yaml(base / "chart_hits.yaml")
    bpm_raw = _read_yaml(base / "bpm_fallbacks.yaml")
    tuning_raw = _read_yaml(base / "tuning_fallbacks.yaml")
    artists_raw = _read_yaml(base / "artists.yaml")
    songsterr_raw = _read_yaml(base / "songsterr_tunings.yaml")

    songsterr_exact, songsterr_patterns = _parse_songsterr_map(songsterr_raw)

    data = ReferenceData(
        chart_hits=_parse_chart_hits(chart_raw),
        bpm_fallbacks={
            normalize_key(str(title)): int(bpm)
            for title, bpm in (bpm_raw.get("bpm") or {}).items()
            if bpm
        },
        tuning_fallbacks=_parse_tunings(tuning_raw),
        popular_artists=frozenset(normalize_key(a) for a in artists_raw.get("popular") or []),
        legendary_artists=frozenset(normalize_key(a) for a in artists_raw.get("legendary") or []),
        songsterr_exact=songsterr_exact,
        songsterr_patterns=songsterr_patterns,
        versions={
            "chart_hits": str(chart_raw.get("version", "")),
            "bpm_fallbacks": str(bpm_raw.get("version", "")),
            "tuning_fallbacks": str(tuning_raw.get("version", "")),
            "artists": str(artists_raw.get("version", "")),
            "songsterr_tunings": str(songsterr_raw.get("version", "")),
        },
    )
    logger.debug(
        "Loaded reference data: %d chart titles, %d BPM, %d tunings, %d popular artists",
        len(data.chart_hits), len(data.bpm_fallbacks),
        len(data.tuning_fallbacks), len(data.popular_artists),
    )
    return data


@lru_cache(maxsize=1)
def default_reference_data() -> ReferenceData:
    """Bundled reference data, loaded once per process."""
    return load_reference_data()
