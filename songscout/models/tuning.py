"""Canonical guitar tuning labels and their display info."""

from __future__ import annotations

from dataclasses import dataclass

from songscout.utils.constants import DEFAULT_TUNING


@dataclass(frozen=True)
class TuningInfo:
    """Human-readable name and string notes (low to high) for a tuning."""

    name: str
    notes: str


TUNINGS: dict[str, TuningInfo] = {
    "standard": TuningInfo("Standard Tuning", "E A D G B E"),
    "drop_d": TuningInfo("Drop D", "D A D G B E"),
    "half_step": TuningInfo("Half Step Down", "Eb Ab Db Gb Bb Eb"),
    "full_step": TuningInfo("Full Step Down", "D G C F A D"),
    "drop_c": TuningInfo("Drop C", "C G C F A D"),
    "drop_b": TuningInfo("Drop B", "B F# B E G# C#"),
    "b_standard": TuningInfo("B Standard", "B E A D F# B"),
    "open_d": TuningInfo("Open D", "D A D F# A D"),
    "open_e": TuningInfo("Open E", "E B E G# B E"),
    "dadgad": TuningInfo("DADGAD", "D A D G A D"),
    "dadgbd": TuningInfo("Double Drop D (top string)", "E A D G B D"),
    "cadgbe": TuningInfo("Drop C (low string only)", "C A D G B E"),
}


def is_known_tuning(label: str | None) -> bool:
    return bool(label) and label in TUNINGS


def describe_tuning(label: str | None) -> TuningInfo:
    """Return display info for a tuning label, falling back to standard."""
    if label and label in TUNINGS:
        return TUNINGS[label]
    return TUNINGS[DEFAULT_TUNING]
