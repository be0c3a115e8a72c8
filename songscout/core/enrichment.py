"""Turns ranked catalog candidates into canonical songs with BPM and tuning."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed

from songscout.core.bpm_resolver import BpmResolver
from songscout.core.tuning_resolver import TuningResolver
from songscout.models.candidate import Candidate
from songscout.models.song import CanonicalSong, is_live_title
from songscout.utils.constants import DEFAULT_ENRICHMENT_WORKERS
from songscout.utils.logger import get_logger

logger = get_logger("core.enrichment")


class SongEnricher:
    """Resolves tempo and tuning for candidates.

    Enrichment only reads external sources, so the top-N candidates are
    enriched concurrently. Output order always matches input order.
    """

    def __init__(
        self,
        bpm_resolver: BpmResolver,
        tuning_resolver: TuningResolver,
        max_workers: int = DEFAULT_ENRICHMENT_WORKERS,
    ) -> None:
        self._bpm = bpm_resolver
        self._tuning = tuning_resolver
        self._max_workers = max(1, max_workers)

    def bare_song(self, candidate: Candidate) -> CanonicalSong:
        """Canonical song from catalog fields only, without enrichment."""
        return CanonicalSong(
            title=candidate.title,
            artist=candidate.artist,
            is_live=is_live_title(candidate.title),
            duration_seconds=candidate.duration_seconds,
            external_id=candidate.external_id or None,
            album_artwork=candidate.artwork_url,
        )

    def enrich(self, candidate: Candidate) -> CanonicalSong:
        """Build a CanonicalSong for one candidate with BPM and tuning resolved."""
        song = self.bare_song(candidate)
        song.bpm, song.bpm_source = self._bpm.resolve_with_source(candidate.artist, candidate.title)
        song.tuning, song.tuning_source = self._tuning.resolve(candidate.artist, candidate.title)
        return song

    def enrich_many(self, candidates: list[Candidate]) -> list[CanonicalSong]:
        """Enrich candidates in parallel, preserving their order.

        A candidate whose enrichment raises unexpectedly is kept as a bare
        song (no BPM, standard tuning) and the error is logged.
        """
        if not candidates:
            return []

        results: list[CanonicalSong | None] = [None] * len(candidates)
        workers = min(self._max_workers, len(candidates))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            future_to_index = {
                pool.submit(self.enrich, candidate): i
                for i, candidate in enumerate(candidates)
            }
            for future in as_completed(future_to_index):
                i = future_to_index[future]
                try:
                    results[i] = future.result()
                except Exception as e:
                    candidate = candidates[i]
                    logger.error(
                        "Enrichment failed for %s - %s: %s",
                        candidate.artist, candidate.title, e,
                    )
                    results[i] = self.bare_song(candidate)

        logger.debug("Enriched %d candidates", len(results))
        return [song for song in results if song is not None]
