"""Relevance ranking for catalog search candidates.

String similarity alone over-favors obscure covers and tributes, so the
score blends title-match quality with priors that need no live popularity
feed: historical chart performance, curated artist sets, and the order in
which the catalog itself returned the tracks.

Signals, strongest first:
- Chart authority (title has a chart run by a matching artist)
- Legendary artist, stacked again when the title match is strong
- Title-match quality (exact > all words > substring > prefix > word ratios)
- Popular artist
- Discovery order in the raw search stream
- Commercial micro-signals (purchasable, on an album, deep-cut penalty)

Ranking is pure: the same query, candidates and reference data always
produce the same order.
"""

from __future__ import annotations

from songscout.core.fuzzy_matcher import FuzzyMatcher
from songscout.core.reference_data import ChartEntry, ReferenceData, default_reference_data
from songscout.models.candidate import Candidate, ScoredCandidate
from songscout.utils.constants import (
    ARTIST_ONLY_CONTAINS_BONUS,
    ARTIST_ONLY_EXACT_BONUS,
    CHART_BONUS_MAX,
    CHART_BONUS_MIN,
    CHART_POSITION_FLOOR,
    CLASSIC_ERA_BONUS,
    CLASSIC_ERA_TITLE_MARKERS,
    CLASSIC_ERA_YEARS,
    COLLECTION_BONUS,
    DEEP_CUT_PENALTY,
    DEEP_CUT_TRACK_NUMBER,
    DISCOVERY_TIERS,
    FULL_LENGTH_BONUS,
    FULL_LENGTH_MIN_MS,
    LEGENDARY_ARTIST_BONUS,
    LEGENDARY_STACK_MIN_TITLE_SCORE,
    LEGENDARY_TITLE_STACK_BONUS,
    LIKELY_ORIGINAL_BONUS,
    MAX_RANKED_RESULTS,
    NON_ORIGINAL_ARTIST_MARKERS,
    NON_ORIGINAL_TITLE_MARKERS,
    POPULAR_ARTIST_BONUS,
    PURCHASABLE_BONUS,
    RECENT_RELEASE_BASE_YEAR,
    RECENT_RELEASE_MAX_BONUS,
    STUDIO_VERSION_BONUS,
    TITLE_ALL_WORDS_BONUS,
    TITLE_EXACT_BONUS,
    TITLE_EXACT_WORD_WEIGHT,
    TITLE_PARTIAL_WORD_WEIGHT,
    TITLE_PREFIX_MIN_QUERY_LENGTH,
    TITLE_PREFIX_TIERS,
    TITLE_SUBSTRING_MIN_QUERY_LENGTH,
    TITLE_SUBSTRING_TIERS,
)
from songscout.models.song import is_live_title
from songscout.utils.logger import get_logger
from songscout.utils.text import normalize_key

logger = get_logger("core.ranking")


def chart_bonus(peak_position: int) -> int:
    """Linear bonus from CHART_BONUS_MAX at #1 down to CHART_BONUS_MIN at #100.

    Entries that never charted (position 0) or charted below the floor get
    the minimum.
    """
    if peak_position < 1 or peak_position >= CHART_POSITION_FLOOR:
        return CHART_BONUS_MIN
    span = CHART_BONUS_MAX - CHART_BONUS_MIN
    return CHART_BONUS_MAX - (span * (peak_position - 1)) // (CHART_POSITION_FLOOR - 1)


def is_non_original(artist_key: str, title_key: str) -> bool:
    """Tribute, cover and karaoke releases, judged from normalized credit and title."""
    return any(m in artist_key for m in NON_ORIGINAL_ARTIST_MARKERS) or any(
        m in title_key for m in NON_ORIGINAL_TITLE_MARKERS
    )


def _tier(ratio: float, tiers: tuple[tuple[float, int], ...]) -> int:
    for min_ratio, points in tiers:
        if ratio > min_ratio:
            return points
    return tiers[-1][1]


def title_match_score(query_key: str, title_key: str) -> int:
    """Score how well a normalized title matches a normalized query.

    Tiers are mutually exclusive; the most specific one that applies wins.
    """
    if not query_key or not title_key:
        return 0
    if title_key == query_key:
        return TITLE_EXACT_BONUS

    query_words = query_key.split()
    title_words = title_key.split()

    exact_words = 0
    partial_words = 0
    for word in query_words:
        if word in title_words:
            exact_words += 1
        elif any(word in title_word for title_word in title_words):
            partial_words += 1

    if exact_words == len(query_words):
        return TITLE_ALL_WORDS_BONUS

    if query_key in title_key and len(query_key) >= TITLE_SUBSTRING_MIN_QUERY_LENGTH:
        return _tier(len(query_key) / len(title_key), TITLE_SUBSTRING_TIERS)

    # Longer prefixes are substrings and score above; this tier catches 3-letter queries
    if title_key.startswith(query_key) and len(query_key) >= TITLE_PREFIX_MIN_QUERY_LENGTH:
        return _tier(len(query_key) / len(title_key), TITLE_PREFIX_TIERS)

    if exact_words:
        return int(TITLE_EXACT_WORD_WEIGHT * exact_words / len(query_words))
    if partial_words:
        return int(TITLE_PARTIAL_WORD_WEIGHT * partial_words / len(query_words))
    return 0


def discovery_bonus(discovery_index: int) -> int:
    """Bonus for appearing early in the raw catalog stream (0-based index)."""
    for below, points in DISCOVERY_TIERS:
        if discovery_index < below:
            return points
    return 0


class RelevanceRanker:
    """Scores and orders catalog candidates for a free-text query."""

    def __init__(
        self,
        reference: ReferenceData | None = None,
        matcher: FuzzyMatcher | None = None,
        max_results: int = MAX_RANKED_RESULTS,
    ) -> None:
        """Initialize the ranker.

        Args:
            reference: Chart and artist tables (defaults to the bundled data).
            matcher: Fuzzy matcher used for chart artist comparison.
            max_results: How many ranked candidates to keep.
        """
        self._ref = reference or default_reference_data()
        self._fuzzy = matcher or FuzzyMatcher()
        self._max_results = max_results

    # --- Individual signals ---

    def _chart_entries_for(self, query_key: str, title_key: str) -> tuple[ChartEntry, ...]:
        entries = self._ref.chart_entries(title_key)
        if entries:
            return entries
        # "Hotel California (Live)" still counts for the query "hotel california"
        if query_key and query_key in title_key:
            return self._ref.chart_entries(query_key)
        return ()

    def chart_score(self, query_key: str, candidate: Candidate) -> int:
        title_key = normalize_key(candidate.title)
        # A tribute credit like "Eagles Tribute Band" contains the charting artist
        if is_non_original(normalize_key(candidate.artist), title_key):
            return 0
        entries = self._chart_entries_for(query_key, title_key)
        for entry in entries:
            if self._fuzzy.artist_matches(entry.artist, candidate.artist):
                return chart_bonus(entry.peak_position)
        return 0

    def is_popular(self, artist_key: str) -> bool:
        if artist_key in self._ref.popular_artists:
            return True
        # "John Lennon & Yoko Ono" still counts as John Lennon
        return any(name and name in artist_key for name in self._ref.popular_artists)

    def is_legendary(self, artist_key: str) -> bool:
        return artist_key in self._ref.legendary_artists

    # --- Scoring ---

    def score(self, query: str, candidate: Candidate) -> int:
        """Compute the relevance score of one candidate for a query."""
        query_key = normalize_key(query)
        title_key = normalize_key(candidate.title)
        artist_key = normalize_key(candidate.artist)

        score = self.chart_score(query_key, candidate)
        score += discovery_bonus(candidate.discovery_index)

        title_score = title_match_score(query_key, title_key)
        score += title_score

        if candidate.track_price and candidate.track_price > 0:
            score += PURCHASABLE_BONUS
        if candidate.collection_name and candidate.collection_name.strip():
            score += COLLECTION_BONUS
        if candidate.track_number and candidate.track_number > DEEP_CUT_TRACK_NUMBER:
            score -= DEEP_CUT_PENALTY

        if self.is_popular(artist_key):
            score += POPULAR_ARTIST_BONUS
        if self.is_legendary(artist_key):
            score += LEGENDARY_ARTIST_BONUS
            if title_score >= LEGENDARY_STACK_MIN_TITLE_SCORE:
                score += LEGENDARY_TITLE_STACK_BONUS

        if score == 0 and query_key:
            if artist_key == query_key:
                score += ARTIST_ONLY_EXACT_BONUS
            elif query_key in artist_key:
                score += ARTIST_ONLY_CONTAINS_BONUS

        if score > 0:
            score += self._tiebreakers(candidate, title_key, artist_key)

        return score

    def _tiebreakers(self, candidate: Candidate, title_key: str, artist_key: str) -> int:
        bonus = 0
        if not is_live_title(title_key):
            bonus += STUDIO_VERSION_BONUS
        if not is_non_original(artist_key, title_key):
            bonus += LIKELY_ORIGINAL_BONUS
        if candidate.duration_ms and candidate.duration_ms > FULL_LENGTH_MIN_MS:
            bonus += FULL_LENGTH_BONUS

        year = candidate.release_year
        if year is not None:
            era_start, era_end = CLASSIC_ERA_YEARS
            if any(m in title_key for m in CLASSIC_ERA_TITLE_MARKERS) and era_start <= year <= era_end:
                bonus += CLASSIC_ERA_BONUS
            elif year > RECENT_RELEASE_BASE_YEAR:
                bonus += min(year - RECENT_RELEASE_BASE_YEAR, RECENT_RELEASE_MAX_BONUS)
        return bonus

    def rank(self, query: str, candidates: list[Candidate]) -> list[ScoredCandidate]:
        """Score, filter and order candidates.

        Args:
            query: The original search query.
            candidates: Deduplicated catalog candidates.

        Returns:
            Up to ``max_results`` scored candidates with score > 0, highest
            score first, ties broken by discovery order.
        """
        scored = [ScoredCandidate(c, self.score(query, c)) for c in candidates]
        kept = sorted((s for s in scored if s.score > 0), key=lambda s: s.sort_key)

        if kept:
            top = kept[0]
            logger.debug(
                "Ranked %d/%d candidates for '%s'; top: %s - %s (%d)",
                len(kept), len(candidates), query,
                top.candidate.artist, top.candidate.title, top.score,
            )
        return kept[: self._max_results]
