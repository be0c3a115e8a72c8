"""Fuzzy matching for artist names and titles across catalog sources."""

from __future__ import annotations

from rapidfuzz import fuzz, process

from songscout.utils.constants import FUZZY_MATCH_THRESHOLD
from songscout.utils.logger import get_logger
from songscout.utils.text import normalize_key

logger = get_logger("core.fuzzy_matcher")


class FuzzyMatcher:
    """Provides fuzzy string matching for comparing artist names and titles
    between the catalog, the chart table and the tuning database.
    """

    def __init__(self, threshold: int = FUZZY_MATCH_THRESHOLD) -> None:
        """Initialize the fuzzy matcher.

        Args:
            threshold: Minimum score (0-100) for a match to be considered valid.
        """
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    def similarity(self, str_a: str | None, str_b: str | None) -> float:
        """Calculate the similarity between two strings (0.0 - 100.0).

        Uses a weighted combination of ratio, partial_ratio, and
        token_sort_ratio over the normalized forms.

        Args:
            str_a: First string.
            str_b: Second string.

        Returns:
            Similarity score from 0.0 to 100.0.
        """
        a = normalize_key(str_a)
        b = normalize_key(str_b)
        if not a or not b:
            return 0.0
        if a == b:
            return 100.0

        ratio = fuzz.ratio(a, b)
        partial = fuzz.partial_ratio(a, b)
        token_sort = fuzz.token_sort_ratio(a, b)

        # token_sort handles "Beatles, The" style reorderings
        return (ratio * 0.4) + (partial * 0.3) + (token_sort * 0.3)

    def is_match(self, str_a: str | None, str_b: str | None) -> bool:
        """Check if two strings are a fuzzy match above the threshold."""
        return self.similarity(str_a, str_b) >= self._threshold

    def artist_matches(self, expected: str | None, actual: str | None) -> bool:
        """Check whether a catalog artist credit refers to the expected artist.

        Matches on normalized equality, containment in either direction
        ("Eagles" vs "The Eagles", "Queen & David Bowie"), or a token-sort
        score at or above the threshold.
        """
        a = normalize_key(expected)
        b = normalize_key(actual)
        if not a or not b:
            return False
        if a == b or a in b or b in a:
            return True
        return fuzz.token_sort_ratio(a, b) >= self._threshold

    def best_match(
        self,
        query: str,
        choices: list[str],
        limit: int = 1,
    ) -> list[tuple[str, float, int]]:
        """Find the best fuzzy matches for a query from a list of choices.

        Args:
            query: The string to match.
            choices: List of candidate strings.
            limit: Maximum number of results to return.

        Returns:
            List of (matched_string, score, index) tuples, sorted by score
            descending, keeping only those at or above the threshold.
        """
        if not query or not choices:
            return []

        results = process.extract(
            normalize_key(query),
            [normalize_key(c) for c in choices],
            scorer=fuzz.token_sort_ratio,
            limit=limit,
        )

        matched = []
        for _match_str, score, idx in results:
            if score >= self._threshold:
                matched.append((choices[idx], score, idx))
        return matched
