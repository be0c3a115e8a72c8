"""Tests for FuzzyMatcher -- similarity scoring and artist matching."""

from __future__ import annotations

import pytest

from songscout.core.fuzzy_matcher import FuzzyMatcher


@pytest.fixture
def matcher() -> FuzzyMatcher:
    return FuzzyMatcher(threshold=85)


# ------------------------------------------------------------------
# similarity tests
# ------------------------------------------------------------------


class TestSimilarity:
    def test_identical_strings(self, matcher: FuzzyMatcher):
        assert matcher.similarity("Hotel California", "Hotel California") == 100.0

    def test_case_and_punctuation_insensitive(self, matcher: FuzzyMatcher):
        assert matcher.similarity("Guns N' Roses", "guns n roses") == 100.0

    def test_empty_strings(self, matcher: FuzzyMatcher):
        assert matcher.similarity("", "hello") == 0.0
        assert matcher.similarity(None, "hello") == 0.0

    def test_different_strings_score_low(self, matcher: FuzzyMatcher):
        assert matcher.similarity("Metallica", "Britney Spears") < 50.0

    def test_is_match_uses_threshold(self):
        strict = FuzzyMatcher(threshold=99)
        loose = FuzzyMatcher(threshold=50)
        assert not strict.is_match("Beatles", "The Beatles Band")
        assert loose.is_match("Beatles", "The Beatles Band")


# ------------------------------------------------------------------
# artist matching
# ------------------------------------------------------------------


class TestArtistMatches:
    def test_exact(self, matcher: FuzzyMatcher):
        assert matcher.artist_matches("Eagles", "Eagles")

    def test_containment_either_way(self, matcher: FuzzyMatcher):
        assert matcher.artist_matches("Eagles", "The Eagles")
        assert matcher.artist_matches("Queen & David Bowie", "Queen")

    def test_reordered_tokens(self, matcher: FuzzyMatcher):
        assert matcher.artist_matches("Beatles The", "The Beatles")

    def test_unrelated(self, matcher: FuzzyMatcher):
        assert not matcher.artist_matches("Eagles", "Hotel California Tribute Band")
        assert not matcher.artist_matches("Linkin Park", "Britney Spears")

    def test_missing_artist(self, matcher: FuzzyMatcher):
        assert not matcher.artist_matches("Eagles", None)
        assert not matcher.artist_matches("", "Eagles")


class TestBestMatch:
    def test_returns_original_choice_and_index(self, matcher: FuzzyMatcher):
        choices = ["Britney Spears", "Linkin Park", "Metallica"]
        result = matcher.best_match("linkin park", choices)
        assert result == [("Linkin Park", 100.0, 1)]

    def test_below_threshold_dropped(self, matcher: FuzzyMatcher):
        assert matcher.best_match("Nirvana", ["Britney Spears"]) == []

    def test_empty_inputs(self, matcher: FuzzyMatcher):
        assert matcher.best_match("", ["x"]) == []
        assert matcher.best_match("x", []) == []
