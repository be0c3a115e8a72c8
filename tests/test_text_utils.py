"""Tests for string normalization and formatting helpers."""

from __future__ import annotations

import pytest

from songscout.utils.text import (
    clean_value,
    format_duration,
    normalize_key,
    round_half_up,
    sanitize_query,
    song_key,
)


class TestNormalizeKey:
    def test_case_and_punctuation_insensitive(self):
        assert normalize_key("Sweet Child O' Mine!!") == normalize_key("sweet child o mine")

    def test_collapses_whitespace(self):
        assert normalize_key("  Hotel    California \t") == "hotel california"

    def test_none_and_empty(self):
        assert normalize_key(None) == ""
        assert normalize_key("") == ""

    def test_song_key_pairs_title_and_artist(self):
        assert song_key("Help!", "The Beatles") == ("help", "the beatles")


class TestSanitizeQuery:
    def test_keeps_quotes_hyphens_apostrophes(self):
        assert sanitize_query("don't  stop-believin'") == "don't stop-believin'"

    def test_other_punctuation_becomes_space(self):
        assert sanitize_query("ac/dc: back in black") == "ac dc back in black"

    def test_blank(self):
        assert sanitize_query("   ") == ""
        assert sanitize_query(None) == ""


class TestCleanValue:
    def test_trims_and_collapses(self):
        assert clean_value("  Pearl   Jam ") == "Pearl Jam"

    def test_empty_becomes_none(self):
        assert clean_value("   ") is None
        assert clean_value(None) is None


class TestDurations:
    @pytest.mark.parametrize(
        "value, expected",
        [(2.5, 3), (2.4, 2), (0.5, 1), (354.5, 355)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_format_duration(self):
        assert format_duration(354) == "5:54"
        assert format_duration(61) == "1:01"

    def test_format_unknown_duration(self):
        assert format_duration(None) == "--:--"
