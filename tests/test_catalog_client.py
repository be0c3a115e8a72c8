"""Tests for CatalogSearchClient -- strategies, dedup and failure handling."""

from __future__ import annotations

import pytest
import requests

from songscout.core.catalog_client import CatalogSearchClient, parse_track
from songscout.utils.errors import UpstreamUnavailable

from conftest import itunes_track, make_response


@pytest.fixture
def client(session, limiter) -> CatalogSearchClient:
    return CatalogSearchClient(session=session, min_interval=0, limiter=limiter)


def _responses_by_strategy(term_results, phrase_results):
    """side_effect that answers by strategy, whatever order threads call in."""

    def fake_get(url, params=None, timeout=None):
        results = phrase_results if params["term"].startswith('"') else term_results
        if isinstance(results, Exception):
            raise results
        return make_response({"resultCount": len(results), "results": results})

    return fake_get


class TestParseTrack:
    def test_song_fields(self):
        raw = itunes_track(
            "Everlong", "Foo Fighters", track_id=42, millis=250_500,
            trackPrice=1.29, collectionName="The Colour and the Shape",
            trackNumber=11, releaseDate="1997-05-20T07:00:00Z",
            artworkUrl100="https://example.test/art.jpg", primaryGenreName="Rock",
        )
        candidate = parse_track(raw, discovery_index=3)
        assert candidate.title == "Everlong"
        assert candidate.external_id == "42"
        assert candidate.duration_seconds == 251
        assert candidate.discovery_index == 3
        assert candidate.track_number == 11
        assert candidate.release_year == 1997
        assert candidate.artwork_url == "https://example.test/art.jpg"

    def test_non_song_skipped(self):
        assert parse_track({"kind": "music-video", "trackName": "x", "artistName": "y"}) is None

    def test_missing_artist_skipped(self):
        assert parse_track(itunes_track("Song", "")) is None

    def test_non_string_names_skipped(self):
        assert parse_track(itunes_track(1999, "Prince")) is None
        assert parse_track(itunes_track("1999", {"name": "Prince"})) is None

    def test_non_string_optional_fields_dropped(self):
        candidate = parse_track(itunes_track("1999", "Prince", artworkUrl100=123, collectionName=["1999"]))
        assert candidate.artwork_url is None
        assert candidate.collection_name is None


class TestSearch:
    def test_dedup_keeps_first_discovered(self, client, session):
        session.get.side_effect = _responses_by_strategy(
            [
                itunes_track("Hotel California", "Eagles", track_id=1),
                itunes_track("Hotel California (Live)", "Eagles", track_id=2),
            ],
            [
                itunes_track("HOTEL CALIFORNIA!", "The Eagles", track_id=3),
                itunes_track("hotel california", "eagles", track_id=4),
            ],
        )
        results = client.search("hotel california")

        assert [c.external_id for c in results] == ["1", "2", "3"]
        assert len({c.key for c in results}) == len(results)

    def test_discovery_index_is_position_in_stream(self, client, session):
        session.get.side_effect = _responses_by_strategy(
            [itunes_track("A", "X", 1), itunes_track("B", "X", 2)],
            [itunes_track("A", "X", 3), itunes_track("C", "X", 4)],
        )
        results = client.search("x")
        assert [(c.title, c.discovery_index) for c in results] == [("A", 0), ("B", 1), ("C", 2)]

    def test_non_songs_are_dropped(self, client, session):
        session.get.side_effect = _responses_by_strategy(
            [{"kind": "podcast", "trackName": "Talk", "artistName": "Host"}, itunes_track("Song", "Band")],
            [],
        )
        assert [c.title for c in client.search("song")] == ["Song"]

    def test_one_strategy_failing_is_tolerated(self, client, session):
        session.get.side_effect = _responses_by_strategy(
            requests.Timeout("slow"),
            [itunes_track("Blackout", "Linkin Park")],
        )
        results = client.search("blackout")
        assert [c.artist for c in results] == ["Linkin Park"]

    def test_every_strategy_failing_returns_empty(self, client, session):
        session.get.side_effect = requests.ConnectionError("offline")
        assert client.search("anything") == []

    def test_bad_json_returns_empty(self, client, session):
        response = make_response()
        response.json.side_effect = ValueError("not json")
        session.get.return_value = response
        assert client.search("anything") == []

    def test_blank_query_makes_no_request(self, client, session):
        assert client.search("  !!  ") == []
        session.get.assert_not_called()

    def test_strategies_use_term_then_phrase(self, client, session):
        session.get.side_effect = _responses_by_strategy([], [])
        client.search("black hole sun")
        terms = sorted(call.kwargs["params"]["term"] for call in session.get.call_args_list)
        assert terms == ['"black hole sun"', "black hole sun"]


class TestLookup:
    def test_only_results_with_duration(self, client, session):
        session.get.return_value = make_response({
            "results": [
                itunes_track("Everlong", "Foo Fighters", 1, millis=None),
                itunes_track("Everlong", "Foo Fighters", 2, millis=250_000),
            ]
        })
        results = client.lookup("Foo Fighters", "Everlong")
        assert [c.external_id for c in results] == ["2"]
        params = session.get.call_args.kwargs["params"]
        assert params["term"] == "Foo Fighters Everlong"

    def test_failure_raises(self, client, session):
        session.get.return_value = make_response(status_code=503)
        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.lookup("Foo Fighters", "Everlong")
        assert exc_info.value.service == "itunes"
