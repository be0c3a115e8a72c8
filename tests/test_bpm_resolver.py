"""Tests for BPM resolution through Spotify and the static tempo table."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from songscout.core.bpm_resolver import BpmResolver, SpotifyClient
from songscout.core.spotify_auth import SpotifyTokenCache
from songscout.utils.errors import UpstreamUnavailable

from conftest import make_response


@pytest.fixture
def tokens() -> MagicMock:
    cache = MagicMock(spec=SpotifyTokenCache)
    cache.configured = True
    cache.get_token.return_value = "tok"
    return cache


@pytest.fixture
def spotify(tokens, session) -> SpotifyClient:
    return SpotifyClient(tokens, session=session, sleep=lambda _s: None)


def _search_hit(track_id: str = "abc"):
    return make_response({"tracks": {"items": [{"id": track_id}]}})


class TestFallbackTable:
    def test_bohemian_rhapsody_without_credentials(self, reference):
        tokens = SpotifyTokenCache(None, None)
        resolver = BpmResolver(spotify=SpotifyClient(tokens), reference=reference)
        assert resolver.resolve_with_source("Queen", "Bohemian Rhapsody") == (72, "fallback")

    def test_no_spotify_client_at_all(self, reference):
        assert BpmResolver(reference=reference).resolve("Queen", "Bohemian Rhapsody") == 72

    def test_unknown_song_is_none_not_zero(self, reference):
        resolver = BpmResolver(reference=reference)
        assert resolver.resolve_with_source("Nobody", "Unlisted Song") == (None, None)


class TestSpotify:
    def test_tempo_rounded(self, spotify, session, reference):
        session.get.side_effect = [_search_hit(), make_response({"tempo": 143.5})]
        resolver = BpmResolver(spotify=spotify, reference=reference)
        assert resolver.resolve_with_source("Foo Fighters", "Everlong") == (144, "spotify")

    def test_search_query_is_exact_artist_and_track(self, spotify, session):
        session.get.return_value = make_response({"tracks": {"items": []}})
        assert spotify.find_track_id("Queen", "Bohemian Rhapsody") is None
        params = session.get.call_args.kwargs["params"]
        assert params == {"q": 'artist:"Queen" track:"Bohemian Rhapsody"', "type": "track", "limit": 1}

    def test_zero_tempo_falls_back(self, spotify, session, reference):
        session.get.side_effect = [_search_hit(), make_response({"tempo": 0})]
        resolver = BpmResolver(spotify=spotify, reference=reference)
        assert resolver.resolve_with_source("Queen", "Bohemian Rhapsody") == (72, "fallback")

    def test_missing_audio_features(self, spotify, session):
        session.get.side_effect = [_search_hit(), make_response(status_code=404)]
        assert spotify.tempo("abc") is None

    def test_upstream_failure_falls_back(self, spotify, session, reference):
        session.get.side_effect = requests.Timeout("slow")
        resolver = BpmResolver(spotify=spotify, reference=reference)
        assert resolver.resolve("Queen", "Bohemian Rhapsody") == 72
        assert resolver.resolve("Nobody", "Unlisted Song") is None


class TestRetries:
    def test_retries_once_after_401(self, spotify, session, tokens):
        session.get.side_effect = [make_response(status_code=401), _search_hit("fresh")]
        assert spotify.find_track_id("Queen", "Bohemian Rhapsody") == "fresh"
        tokens.invalidate.assert_called_once()
        assert session.get.call_count == 2

    def test_retries_once_after_429(self, tokens, session):
        slept = []
        client = SpotifyClient(tokens, session=session, sleep=slept.append)
        session.get.side_effect = [
            make_response(status_code=429, headers={"Retry-After": "2"}),
            _search_hit("later"),
        ]
        assert client.find_track_id("Queen", "Bohemian Rhapsody") == "later"
        assert slept == [2.0]

    def test_retry_after_is_capped(self, tokens, session):
        slept = []
        client = SpotifyClient(tokens, session=session, sleep=slept.append)
        session.get.side_effect = [
            make_response(status_code=429, headers={"Retry-After": "3600"}),
            _search_hit(),
        ]
        client.find_track_id("Queen", "Bohemian Rhapsody")
        assert slept == [5.0]

    def test_second_429_gives_up(self, spotify, session):
        session.get.side_effect = [make_response(status_code=429), make_response(status_code=429)]
        with pytest.raises(UpstreamUnavailable):
            spotify.find_track_id("Queen", "Bohemian Rhapsody")


class TestUnexpectedPayloads:
    @pytest.mark.parametrize("payload", [
        {"tracks": []},
        {"tracks": {"items": {"id": "abc"}}},
        {"tracks": {"items": ["abc"]}},
        {"tracks": {"items": [{"id": 42}]}},
        {"tracks": None},
    ])
    def test_odd_search_shapes_mean_no_track(self, spotify, session, payload):
        session.get.return_value = make_response(payload)
        assert spotify.find_track_id("Queen", "Bohemian Rhapsody") is None

    def test_odd_search_shape_falls_back_to_table(self, spotify, session, reference):
        session.get.return_value = make_response({"tracks": ["not", "a", "dict"]})
        resolver = BpmResolver(spotify=spotify, reference=reference)
        assert resolver.resolve_with_source("Queen", "Bohemian Rhapsody") == (72, "fallback")

    @pytest.mark.parametrize("tempo", ["fast", None, True, [120]])
    def test_non_numeric_tempo(self, spotify, session, tempo):
        session.get.return_value = make_response({"tempo": tempo})
        assert spotify.tempo("abc") is None

    def test_non_object_body_is_upstream_failure(self, spotify, session):
        session.get.return_value = make_response(["tracks"])
        with pytest.raises(UpstreamUnavailable):
            spotify.find_track_id("Queen", "Bohemian Rhapsody")
