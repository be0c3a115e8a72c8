"""BPM resolution -- Spotify audio features first, static tempo table second."""

from __future__ import annotations

import time
from typing import Callable

import requests

from songscout.core.reference_data import ReferenceData, default_reference_data
from songscout.core.spotify_auth import SpotifyTokenCache
from songscout.utils.constants import (
    SPOTIFY_AUDIO_FEATURES_URL,
    SPOTIFY_MAX_RETRY_AFTER_SECONDS,
    SPOTIFY_SEARCH_URL,
    SPOTIFY_TIMEOUT_SECONDS,
    USER_AGENT,
)
from songscout.utils.errors import UpstreamUnavailable
from songscout.utils.logger import get_logger
from songscout.utils.text import round_half_up

logger = get_logger("core.bpm_resolver")

BPM_SOURCE_SPOTIFY = "spotify"
BPM_SOURCE_FALLBACK = "fallback"


class SpotifyClient:
    """Minimal Spotify Web API client for track search and audio features."""

    def __init__(
        self,
        tokens: SpotifyTokenCache,
        session: requests.Session | None = None,
        timeout: float = SPOTIFY_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._tokens = tokens
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        self._timeout = timeout
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self._tokens.configured

    def _get(self, url: str, params: dict | None = None) -> requests.Response:
        token = self._tokens.get_token()
        if token is None:
            raise UpstreamUnavailable("spotify", "credentials not configured")

        def _send(bearer: str) -> requests.Response:
            return self._session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {bearer}"},
                timeout=self._timeout,
            )

        try:
            response = _send(token)
            if response.status_code == 401:
                # Token revoked or expired early; fetch a new one once
                self._tokens.invalidate()
                token = self._tokens.get_token() or ""
                response = _send(token)
            if response.status_code == 429:
                retry_after = self._retry_after(response)
                logger.info("Spotify rate limited, retrying after %.1fs", retry_after)
                self._sleep(retry_after)
                response = _send(token)
        except requests.RequestException as e:
            raise UpstreamUnavailable("spotify", str(e)) from e
        return response

    @staticmethod
    def _retry_after(response: requests.Response) -> float:
        try:
            seconds = float(response.headers.get("Retry-After", "1"))
        except ValueError:
            seconds = 1.0
        return max(0.0, min(seconds, SPOTIFY_MAX_RETRY_AFTER_SECONDS))

    @staticmethod
    def _json(response: requests.Response) -> dict:
        try:
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable("spotify", str(e)) from e
        except ValueError as e:
            raise UpstreamUnavailable("spotify", f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamUnavailable("spotify", "unexpected response shape")
        return data

    def find_track_id(self, artist: str, title: str) -> str | None:
        """Return the id of the top exact artist+title search hit, if any."""
        params = {"q": f'artist:"{artist}" track:"{title}"', "type": "track", "limit": 1}
        data = self._json(self._get(SPOTIFY_SEARCH_URL, params))
        tracks = data.get("tracks")
        items = tracks.get("items") if isinstance(tracks, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        track_id = items[0].get("id")
        return track_id if isinstance(track_id, str) and track_id else None

    def tempo(self, track_id: str) -> float | None:
        """Return the raw tempo audio feature for a track, if available."""
        response = self._get(SPOTIFY_AUDIO_FEATURES_URL.format(track_id=track_id))
        if response.status_code == 404:
            return None
        tempo = self._json(response).get("tempo")
        if isinstance(tempo, bool) or not isinstance(tempo, (int, float)):
            return None
        return float(tempo) if tempo > 0 else None


class BpmResolver:
    """Resolves a song's tempo through layered sources.

    1. Spotify: exact artist+title search, then the track's tempo feature.
    2. The static normalized-title tempo table.

    Every failure degrades to the next tier; nothing here raises or writes.
    """

    def __init__(
        self,
        spotify: SpotifyClient | None = None,
        reference: ReferenceData | None = None,
    ) -> None:
        self._spotify = spotify
        self._ref = reference or default_reference_data()

    def _from_spotify(self, artist: str, title: str) -> int | None:
        if self._spotify is None or not self._spotify.configured:
            return None
        try:
            track_id = self._spotify.find_track_id(artist, title)
            if not track_id:
                logger.debug("Spotify: no track for %s - %s", artist, title)
                return None
            tempo = self._spotify.tempo(track_id)
        except UpstreamUnavailable as e:
            logger.warning("Spotify BPM lookup failed for %s - %s: %s", artist, title, e.detail)
            return None
        if tempo is None:
            return None
        bpm = round_half_up(tempo)
        return bpm if bpm > 0 else None

    def resolve_with_source(self, artist: str, title: str) -> tuple[int | None, str | None]:
        """Resolve BPM and report where it came from.

        Returns:
            (bpm, source) where source is 'spotify' or 'fallback', or
            (None, None) when no tier knows the song.
        """
        bpm = self._from_spotify(artist, title)
        if bpm is not None:
            return bpm, BPM_SOURCE_SPOTIFY

        bpm = self._ref.fallback_bpm(title)
        if bpm:
            logger.debug("BPM fallback table hit for '%s': %d", title, bpm)
            return bpm, BPM_SOURCE_FALLBACK
        return None, None

    def resolve(self, artist: str, title: str) -> int | None:
        """Resolve BPM for a song, or None if unknown (never 0)."""
        return self.resolve_with_source(artist, title)[0]
