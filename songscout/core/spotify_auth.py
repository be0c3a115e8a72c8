"""Spotify client-credentials token cache shared by every BPM lookup."""

from __future__ import annotations

import base64
import threading
import time
from typing import Callable

import requests

from songscout.utils.constants import (
    SPOTIFY_TIMEOUT_SECONDS,
    SPOTIFY_TOKEN_REFRESH_MARGIN_SECONDS,
    SPOTIFY_TOKEN_URL,
)
from songscout.utils.errors import UpstreamUnavailable
from songscout.utils.logger import get_logger

logger = get_logger("core.spotify_auth")


class SpotifyTokenCache:
    """Owns one client-credentials access token and refreshes it before expiry.

    A single refresh is in flight at a time: concurrent callers that find the
    token stale wait on the lock and then reuse whatever the first caller
    fetched.

    Usage:
        cache = SpotifyTokenCache(client_id, client_secret)
        token = cache.get_token()
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
        timeout: float = SPOTIFY_TIMEOUT_SECONDS,
        refresh_margin: float = SPOTIFY_TOKEN_REFRESH_MARGIN_SECONDS,
    ) -> None:
        """Initialize the cache.

        Args:
            client_id: Spotify application client id.
            client_secret: Spotify application client secret.
            session: HTTP session used for the token request.
            clock: Monotonic time source in seconds (injectable for tests).
            timeout: Seconds for the token request.
            refresh_margin: Treat the token as expired this many seconds early.
        """
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._session = session or requests.Session()
        self._clock = clock
        self._timeout = timeout
        self._margin = refresh_margin

        self._token: str | None = None
        self._expires_at: float = 0.0
        self._lock = threading.Lock()
        self.refresh_count = 0

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def _is_fresh(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at - self._margin

    def get_token(self) -> str | None:
        """Return a valid access token, refreshing if needed.

        Returns:
            The bearer token, or None when no credentials are configured.

        Raises:
            UpstreamUnavailable: If the token endpoint fails.
        """
        if not self.configured:
            return None
        if self._is_fresh():
            return self._token

        with self._lock:
            # Another thread may have refreshed while we waited
            if self._is_fresh():
                return self._token
            self._refresh()
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token (e.g. after a 401)."""
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    def _refresh(self) -> None:
        credentials = f"{self._client_id}:{self._client_secret}".encode("utf-8")
        auth_header = base64.b64encode(credentials).decode("ascii")
        try:
            response = self._session.post(
                SPOTIFY_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers={"Authorization": f"Basic {auth_header}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable("spotify", f"token request failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable("spotify", f"invalid token response: {e}") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UpstreamUnavailable("spotify", "token response missing access_token")

        try:
            expires_in = float(payload.get("expires_in") or 0)
        except (TypeError, ValueError) as e:
            raise UpstreamUnavailable("spotify", f"invalid expires_in: {e}") from e
        self._token = token
        self._expires_at = self._clock() + expires_in
        self.refresh_count += 1
        logger.debug("Spotify token refreshed (expires in %.0fs)", expires_in)
