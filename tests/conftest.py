"""Shared fixtures: in-memory catalog, reference data and fake HTTP responses."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from songscout.core.reference_data import default_reference_data
from songscout.db.database import Database
from songscout.models.candidate import Candidate
from songscout.utils.rate_limiter import RateLimiter


def make_response(payload=None, status_code: int = 200, headers: dict | None = None) -> MagicMock:
    """Build a fake ``requests.Response`` returning *payload* from ``.json()``."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    else:
        response.raise_for_status.return_value = None
    return response


def itunes_track(
    title: str,
    artist: str,
    track_id: int = 1,
    millis: int | None = 240_000,
    **extra,
) -> dict:
    """A raw iTunes search result for a song."""
    raw = {
        "kind": "song",
        "trackId": track_id,
        "trackName": title,
        "artistName": artist,
        "trackTimeMillis": millis,
    }
    raw.update(extra)
    return raw


def make_candidate(title: str, artist: str, index: int = 0, **kwargs) -> Candidate:
    return Candidate(title=title, artist=artist, external_id=str(index + 1), discovery_index=index, **kwargs)


@pytest.fixture
def db():
    database = Database(":memory:")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def reference():
    return default_reference_data()


@pytest.fixture
def limiter() -> RateLimiter:
    """A private limiter that never sleeps."""
    return RateLimiter(sleep=lambda _seconds: None)


@pytest.fixture
def session() -> MagicMock:
    fake = MagicMock(spec=requests.Session)
    fake.headers = {}
    return fake
