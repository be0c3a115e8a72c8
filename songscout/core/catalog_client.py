"""Catalog search client -- multi-strategy song search against the iTunes Search API."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import requests

from songscout.models.candidate import Candidate
from songscout.utils.constants import (
    CATALOG_LOOKUP_LIMIT,
    CATALOG_LOOKUP_TIMEOUT_SECONDS,
    CATALOG_PHRASE_LIMIT,
    CATALOG_RATE_LIMIT,
    CATALOG_TERM_LIMIT,
    CATALOG_TIMEOUT_SECONDS,
    ITUNES_SEARCH_URL,
    USER_AGENT,
)
from songscout.utils.errors import UpstreamUnavailable
from songscout.utils.logger import get_logger
from songscout.utils.rate_limiter import RateLimiter, rate_limiter
from songscout.utils.text import sanitize_query

logger = get_logger("core.catalog_client")

_SERVICE = "itunes"


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_track(raw: dict, discovery_index: int = 0) -> Candidate | None:
    """Convert one iTunes result into a Candidate.

    Returns None for anything that is not a song or lacks a usable
    title / artist.
    """
    if raw.get("kind") != "song":
        return None
    title = _text(raw.get("trackName"))
    artist = _text(raw.get("artistName"))
    if not title or not artist:
        return None

    duration_ms = raw.get("trackTimeMillis")
    track_price = raw.get("trackPrice")
    track_number = raw.get("trackNumber")
    return Candidate(
        title=title,
        artist=artist,
        external_id=str(raw.get("trackId") or ""),
        duration_ms=int(duration_ms) if isinstance(duration_ms, (int, float)) else None,
        discovery_index=discovery_index,
        track_price=float(track_price) if isinstance(track_price, (int, float)) else None,
        collection_name=_text(raw.get("collectionName")) or None,
        track_number=int(track_number) if isinstance(track_number, int) else None,
        release_date=_text(raw.get("releaseDate")) or None,
        artwork_url=_text(raw.get("artworkUrl100")) or _text(raw.get("artworkUrl60")) or None,
        genre=_text(raw.get("primaryGenreName")) or None,
    )


class CatalogSearchClient:
    """Searches the external song catalog and returns deduplicated candidates.

    ``search`` is tolerant of partial upstream failure: each strategy that
    fails is skipped, and if every strategy fails the result is simply
    empty. ``lookup`` serves the bulk resolver and raises
    ``UpstreamUnavailable`` instead, so the caller can mark the item as an
    error rather than "not found".
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
        lookup_timeout: float = CATALOG_LOOKUP_TIMEOUT_SECONDS,
        min_interval: float = CATALOG_RATE_LIMIT,
        limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize the catalog client.

        Args:
            session: HTTP session to reuse (one is created if omitted).
            timeout: Seconds per search strategy request.
            lookup_timeout: Seconds per bulk lookup request.
            min_interval: Minimum seconds between catalog requests.
            limiter: Rate limiter (defaults to the shared process limiter).
        """
        self._timeout = timeout
        self._lookup_timeout = lookup_timeout
        self._limiter = limiter or rate_limiter
        self._limiter.configure(_SERVICE, min_interval)

        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    # --- Search ---

    def _strategies(self, term: str) -> list[tuple[str, dict]]:
        """Ordered (name, params) pairs; accumulation follows this order."""
        return [
            ("term", {"term": term, "media": "music", "entity": "song", "limit": CATALOG_TERM_LIMIT}),
            ("phrase", {"term": f'"{term}"', "media": "music", "entity": "song", "limit": CATALOG_PHRASE_LIMIT}),
        ]

    def _fetch(self, params: dict, timeout: float) -> list[dict]:
        """Run one catalog request and return the raw result list.

        Raises:
            UpstreamUnavailable: On timeout, non-2xx status or a bad body.
        """
        self._limiter.wait(_SERVICE)
        try:
            response = self._session.get(ITUNES_SEARCH_URL, params=params, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable(_SERVICE, str(e)) from e
        except ValueError as e:
            raise UpstreamUnavailable(_SERVICE, f"invalid JSON: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise UpstreamUnavailable(_SERVICE, "response has no results list")
        return results

    def _run_strategy(self, name: str, params: dict) -> list[dict]:
        try:
            results = self._fetch(params, self._timeout)
        except UpstreamUnavailable as e:
            logger.warning("Catalog strategy '%s' failed: %s", name, e.detail)
            return []
        logger.debug("Catalog strategy '%s' returned %d results", name, len(results))
        return results

    def search(self, query: str) -> list[Candidate]:
        """Search the catalog with every strategy and merge the results.

        Strategies are dispatched concurrently but accumulated in their
        declared order, so the first occurrence of a (title, artist) key is
        always the same one for the same upstream responses.

        Args:
            query: Free-text search query.

        Returns:
            Deduplicated candidates in discovery order, each carrying its
            discovery index. Empty if the query is blank or every strategy
            failed.
        """
        term = sanitize_query(query)
        if not term:
            return []

        strategies = self._strategies(term)
        with ThreadPoolExecutor(max_workers=len(strategies)) as executor:
            futures = [
                executor.submit(self._run_strategy, name, params)
                for name, params in strategies
            ]
            batches = [f.result() for f in futures]

        candidates: list[Candidate] = []
        seen: set[tuple[str, str]] = set()
        for batch in batches:
            for raw in batch:
                if not isinstance(raw, dict):
                    continue
                candidate = parse_track(raw, discovery_index=len(candidates))
                if candidate is None or candidate.key in seen:
                    continue
                seen.add(candidate.key)
                candidates.append(candidate)

        logger.info("Catalog search '%s': %d unique candidates", term, len(candidates))
        return candidates

    # --- Bulk lookup ---

    def lookup(self, artist: str, title: str, limit: int = CATALOG_LOOKUP_LIMIT) -> list[Candidate]:
        """Look up a specific (artist, title) pair for duration resolution.

        Only songs that report a duration are returned.

        Raises:
            UpstreamUnavailable: If the catalog request fails.
        """
        term = sanitize_query(f"{artist} {title}")
        if not term:
            return []

        params = {"term": term, "media": "music", "entity": "song", "limit": limit}
        results = self._fetch(params, self._lookup_timeout)

        candidates = []
        for raw in results:
            if not isinstance(raw, dict):
                continue
            candidate = parse_track(raw, discovery_index=len(candidates))
            if candidate is not None and candidate.duration_ms:
                candidates.append(candidate)

        logger.debug("Catalog lookup '%s': %d results with duration", term, len(candidates))
        return candidates

    def close(self) -> None:
        self._session.close()
