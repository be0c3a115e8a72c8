"""Bulk match resolver -- classifies many (artist, title) pairs against the catalog.

Each item independently ends up as exactly one of:
- found: one candidate clearly beats the rest; its duration is used
- multiple: several plausible recordings; the user picks one later
- not_found: nothing in the catalog matches well enough
- error: the catalog call failed for this item (siblings are unaffected)
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, Iterator

from songscout.core.catalog_client import CatalogSearchClient
from songscout.models.bulk_match import (
    BulkMatchItem,
    BulkMatchResult,
    BulkMatchStatus,
    BulkRunSummary,
    DisambiguationOption,
)
from songscout.models.candidate import Candidate
from songscout.models.song import is_live_title
from songscout.utils.constants import (
    BULK_ARTIST_CONTAINS_SCORE,
    BULK_ARTIST_EXACT_SCORE,
    BULK_STUDIO_VERSION_BONUS,
    BULK_TITLE_CONTAINS_SCORE,
    BULK_TITLE_EXACT_SCORE,
    BULK_TITLE_WORD_WEIGHT,
    DEFAULT_BULK_AMBIGUITY_MARGIN,
    DEFAULT_BULK_CONFIDENT_SCORE,
    DEFAULT_BULK_MIN_MATCH_SCORE,
    MAX_BULK_ITEMS,
    MAX_DISAMBIGUATION_OPTIONS,
)
from songscout.utils.errors import InvalidInput
from songscout.utils.logger import get_logger
from songscout.utils.text import normalize_key, round_half_up

logger = get_logger("core.bulk_resolver")

# Callback type: (completed_items, total_items, result)
BulkProgressCallback = Callable[[int, int, BulkMatchResult], None]


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def match_score(artist: str, title: str, candidate: Candidate) -> int:
    """Score how well a catalog track matches a requested (artist, title).

    Artist agreement is worth up to 400, title agreement up to 600, plus a
    small bonus for studio (non-live) recordings.
    """
    want_artist = normalize_key(artist)
    want_title = normalize_key(title)
    got_artist = normalize_key(candidate.artist)
    got_title = normalize_key(candidate.title)

    score = 0.0
    if got_artist == want_artist:
        score += BULK_ARTIST_EXACT_SCORE
    elif _contains_either(got_artist, want_artist):
        score += BULK_ARTIST_CONTAINS_SCORE

    if got_title == want_title:
        score += BULK_TITLE_EXACT_SCORE
    elif _contains_either(got_title, want_title):
        score += BULK_TITLE_CONTAINS_SCORE
    else:
        want_words = want_title.split()
        got_words = set(got_title.split())
        hits = sum(1 for word in want_words if word in got_words)
        if hits and want_words:
            score += BULK_TITLE_WORD_WEIGHT * hits / len(want_words)

    if not is_live_title(got_title):
        score += BULK_STUDIO_VERSION_BONUS

    return round_half_up(score)


def validate_items(items: Iterable[BulkMatchItem | dict]) -> list[BulkMatchItem]:
    """Check and normalize a bulk request.

    Raises:
        InvalidInput: If the batch is empty, too large, or any item lacks
            an artist or title.
    """
    if items is None:
        raise InvalidInput("Songs array is required")
    parsed: list[BulkMatchItem] = []
    for raw in items:
        if isinstance(raw, BulkMatchItem):
            artist, title = raw.artist, raw.title
        elif isinstance(raw, dict):
            artist, title = raw.get("artist"), raw.get("title")
        else:
            raise InvalidInput(f"Unsupported bulk item: {raw!r}")
        if not isinstance(artist, str) or not isinstance(title, str) or not artist.strip() or not title.strip():
            raise InvalidInput("Each song must have artist and title")
        parsed.append(BulkMatchItem(artist=artist.strip(), title=title.strip()))

    if not parsed:
        raise InvalidInput("Songs array is required")
    if len(parsed) > MAX_BULK_ITEMS:
        raise InvalidInput(f"Maximum {MAX_BULK_ITEMS} songs per request")
    return parsed


class BulkMatchResolver:
    """Resolves durations for a batch of (artist, title) pairs.

    Items run in order. Results are cached per session on the lowercased,
    trimmed (artist, title), so repeated rows cost one catalog call. Errors
    are not cached, so a retry hits the catalog again.

    Usage:
        resolver = BulkMatchResolver(catalog)
        for result in resolver.stream(items):
            print(result.status)
        print(resolver.summary)
    """

    def __init__(
        self,
        catalog: CatalogSearchClient,
        min_match_score: int = DEFAULT_BULK_MIN_MATCH_SCORE,
        confident_score: int = DEFAULT_BULK_CONFIDENT_SCORE,
        ambiguity_margin: int = DEFAULT_BULK_AMBIGUITY_MARGIN,
        max_options: int = MAX_DISAMBIGUATION_OPTIONS,
        progress_callback: BulkProgressCallback | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            catalog: Catalog client used for per-item lookups.
            min_match_score: Candidates scoring at or below this are discarded.
            confident_score: The best candidate must score above this to be
                accepted without asking the user.
            ambiguity_margin: The best candidate must beat the runner-up by
                more than this to be accepted without asking the user.
            max_options: Most disambiguation options offered per item.
            progress_callback: Called after each item completes.
        """
        self._catalog = catalog
        self._min_score = min_match_score
        self._confident_score = confident_score
        self._margin = ambiguity_margin
        self._max_options = max_options
        self.progress_callback = progress_callback

        self._cache: dict[str, BulkMatchResult] = {}
        self._cache_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self.summary = BulkRunSummary()

    @staticmethod
    def cache_key(artist: str, title: str) -> str:
        return f"{artist.lower().strip()}|{title.lower().strip()}"

    def cancel(self) -> None:
        """Stop the running batch after the in-flight item finishes."""
        self._cancel_event.set()
        logger.info("Bulk resolution cancelled")

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # --- Classification ---

    def classify(self, item: BulkMatchItem, candidates: list[Candidate]) -> BulkMatchResult:
        """Turn catalog candidates for one item into a classified result."""
        scored = [(match_score(item.artist, item.title, c), c) for c in candidates]
        # Stable sort keeps catalog order among equal scores
        scored = sorted(
            (pair for pair in scored if pair[0] > self._min_score),
            key=lambda pair: -pair[0],
        )

        if not scored:
            return BulkMatchResult(item.artist, item.title, status=BulkMatchStatus.NOT_FOUND)

        best_score, best = scored[0]
        runner_up = scored[1][0] if len(scored) > 1 else 0
        if best_score - runner_up > self._margin and best_score > self._confident_score:
            return BulkMatchResult(
                item.artist,
                item.title,
                status=BulkMatchStatus.FOUND,
                duration_seconds=best.duration_seconds,
            )

        options = [
            DisambiguationOption(
                id=c.external_id,
                artist=c.artist,
                title=c.title,
                duration_seconds=c.duration_seconds or 0,
                artwork=c.artwork_url,
            )
            for _score, c in scored[: self._max_options]
        ]
        return BulkMatchResult(
            item.artist,
            item.title,
            status=BulkMatchStatus.MULTIPLE,
            options=options,
        )

    def resolve_item(self, item: BulkMatchItem) -> BulkMatchResult:
        """Resolve one item; never raises for upstream failures."""
        key = self.cache_key(item.artist, item.title)
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Bulk cache hit: %s", key)
            return cached

        try:
            candidates = self._catalog.lookup(item.artist, item.title)
            result = self.classify(item, candidates)
        except Exception as e:
            logger.warning("Duration lookup failed for %s - %s: %s", item.artist, item.title, e)
            return BulkMatchResult(
                item.artist,
                item.title,
                status=BulkMatchStatus.ERROR,
                error=str(e) or type(e).__name__,
            )

        with self._cache_lock:
            self._cache[key] = result
        return result

    # --- Batch ---

    def stream(self, items: Iterable[BulkMatchItem | dict]) -> Iterator[BulkMatchResult]:
        """Resolve items in order, yielding each result as it completes.

        ``self.summary`` is reset at the start and complete once the
        generator is exhausted.

        Raises:
            InvalidInput: If the batch fails validation (before any lookup).
        """
        batch = validate_items(items)
        self._cancel_event.clear()
        self.summary = BulkRunSummary(total=len(batch))
        return self._run(batch)

    def _run(self, batch: list[BulkMatchItem]) -> Iterator[BulkMatchResult]:
        total = len(batch)
        for idx, item in enumerate(batch):
            if self._cancel_event.is_set():
                self.summary.cancelled = True
                logger.info("Bulk resolution stopped at item %d/%d", idx + 1, total)
                break

            logger.debug("[%d/%d] Looking up %s - %s", idx + 1, total, item.artist, item.title)
            result = self.resolve_item(item)
            self.summary.record(result.status)
            if self.progress_callback:
                self.progress_callback(self.summary.completed, total, result)
            yield result

        logger.info(
            "Bulk complete: %d total, %d found, %d multiple, %d not found, %d errors",
            self.summary.total,
            self.summary.found,
            self.summary.multiple,
            self.summary.not_found,
            self.summary.errors,
        )

    def resolve(self, items: Iterable[BulkMatchItem | dict]) -> list[BulkMatchResult]:
        """Resolve a whole batch and return results in request order.

        If the run is cancelled, items that were never reached are returned
        with status ``pending``.
        """
        batch = validate_items(items)
        results = list(self.stream(batch))
        for item in batch[len(results):]:
            results.append(BulkMatchResult(item.artist, item.title))
        return results

    @staticmethod
    def select_option(result: BulkMatchResult, option_id: str) -> BulkMatchResult:
        """Resolve an ambiguous item with the user's chosen recording.

        Raises:
            InvalidInput: If the result is not ambiguous or the option is unknown.
        """
        if result.status is not BulkMatchStatus.MULTIPLE:
            raise InvalidInput(f"Item is {result.status.value}, not awaiting a choice")
        chosen = next((opt for opt in result.options if opt.id == option_id), None)
        if chosen is None:
            raise InvalidInput(f"Unknown option id: {option_id}")

        result.status = BulkMatchStatus.FOUND
        result.duration_seconds = chosen.duration_seconds
        result.options = []
        return result
