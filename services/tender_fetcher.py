"""
Tender listing fetcher: serves pages from cache, joins in-flight calls, or asks the backend
"""
import asyncio
from typing import Any, Awaitable, Callable, List, Optional

from config.settings import FILTER_COLUMNS, TENDER_PAGE_SIZE
from services.tender_models import TenderPage, TenderQuery
from utils.cache_manager import KEYWORDS_KEY_PREFIX, TenderCaches, fingerprint
from utils.errors import TenderFetchError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")


def _mark_observed(task: asyncio.Future) -> None:
    # Every awaiter may have gone away; retrieve the outcome so asyncio does not warn
    if not task.cancelled():
        task.exception()


class TenderFetcher:
    """Produce tender pages while keeping backend calls to a minimum.

    For a given fingerprint at most one backend call is ever in flight;
    later callers await the same outcome. Successful pages are cached,
    failures are raised to every waiter as TenderFetchError and never cached
    or retried.
    """

    def __init__(self, backend, caches: TenderCaches, page_size: int = TENDER_PAGE_SIZE):
        self.backend = backend
        self.caches = caches
        self.page_size = page_size

    def cached_page(self, query: TenderQuery) -> Optional[TenderPage]:
        """Return the fresh cached page for a query, without touching the backend."""
        entry = self.caches.results.get(fingerprint(query))
        if entry is None:
            return None
        return TenderPage(
            rows=list(entry.rows),
            total_count=entry.total_count,
            page=query.page,
            page_size=self.page_size,
        )

    async def fetch(self, query: TenderQuery) -> TenderPage:
        key = fingerprint(query)
        cached = self.cached_page(query)
        if cached is not None:
            logger.debug(f"Tender cache hit for user {query.user_id[:8]}... page {query.page}")
            return cached
        return await self._single_flight(key, lambda: self._load_page(query))

    async def _load_page(self, query: TenderQuery) -> TenderPage:
        generation = self.caches.generation
        try:
            rows = await self.backend.get_filtered_tenders(query.rpc_params(self.page_size))
            page = TenderPage.from_rpc_rows(rows, query.page, self.page_size)
        except Exception as exc:
            logger.error(f"Tender fetch failed for user {query.user_id[:8]}... page {query.page}: {exc}")
            raise TenderFetchError(str(exc) or "Failed to fetch tenders") from exc

        # A flush during the call means this result may already be stale
        if generation == self.caches.generation:
            self.caches.results.put(fingerprint(query), page.rows, page.total_count)
        return page

    async def filter_options(self, column: str) -> List[str]:
        """Distinct non-empty values of a tender column, for filter dropdowns."""
        if column not in FILTER_COLUMNS:
            raise ValidationError(f"Unsupported filter column: {column}")
        entry = self.caches.filter_options.get(column)
        if entry is not None:
            return list(entry.rows)

        async def _load():
            generation = self.caches.generation
            try:
                values = await self.backend.distinct_values(column)
            except Exception as exc:
                logger.error(f"Failed to load {column} filter options: {exc}")
                raise TenderFetchError(f"Failed to load {column} options") from exc
            if generation == self.caches.generation:
                self.caches.filter_options.put(column, values, len(values))
            return values

        values = await self._single_flight(f"options:{column}", _load)
        return list(values)

    async def has_keywords(self, user_id: str) -> bool:
        """Whether the user has saved keyword filters (cached per user)."""
        entry = self.caches.keywords.get(user_id)
        if entry is not None:
            return bool(entry.rows)

        async def _load():
            generation = self.caches.keyword_generation
            keywords = await self.backend.get_user_keywords(user_id)
            if generation == self.caches.keyword_generation:
                self.caches.keywords.put(user_id, keywords, len(keywords))
            return keywords

        try:
            keywords = await self._single_flight(f"{KEYWORDS_KEY_PREFIX}{user_id}", _load)
        except Exception as exc:
            logger.warning(f"Could not load keywords for user {user_id[:8]}...: {exc}")
            return False
        return bool(keywords)

    def clear_results(self) -> None:
        self.caches.clear_results()

    def clear_keywords(self) -> None:
        self.caches.clear_keywords()

    def clear_all(self) -> None:
        self.caches.clear_all()

    async def _single_flight(self, key: str, loader: Callable[[], Awaitable[Any]]):
        pending = self.caches.in_flight.attach(key)
        if pending is not None:
            logger.debug(f"Joining in-flight request {key[:60]}")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._run_registered(key, loader))
        task.add_done_callback(_mark_observed)
        self.caches.in_flight.register(key, task)
        return await asyncio.shield(task)

    async def _run_registered(self, key: str, loader: Callable[[], Awaitable[Any]]):
        try:
            return await loader()
        finally:
            self.caches.in_flight.release(key, asyncio.current_task())
