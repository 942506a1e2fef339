"""
Tender feed: per-consumer listing state with debounced, stale-safe reloads

This is the in-process client surface over TenderFetcher, for dashboards,
workers or scripts that hold a listing open and react to filter changes.
The HTTP routers serve one request at a time and use the fetcher directly.

    feed = TenderFeed(app.state.tender_fetcher, user_id)
    await feed.load()
    feed.update(search="laptop")
    await feed.wait()
    feed.rows, feed.total_pages
"""
import asyncio
import math
from dataclasses import dataclass
from typing import List, Optional

from config.settings import FILTER_DEBOUNCE_MS, SEARCH_DEBOUNCE_MS
from services.tender_fetcher import TenderFetcher
from services.tender_models import TenderPage, TenderQuery, TenderRecord
from utils.errors import TenderFetchError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")


@dataclass(frozen=True)
class DebounceSettings:
    search_seconds: float = SEARCH_DEBOUNCE_MS / 1000
    filter_seconds: float = FILTER_DEBOUNCE_MS / 1000


class TenderFeed:
    """Current page of tenders for one consumer.

    Rapid changes are debounced: only the last update of a burst reaches the
    fetcher. A response is applied only while its query is still the feed's
    current query; anything older is dropped (it is still cached by the
    fetcher for reuse).
    """

    def __init__(
        self,
        fetcher: TenderFetcher,
        user_id: str,
        debounce: DebounceSettings | None = None,
        query: TenderQuery | None = None,
    ):
        self.fetcher = fetcher
        self.debounce = debounce or DebounceSettings()
        self.query = query or TenderQuery(user_id=user_id)
        self.rows: List[TenderRecord] = []
        self.total_count = 0
        self.loading = False
        self.error: Optional[str] = None
        self.has_keywords = False
        self._keywords_user: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def user_id(self) -> str:
        return self.query.user_id

    @property
    def page_size(self) -> int:
        return self.fetcher.page_size

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    def update(self, query: TenderQuery | None = None, **changes) -> TenderQuery:
        """Move to a new query and schedule a debounced reload.

        Changing any filter without naming a page goes back to page 1.
        Free-text search changes wait longer than structural ones.
        """
        if query is None:
            if "page" not in changes and any(k != "page" for k in changes):
                changes["page"] = 1
            query = self.query.with_changes(**changes)
        if query.user_id != self.user_id:
            raise ValueError("Use set_user() to change the acting user")

        search_changed = query.search != self.query.search
        self.query = query
        delay = self.debounce.search_seconds if search_changed else self.debounce.filter_seconds
        self._schedule(delay)
        return query

    async def load(self) -> None:
        """Load the current query now, skipping any pending debounce."""
        self._cancel_timer()
        self._task = asyncio.ensure_future(self._run(self.query))
        await self.wait()

    async def refetch(self) -> None:
        """Drop cached pages and filter options, then reload the current query."""
        logger.info(f"Refetching tenders for user {self.user_id[:8]}...")
        self.fetcher.clear_results()
        await self.load()

    async def set_user(self, user_id: str) -> None:
        """Switch the acting identity; every cache is flushed."""
        if user_id == self.user_id:
            return
        logger.info("Acting user changed, flushing tender caches")
        self.fetcher.clear_all()
        self._keywords_user = None
        self.has_keywords = False
        self.rows = []
        self.total_count = 0
        self.query = self.query.with_changes(user_id=user_id, page=1)
        await self.load()

    async def wait(self) -> None:
        """Wait until no debounce timer is pending and no load is running."""
        loop = asyncio.get_running_loop()
        while True:
            if self._timer is not None:
                await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))
                # Let the timer callback run
                await asyncio.sleep(0)
            elif self._task is not None and not self._task.done():
                await asyncio.wait({self._task})
            else:
                return

    def close(self) -> None:
        """Stop applying results; pending timers are cancelled."""
        self._closed = True
        self._cancel_timer()

    def _schedule(self, delay: float) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        self._task = asyncio.ensure_future(self._run(self.query))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _is_current(self, query: TenderQuery) -> bool:
        return not self._closed and query == self.query

    async def _run(self, query: TenderQuery) -> None:
        if self._keywords_user != query.user_id:
            has_keywords = await self.fetcher.has_keywords(query.user_id)
            if query.user_id == self.user_id:
                self.has_keywords = has_keywords
                self._keywords_user = query.user_id

        cached = self.fetcher.cached_page(query)
        if cached is not None:
            if self._is_current(query):
                self._apply(cached)
            return

        self.loading = True
        self.error = None
        try:
            page = await self.fetcher.fetch(query)
        except TenderFetchError as exc:
            if self._is_current(query):
                self.rows = []
                self.total_count = 0
                self.error = exc.message
                self.loading = False
            return

        if self._is_current(query):
            self._apply(page)
        else:
            logger.debug(f"Discarding stale tender page {query.page} for user {query.user_id[:8]}...")

    def _apply(self, page: TenderPage) -> None:
        self.rows = list(page.rows)
        self.total_count = page.total_count
        self.error = None
        self.loading = False
