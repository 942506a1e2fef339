"""
Supabase Service - Database operations
"""
import asyncio
import time
from typing import Any, Callable, Dict, List

import httpcore
import httpx

from config.settings import get_supabase_client, reinitialize_supabase
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")

TENDERS_TABLE = "tenders_gem"

RETRYABLE_ERRORS = (
    httpx.ReadError,
    httpx.RemoteProtocolError,
    httpx.ConnectError,
    httpx.TimeoutException,
    httpcore.ReadError,
    httpcore.RemoteProtocolError,
    ConnectionError,
    ConnectionResetError,
    BrokenPipeError,
)


def execute_with_retry(
    operation_factory: Callable[[], Any],
    retries: int = 5,
    backoff_seconds: float = 0.5,
    on_retry: Callable[[], None] | None = None,
):
    """Execute a Supabase/PostgREST operation with retries on socket/network errors."""
    last_error: Exception | None = None

    for attempt in range(1, retries + 1):
        try:
            return operation_factory()
        except RETRYABLE_ERRORS as err:
            last_error = err
            error_msg = str(err)

            # Only log first and last attempt to reduce noise
            if attempt == 1 or attempt == retries:
                logger.warning(f"Supabase connection error (attempt {attempt}/{retries}): {error_msg[:100]}")

            # Reinitialize client to get fresh connection
            try:
                reinitialize_supabase()
            except Exception as reinit_err:
                logger.debug(f"Supabase reinitialization failed, retrying anyway: {reinit_err}")

            if on_retry:
                on_retry()

            if attempt < retries:
                # Exponential backoff
                sleep_time = backoff_seconds * (2 ** (attempt - 1))
                time.sleep(min(sleep_time, 5.0))  # Cap at 5 seconds

    if last_error:
        raise last_error


def fetch_paginated_rows(
    query_factory: Callable[[], Any],
    page_size: int = 500,
    max_rows: int | None = None,
):
    """Fetch rows in chunks using PostgREST range pagination."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    results: list = []
    offset = 0

    while True:
        def _run_page():
            builder = query_factory()
            return builder.range(offset, offset + page_size - 1).execute()

        response = execute_with_retry(_run_page)
        page = (response.data or []) if response else []
        results.extend(page)

        if len(page) < page_size:
            break

        offset += page_size
        if max_rows and len(results) >= max_rows:
            break

    if max_rows and len(results) > max_rows:
        return results[:max_rows]
    return results


def count_rows(table: str, client_factory: Callable[[], Any] = get_supabase_client, **filters) -> int:
    """Exact row count for a table, optionally filtered by equality."""
    def _run():
        query = client_factory().table(table).select("id", count="exact").limit(1)
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute()

    res = execute_with_retry(_run)
    return res.count or 0


class SupabaseTenderBackend:
    """Async facade over the tender RPCs used by the listing cache.

    The supabase client is synchronous, so each call runs in a worker thread
    and the event loop stays free while the round-trip completes. Listing
    calls are deliberately not retried.
    """

    def __init__(self, client_factory: Callable[[], Any] = get_supabase_client):
        self._client_factory = client_factory

    async def get_filtered_tenders(self, params: Dict[str, Any]) -> List[dict]:
        def _run():
            return self._client_factory().rpc("get_filtered_tenders", params).execute()

        res = await asyncio.to_thread(_run)
        return res.data or []

    async def get_user_keywords(self, user_id: str) -> List[str]:
        def _run():
            return self._client_factory().rpc("get_user_keywords", {"p_user_id": user_id}).execute()

        res = await asyncio.to_thread(_run)
        return res.data or []

    async def distinct_values(self, column: str) -> List[str]:
        def _run():
            return fetch_paginated_rows(
                lambda: self._client_factory().table(TENDERS_TABLE).select(column).order(column)
            )

        rows = await asyncio.to_thread(_run)
        values = {row.get(column) for row in rows if row.get(column)}
        return sorted(values)
