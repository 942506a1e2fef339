import asyncio
import os
import sys

import pytest

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-supabase-key")

project_root = os.path.dirname(os.path.dirname(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from utils.cache_manager import TenderCaches  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTenderBackend:
    """Records every call; rows echo the query so results are distinguishable."""

    def __init__(self, total_count: int = 25, delay: float = 0.0):
        self.total_count = total_count
        self.delay = delay
        self.delays = {}
        self.keyword_delay = 0.0
        self.fail = None
        self.calls = []
        self.option_calls = []
        self.keyword_calls = []
        self.keywords = {}
        self.options = {
            "ministry": ["Ministry of Defence", "Ministry of Railways"],
            "department": ["Department of Posts"],
            "city": ["Delhi", "Mumbai"],
        }

    async def get_filtered_tenders(self, params):
        self.calls.append(dict(params))
        delay = self.delays.get(params.get("p_search"), self.delay)
        if delay:
            await asyncio.sleep(delay)
        if self.fail is not None:
            raise self.fail
        page = params["p_page"]
        tag = params.get("p_search") or params.get("p_ministry") or "all"
        return [
            {
                "id": page * 100 + i,
                "bid_id": page * 100 + i,
                "bid_number": f"GEM/2025/B/{page}-{i}-{tag}",
                "category": "Office Supplies",
                "quantity": 5,
                "ministry": params.get("p_ministry") or "Ministry of Defence",
                "department": "Department of Military Affairs",
                "start_date": "2025-01-01",
                "end_date": "2025-02-01",
                "download_url": None,
                "bid_url": None,
                "total_count": self.total_count,
            }
            for i in range(2)
        ]

    async def get_user_keywords(self, user_id):
        self.keyword_calls.append(user_id)
        # Read before waiting, like a query that has already hit the database
        keywords = list(self.keywords.get(user_id, []))
        if self.keyword_delay:
            await asyncio.sleep(self.keyword_delay)
        return keywords

    async def distinct_values(self, column):
        self.option_calls.append(column)
        return list(self.options[column])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return TenderCaches(results_ttl_seconds=600, options_ttl_seconds=1800, clock=clock)


@pytest.fixture
def backend():
    return FakeTenderBackend()
