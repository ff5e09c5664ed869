"""Fixtures — fake fetcher, in-memory history store."""

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from sitemap_seo.errors import FetchError
from sitemap_seo.history.redis import RedisHistoryStore


class FakeFetcher:
    """In-memory stand-in for the fetch gateway. Unknown URLs fail like a 404."""

    def __init__(self) -> None:
        self.responses: dict[str, str | Exception] = {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        value = self.responses.get(url)
        if value is None:
            raise FetchError(url, 404, "Not Found")
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest_asyncio.fixture
async def history_store():
    """RedisHistoryStore backed by an in-memory FakeRedis instance."""
    client = FakeRedis(decode_responses=True)
    store = RedisHistoryStore(client, default_ttl=3600)
    yield store
    await client.aclose()
