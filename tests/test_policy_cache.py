# File: tests/test_policy_cache.py
import asyncio

import pytest
from aiohttp import ClientConnectionError

from page_scout.compliance.fetcher import TextResponse
from page_scout.compliance.policy_cache import DEFAULT_TTL, PolicyCache

ORIGIN = "https://example.com"
ROBOTS = f"{ORIGIN}/robots.txt"


@pytest.mark.asyncio()
async def test_single_fetch_within_ttl_and_refetch_after(fetcher, clock):
    fetcher.responses[ROBOTS] = "User-agent: *\nDisallow: /secret"
    cache = PolicyCache(fetcher, clock=clock)

    first = await cache.get(ORIGIN)
    clock.advance(DEFAULT_TTL - 1)
    second = await cache.get(ORIGIN)
    assert first is second
    assert fetcher.count(ROBOTS) == 1

    clock.advance(1)
    third = await cache.get(ORIGIN)
    assert fetcher.count(ROBOTS) == 2
    assert third is not first
    assert cache.peek(ORIGIN).policy is third
    assert not third.can_fetch("PageScoutBot", "/secret")


@pytest.mark.asyncio()
async def test_missing_robots_is_allow_all(fetcher, clock):
    cache = PolicyCache(fetcher, clock=clock)
    policy = await cache.get(ORIGIN)
    assert policy.is_empty
    assert len(cache) == 1


@pytest.mark.asyncio()
async def test_fetch_error_propagates_and_is_not_cached(fetcher, clock):
    fetcher.responses[ROBOTS] = ClientConnectionError("refused")
    cache = PolicyCache(fetcher, clock=clock)
    with pytest.raises(ClientConnectionError):
        await cache.get(ORIGIN)
    assert cache.peek(ORIGIN) is None

    fetcher.responses[ROBOTS] = TextResponse(ROBOTS, 200, "User-agent: *\nDisallow:")
    await cache.get(ORIGIN)
    assert len(cache) == 1


@pytest.mark.asyncio()
async def test_concurrent_misses_fetch_once(clock):
    calls = []

    async def slow_fetch(url):
        calls.append(url)
        await asyncio.sleep(0.05)
        return TextResponse(url, 200, "User-agent: *\nDisallow: /x")

    cache = PolicyCache(slow_fetch, clock=clock)
    results = await asyncio.gather(*(cache.get(ORIGIN) for _ in range(5)))
    assert len(calls) == 1
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio()
async def test_invalidate_forces_refetch(fetcher, clock):
    cache = PolicyCache(fetcher, clock=clock)
    await cache.get(ORIGIN)
    cache.invalidate(ORIGIN)
    await cache.get(ORIGIN)
    assert fetcher.count(ROBOTS) == 2
