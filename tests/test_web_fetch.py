import asyncio

import aiohttp
import pytest

from strongs_graph.workflows.models import FetchError
from strongs_graph.workflows.web_fetch import FetchConfig, Fetcher


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(round(seconds, 3))
        self.now += seconds


def _fetcher(clock: FakeClock, rate_limit_ms: int = 1000, **config) -> Fetcher:
    return Fetcher(FetchConfig(rate_limit_ms=rate_limit_ms, **config), clock=clock, sleep=clock.sleep)


def test_cache_hit_skips_network_and_wait(monkeypatch):
    clock = FakeClock()
    calls = []

    async def fake_fetch_once(self, url):
        calls.append(url)
        return f"<html>{url}</html>"

    monkeypatch.setattr(Fetcher, "_fetch_once", fake_fetch_once)
    fetcher = _fetcher(clock)

    async def run():
        first = await fetcher.get("https://biblehub.com/a")
        second = await fetcher.get("https://biblehub.com/a")
        return first, second

    first, second = asyncio.run(run())
    assert first == second == "<html>https://biblehub.com/a</html>"
    assert calls == ["https://biblehub.com/a"]
    assert clock.sleeps == []
    assert fetcher.network_fetches == 1
    assert fetcher.cached("https://biblehub.com/a") == first


def test_use_cache_false_refetches(monkeypatch):
    clock = FakeClock()
    calls = []

    async def fake_fetch_once(self, url):
        calls.append(url)
        return "x"

    monkeypatch.setattr(Fetcher, "_fetch_once", fake_fetch_once)
    fetcher = _fetcher(clock, rate_limit_ms=0)

    async def run():
        await fetcher.get("https://biblehub.com/a")
        await fetcher.get("https://biblehub.com/a", use_cache=False)

    asyncio.run(run())
    assert len(calls) == 2


def test_rate_limit_measured_from_completion(monkeypatch):
    clock = FakeClock()

    async def slow_fetch_once(self, url):
        clock.now += 0.3
        return url

    monkeypatch.setattr(Fetcher, "_fetch_once", slow_fetch_once)
    fetcher = _fetcher(clock)

    async def run():
        await fetcher.get("https://biblehub.com/a")
        clock.now += 0.2
        await fetcher.get("https://biblehub.com/b")

    asyncio.run(run())
    # 0.3 s spent fetching does not count toward the 1 s interval.
    assert clock.sleeps == [0.8]


def test_set_rate_limit_applies_to_next_call(monkeypatch):
    clock = FakeClock()

    async def fake_fetch_once(self, url):
        return url

    monkeypatch.setattr(Fetcher, "_fetch_once", fake_fetch_once)
    fetcher = _fetcher(clock)

    async def run():
        await fetcher.get("https://biblehub.com/a")
        fetcher.set_rate_limit(0)
        await fetcher.get("https://biblehub.com/b")
        fetcher.set_rate_limit(500)
        await fetcher.get("https://biblehub.com/c")

    asyncio.run(run())
    assert fetcher.rate_limit_ms == 500
    assert clock.sleeps == [0.5]


def test_fetch_error_propagates_and_is_not_cached(monkeypatch):
    clock = FakeClock()

    async def failing_fetch_once(self, url):
        raise FetchError(url, f"GET {url} returned HTTP 404", status=404)

    monkeypatch.setattr(Fetcher, "_fetch_once", failing_fetch_once)
    fetcher = _fetcher(clock)

    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.get("https://biblehub.com/missing"))
    assert info.value.status == 404
    assert fetcher.cached("https://biblehub.com/missing") is None
    assert fetcher.network_fetches == 0


def test_transport_errors_retry_with_backoff(monkeypatch):
    clock = FakeClock()
    attempts = []

    async def flaky_fetch_once(self, url):
        attempts.append(url)
        if len(attempts) < 3:
            raise aiohttp.ClientConnectionError("reset")
        return "ok"

    monkeypatch.setattr(Fetcher, "_fetch_once", flaky_fetch_once)
    fetcher = _fetcher(clock, max_attempts=3, backoff_initial=0.5, backoff_max=4.0)

    assert asyncio.run(fetcher.get("https://biblehub.com/a")) == "ok"
    assert len(attempts) == 3
    assert clock.sleeps == [0.5, 1.0]


def test_transport_errors_exhaust_into_fetch_error(monkeypatch):
    clock = FakeClock()

    async def broken_fetch_once(self, url):
        raise aiohttp.ClientConnectionError("refused")

    monkeypatch.setattr(Fetcher, "_fetch_once", broken_fetch_once)
    fetcher = _fetcher(clock, max_attempts=2)

    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.get("https://biblehub.com/a"))
    assert "ClientConnectionError" in str(info.value)
