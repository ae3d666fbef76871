from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import aiohttp

from .models import FetchError

logger = logging.getLogger(__name__)


@dataclass
class FetchConfig:
    """Configuration parameters for the rate-limited BibleHub client."""

    rate_limit_ms: int = 1000
    timeout: float = 20.0
    max_attempts: int = 3
    backoff_initial: float = 0.8
    backoff_max: float = 6.0
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    accept_language: str = "en-US,en;q=0.9"


@dataclass
class CacheEntry:
    text: str
    fetched_at: float


class Fetcher:
    """Single-lane async fetcher with an in-memory cache and a minimum request interval.

    One instance is meant to live for the whole process and be shared by
    every crawl, so repeated lookups across runs hit the cache. The cache is
    never pruned.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or FetchConfig()
        self._rate_limit_ms = max(0, int(self.config.rate_limit_ms))
        self._cache: Dict[str, CacheEntry] = {}
        self._last_fetch_at: Optional[float] = None
        self._clock = clock
        self._sleep = sleep
        self._session: Optional[aiohttp.ClientSession] = None
        self.network_fetches = 0

    @property
    def rate_limit_ms(self) -> int:
        return self._rate_limit_ms

    def set_rate_limit(self, ms: int) -> None:
        """Change the minimum interval; applies from the next call."""
        self._rate_limit_ms = max(0, int(ms))

    def cached(self, url: str) -> Optional[str]:
        hit = self._cache.get(url)
        return hit.text if hit else None

    async def get(self, url: str, use_cache: bool = True) -> str:
        if use_cache:
            hit = self._cache.get(url)
            if hit is not None:
                logger.debug("cache hit %s", url)
                return hit.text

        await self._wait_for_slot()
        try:
            text = await self._fetch_with_retries(url)
        finally:
            # Measured after completion so a slow fetch does not shorten the next wait.
            self._last_fetch_at = self._clock()
        self.network_fetches += 1
        self._cache[url] = CacheEntry(text=text, fetched_at=self._last_fetch_at)
        return text

    async def _wait_for_slot(self) -> None:
        if self._last_fetch_at is None or self._rate_limit_ms <= 0:
            return
        elapsed_ms = (self._clock() - self._last_fetch_at) * 1000.0
        remaining_ms = self._rate_limit_ms - elapsed_ms
        if remaining_ms > 0:
            logger.debug("rate limit: waiting %.0f ms", remaining_ms)
            await self._sleep(remaining_ms / 1000.0)

    async def _fetch_with_retries(self, url: str) -> str:
        delay = self.config.backoff_initial
        attempts = max(1, self.config.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await self._fetch_once(url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                if attempt == attempts:
                    raise FetchError(url, f"GET {url} failed: {exc.__class__.__name__}: {exc}") from exc
                logger.debug("attempt %d for %s failed (%s); retrying", attempt, url, exc)
                await self._sleep(delay)
                delay = min(delay * 2, self.config.backoff_max)
        raise FetchError(url, f"GET {url} failed: unexpected retry state")

    async def _fetch_once(self, url: str) -> str:
        session = await self._ensure_session()
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=self.config.timeout)) as resp:
            status = resp.status
            raw_bytes = await resp.read()
        if status < 200 or status >= 300:
            raise FetchError(url, f"GET {url} returned HTTP {status}", status=status)
        return raw_bytes.decode("utf-8", "ignore")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {
                "User-Agent": self.config.user_agent,
                "Accept-Language": self.config.accept_language,
                "Accept-Encoding": "gzip, deflate",
            }
            self._session = aiohttp.ClientSession(headers=headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


__all__ = ["FetchConfig", "CacheEntry", "Fetcher"]
