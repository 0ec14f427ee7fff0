"""Pyth Network price client (Hermes ``latest`` endpoint)."""
from __future__ import annotations

import logging
import ssl
import time
from typing import Any, Callable

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)

CACHE_SECONDS = 30.0


def parse_price(item: dict[str, Any]) -> float:
    """Scale a Hermes ``{price, expo}`` pair to a float price."""
    price_data = item.get("price", {})
    price_raw = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    return price_raw * (10**expo)


def _normalize_feed_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


class PythOracle:
    """Fetch prices from Pyth, caching each symbol for ``CACHE_SECONDS``.

    A failed fetch serves the last known price for a symbol, however old,
    and leaves symbols that were never fetched out of the result.
    """

    def __init__(
        self,
        config: PythConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self._clock = clock
        self._cache: dict[str, tuple[float, float]] = {}

    def _cached(self, symbol: str, allow_stale: bool = False) -> float | None:
        entry = self._cache.get(symbol)
        if entry is None:
            return None
        price, fetched = entry
        if allow_stale or self._clock() - fetched < CACHE_SECONDS:
            return price
        return None

    async def _request(self, feed_ids: list[str]) -> list[dict[str, Any]]:
        query_params = "&".join(f"ids[]={fid}" for fid in feed_ids)
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise RuntimeError(f"HTTP {response.status}")
                data = await response.json()
                return data.get("parsed", [])

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices for ``symbols`` (all configured feeds if None)."""
        wanted = list(self.price_feeds) if symbols is None else [
            s for s in symbols if s in self.price_feeds
        ]

        prices: dict[str, float] = {}
        missing: list[str] = []
        for symbol in wanted:
            cached = self._cached(symbol)
            if cached is None:
                missing.append(symbol)
            else:
                prices[symbol] = cached

        if not missing:
            return prices

        id_to_symbols: dict[str, list[str]] = {}
        for symbol in missing:
            feed_id = _normalize_feed_id(self.price_feeds[symbol])
            id_to_symbols.setdefault(feed_id, []).append(symbol)

        try:
            parsed = await self._request(list(id_to_symbols))
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            for symbol in missing:
                stale = self._cached(symbol, allow_stale=True)
                if stale is not None:
                    logger.warning("Serving stale %s price %.4f", symbol, stale)
                    prices[symbol] = stale
            return prices

        now = self._clock()
        for item in parsed:
            feed_id = _normalize_feed_id(str(item.get("id", "")))
            price = parse_price(item)
            for symbol in id_to_symbols.get(feed_id, []):
                prices[symbol] = price
                self._cache[symbol] = (price, now)
                logger.debug("Pyth %s: $%.4f", symbol, price)

        return prices

    async def fetch_price(self, symbol: str) -> float | None:
        prices = await self.fetch_prices([symbol])
        return prices.get(symbol)
