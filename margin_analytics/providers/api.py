"""HTTP data provider for the margin indexer API."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import DataSourceConfig
from .errors import DataSourceError

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "managers": "/margin_managers",
    "loans": "/margin_loans",
    "liquidations": "/margin_liquidations",
}


class ApiProvider:
    """Fetch the three event collections from the indexer REST API."""

    def __init__(self, config: DataSourceConfig) -> None:
        self.api_url = config.api_url.rstrip("/")
        self.timeout = config.timeout

    @property
    def source_name(self) -> str:
        return "api"

    async def _fetch_endpoint(
        self, session: aiohttp.ClientSession, endpoint: str
    ) -> list[dict[str, Any]]:
        url = f"{self.api_url}{endpoint}"
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            if response.status != 200:
                raise DataSourceError(
                    f"API request failed: {url} returned HTTP {response.status}"
                )
            data = await response.json()
            if not isinstance(data, list):
                raise DataSourceError(f"API response from {url} is not a list")
            return data

    async def fetch_payload(self) -> dict[str, list[dict[str, Any]]]:
        """Fetch managers, loans and liquidations concurrently."""
        if not self.api_url:
            raise DataSourceError("API URL not configured")

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                results = await asyncio.gather(
                    *(self._fetch_endpoint(session, ep) for ep in ENDPOINTS.values())
                )
        except DataSourceError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DataSourceError(f"Error fetching data from {self.api_url}: {e}") from e

        payload = dict(zip(ENDPOINTS.keys(), results))
        logger.info(
            "Fetched %d managers, %d loans, %d liquidations from %s",
            len(payload["managers"]),
            len(payload["loans"]),
            len(payload["liquidations"]),
            self.api_url,
        )
        return payload
