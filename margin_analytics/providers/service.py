"""Data service — picks a provider, parses its payload, caches the result."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable

from ..config import DataSourceConfig
from ..interfaces.data_provider import DataProvider
from ..models import Dataset
from ..parser import ParseReport, parse_dataset
from .api import ApiProvider
from .errors import DataSourceError
from .static import StaticProvider

logger = logging.getLogger(__name__)

# Registry of provider factories keyed by data source type.
_PROVIDER_FACTORIES: dict[str, Callable[[DataSourceConfig], DataProvider]] = {
    "api": ApiProvider,
    "static": StaticProvider,
}


def build_provider(config: DataSourceConfig) -> DataProvider:
    factory = _PROVIDER_FACTORIES.get(config.type)
    if factory is None:
        raise DataSourceError(f"No provider for data source type '{config.type}'")
    return factory(config)


class DataService:
    """Serve the latest Dataset, refetching at most once per refresh interval.

    Each refresh replaces the cached Dataset wholesale. When a refresh fails
    and an earlier dataset is cached, the cached one is served instead.
    """

    def __init__(
        self,
        config: DataSourceConfig,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._wall_clock = wall_clock
        self._provider: DataProvider = build_provider(config)
        self._dataset: Dataset | None = None
        self._last_report = ParseReport()
        self._last_fetch = 0.0

    @property
    def config(self) -> DataSourceConfig:
        return self._config

    @property
    def data_source_type(self) -> str:
        return self._config.type

    @property
    def last_report(self) -> ParseReport:
        return self._last_report

    def _is_fresh(self) -> bool:
        if self._dataset is None or not self._config.refresh_interval_seconds:
            return False
        return self._clock() - self._last_fetch < self._config.refresh_interval_seconds

    async def get_dataset(self, force: bool = False) -> Dataset:
        """Return the cached dataset or fetch a new one."""
        if not force and self._is_fresh():
            return self._dataset  # type: ignore[return-value]

        try:
            payload = await self._provider.fetch_payload()
        except DataSourceError as e:
            if self._dataset is not None:
                logger.warning(
                    "Refresh from %s failed, serving cached dataset: %s",
                    self._provider.source_name,
                    e,
                )
                return self._dataset
            raise

        fetched_at = int(self._wall_clock() * 1000)
        dataset, report = parse_dataset(
            payload, source=self._provider.source_name, fetched_at=fetched_at
        )
        self._dataset = dataset
        self._last_report = report
        self._last_fetch = self._clock()
        return dataset

    def set_data_source(self, source_type: str) -> None:
        """Switch between ``api`` and ``static``; the cache is cleared."""
        self.update_config(type=source_type)

    def update_config(self, **changes: Any) -> None:
        """Apply ``changes`` to the data source config and rebuild the provider.

        Nothing changes when the new provider cannot be built.
        """
        config = replace(self._config, **changes)
        provider = build_provider(config)
        self._config = config
        self._provider = provider
        self._dataset = None
        self._last_fetch = 0.0
        logger.info("Data source set to %s", self._config.type)
