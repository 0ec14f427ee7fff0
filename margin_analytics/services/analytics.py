"""Analytics orchestration — fetches a dataset and runs the pure engine on it."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from ..analytics import (
    TimeRange,
    account_stats,
    aggregate,
    aggregate_pools,
    filter_liquidations,
    match_durations,
    price_risk_curve,
    query,
    range_start_ms,
    replay,
    summarize_durations,
)
from ..analytics.windows import MS_PER_DAY, MS_PER_HOUR, now_ms
from ..config import AppConfig
from ..interfaces.price_oracle import PriceOracle
from ..models import (
    AccountPosition,
    AccountStats,
    DurationSummary,
    KpiBundle,
    LiquidationEvent,
    LoanCycle,
    PoolSnapshot,
    RiskPoint,
)
from ..oracles import PythOracle
from ..providers import DataService, DataSourceError
from . import report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BorrowerDetail:
    position: AccountPosition
    cycles: tuple[LoanCycle, ...]
    summary: DurationSummary


class AnalyticsService:
    """Entry point for every read the CLI performs."""

    def __init__(
        self,
        config: AppConfig,
        data_service: DataService | None = None,
        oracle: PriceOracle | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config
        self._rule = config.analytics.liquidation_rule
        self._data = data_service or DataService(config.data_source)
        self._oracle: PriceOracle = oracle or PythOracle(config.price_oracle.pyth)
        self._clock = clock

    @property
    def data_service(self) -> DataService:
        return self._data

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def summary(self, time_range: TimeRange | str | None = None) -> KpiBundle:
        time_range = TimeRange(time_range or self._config.analytics.default_time_range)
        dataset = await self._data.get_dataset()
        now = self._clock()
        return aggregate(
            dataset.loans,
            dataset.liquidations,
            range_start_ms(time_range, now),
            now,
            accounts=dataset.accounts,
            rule=self._rule,
        )

    async def pools(self) -> tuple[PoolSnapshot, ...]:
        dataset = await self._data.get_dataset()
        return aggregate_pools(
            dataset.loans,
            dataset.liquidations,
            now=self._clock(),
            flow_window_ms=self._config.analytics.flow_window_hours * MS_PER_HOUR,
            risk_window_ms=self._config.analytics.risk_window_days * MS_PER_DAY,
            rule=self._rule,
        )

    async def positions(self) -> dict[str, AccountPosition]:
        dataset = await self._data.get_dataset()
        return replay(dataset.accounts, dataset.loans, dataset.liquidations, self._rule)

    async def borrowers(
        self,
        search: str = "",
        sort_field: str = "total_outstanding_debt",
        direction: str = "desc",
    ) -> list[AccountPosition]:
        positions = await self.positions()
        return query(positions.values(), search, sort_field, direction)

    async def borrower(self, account_id: str) -> BorrowerDetail | None:
        position = (await self.positions()).get(account_id)
        if position is None:
            return None
        cycles = match_durations(position, self._rule)
        return BorrowerDetail(
            position=position, cycles=cycles, summary=summarize_durations(cycles)
        )

    async def liquidations(
        self,
        pool: str = "all",
        default_ratio_min: float = 0.0,
        default_ratio_max: float = 100.0,
        min_amount: int = 0,
        time_range: TimeRange | str = TimeRange.ALL,
    ) -> tuple[list[LiquidationEvent], dict[str, AccountStats]]:
        """Filtered liquidation feed plus lifetime stats for each account in it."""
        dataset = await self._data.get_dataset()
        feed = filter_liquidations(
            dataset.liquidations,
            pool=pool,
            default_ratio_min=default_ratio_min,
            default_ratio_max=default_ratio_max,
            min_amount=min_amount,
            window_start_ms=range_start_ms(time_range, self._clock()),
        )
        stats = {
            account_id: account_stats(account_id, dataset.loans, dataset.liquidations)
            for account_id in dict.fromkeys(liq.account_id for liq in feed)
        }
        return feed, stats

    async def risk_curve(
        self, symbol: str, health_factor: float
    ) -> tuple[float, tuple[RiskPoint, ...]]:
        """Current oracle price for ``symbol`` and the projected health curve.

        Raises:
            DataSourceError: the oracle has no price for ``symbol``.
        """
        prices = await self._oracle.fetch_prices([symbol])
        price = prices.get(symbol)
        if price is None:
            raise DataSourceError(f"No oracle price for '{symbol}'")

        risk = self._config.risk
        return price, price_risk_curve(
            health_factor,
            price,
            risk.liquidation_risk_ratio,
            risk.price_change_range,
            risk.price_change_step,
        )

    # ------------------------------------------------------------------
    # Continuous refresh
    # ------------------------------------------------------------------

    async def render_summary(self, time_range: TimeRange | str | None = None) -> str:
        time_range = TimeRange(time_range or self._config.analytics.default_time_range)
        kpis = await self.summary(time_range)
        pools = await self.pools()
        return report.format_kpis(kpis, time_range.value) + "\n\n" + report.format_pools(pools)

    async def run_continuous(
        self,
        interval_seconds: int | None = None,
        time_range: TimeRange | str | None = None,
        emit: Callable[[str], None] = print,
        iterations: int | None = None,
    ) -> None:
        """Re-render the summary every interval with a wholesale refetch."""
        interval = interval_seconds or self._data.config.refresh_interval_seconds or 30
        logger.info("Starting continuous refresh (every %d seconds)", interval)

        done = 0
        while iterations is None or done < iterations:
            try:
                await self._data.get_dataset(force=True)
                emit(await self.render_summary(time_range))
            except DataSourceError as e:
                logger.error("Refresh failed: %s", e)
            done += 1
            if iterations is None or done < iterations:
                await asyncio.sleep(interval)
