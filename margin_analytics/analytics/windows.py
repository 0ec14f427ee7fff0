"""Windowed KPI and per-pool aggregation.

Every function filters the raw events itself on each call; nothing here reads
the ledger replay. ``window_start_ms == 0`` means "all time".
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Sequence

from ..models import (
    Account,
    KpiBundle,
    LiquidationEvent,
    LiquidationRule,
    LoanEvent,
    LoanStatus,
    PoolSnapshot,
)

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

_COUNTED_STATUSES = frozenset(
    {LoanStatus.BORROWED, LoanStatus.REPAID, LoanStatus.LIQUIDATED}
)


class TimeRange(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"
    ALL = "all"


_RANGE_SPAN_MS: dict[TimeRange, int] = {
    TimeRange.LAST_24H: MS_PER_DAY,
    TimeRange.LAST_7D: 7 * MS_PER_DAY,
    TimeRange.LAST_30D: 30 * MS_PER_DAY,
}


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def range_start_ms(time_range: TimeRange | str, now: int | None = None) -> int:
    """Window start for a named range; 0 for ``all``."""
    time_range = TimeRange(time_range)
    if time_range is TimeRange.ALL:
        return 0
    now = now_ms() if now is None else now
    return now - _RANGE_SPAN_MS[time_range]


def in_window(timestamp: int | None, start_ms: int, end_ms: int) -> bool:
    if timestamp is None:
        return False
    if start_ms == 0:
        return True
    return start_ms <= timestamp <= end_ms


def aggregate(
    loans: Iterable[LoanEvent],
    liquidations: Iterable[LiquidationEvent],
    window_start_ms: int,
    window_end_ms: int | None = None,
    accounts: Iterable[Account] = (),
    rule: LiquidationRule = LiquidationRule.RECOVERED,
) -> KpiBundle:
    """Scalar KPIs for one window.

    ``borrowed`` counts loans by ``borrowed_at`` and ``repaid`` by
    ``repaid_at``, so a loan taken before the window but repaid inside it
    still counts as repaid-in-window. ``new_accounts`` is always the trailing
    24h ending at ``window_end_ms``; ``active_accounts`` counts distinct
    owners of accounts created inside the window.
    """
    end = now_ms() if window_end_ms is None else window_end_ms
    start = window_start_ms

    borrowed = 0
    repaid = 0
    for loan in loans:
        if loan.status in _COUNTED_STATUSES and in_window(loan.borrowed_at, start, end):
            borrowed += loan.amount
        if in_window(loan.repaid_at, start, end):
            repaid += loan.amount

    liquidation_count = 0
    liquidated_amount = 0
    liquidation_repaid = 0
    default_sum = 0
    pool_rewards = 0
    for liq in liquidations:
        if not in_window(liq.liquidated_at, start, end):
            continue
        liquidation_count += 1
        liquidated_amount += liq.liquidation_amount
        liquidation_repaid += liq.debt_reduction(rule)
        default_sum += liq.default_amount
        pool_rewards += liq.pool_reward_amount

    new_accounts = 0
    active_owners: set[str] = set()
    for account in accounts:
        if end - MS_PER_DAY < account.created_at <= end:
            new_accounts += 1
        if in_window(account.created_at, start, end):
            active_owners.add(account.owner)

    return KpiBundle(
        window_start_ms=start,
        window_end_ms=end,
        borrowed=borrowed,
        repaid=repaid,
        liquidation_count=liquidation_count,
        liquidated_amount=liquidated_amount,
        liquidation_repaid=liquidation_repaid,
        default_sum=default_sum,
        pool_rewards=pool_rewards,
        net_debt_change=borrowed - repaid - liquidation_repaid,
        new_accounts=new_accounts,
        active_accounts=len(active_owners),
    )


def _daily_buckets(now: int, days: int = 7) -> list[tuple[int, int]]:
    """Half-open ``[start, end)`` 24h buckets ending at ``now``, oldest first."""
    return [
        (now - (i + 1) * MS_PER_DAY, now - i * MS_PER_DAY)
        for i in range(days - 1, -1, -1)
    ]


def _pool_snapshot(
    pool_id: str,
    loans: Sequence[LoanEvent],
    liquidations: Sequence[LiquidationEvent],
    now: int,
    flow_start: int,
    risk_start: int,
    rule: LiquidationRule,
) -> PoolSnapshot:
    # Outstanding debt ignores every window.
    total_borrowed = sum(l.amount for l in loans)
    total_repaid = sum(l.amount for l in loans if l.repaid_at is not None)
    liquidation_reduction = sum(liq.debt_reduction(rule) for liq in liquidations)
    outstanding = max(0, total_borrowed - total_repaid - liquidation_reduction)

    borrowed_window = sum(l.amount for l in loans if flow_start <= l.borrowed_at <= now)
    repaid_window = sum(
        l.amount
        for l in loans
        if l.repaid_at is not None and flow_start <= l.repaid_at <= now
    )

    recent_liqs = [liq for liq in liquidations if risk_start <= liq.liquidated_at <= now]
    liquidation_volume = sum(liq.liquidation_amount for liq in recent_liqs)
    defaults = sum(liq.default_amount for liq in recent_liqs)
    default_rate = defaults / liquidation_volume * 100 if liquidation_volume > 0 else 0.0

    daily_series: list[int] = []
    daily_liquidations: list[int] = []
    for day_start, day_end in _daily_buckets(now):
        day_borrowed = sum(l.amount for l in loans if day_start <= l.borrowed_at < day_end)
        day_repaid = sum(
            l.amount
            for l in loans
            if l.repaid_at is not None and day_start <= l.repaid_at < day_end
        )
        daily_series.append(day_borrowed - day_repaid)
        daily_liquidations.append(
            sum(1 for liq in liquidations if day_start <= liq.liquidated_at < day_end)
        )

    return PoolSnapshot(
        pool_id=pool_id,
        outstanding_debt=outstanding,
        borrowed_window=borrowed_window,
        repaid_window=repaid_window,
        net_window=borrowed_window - repaid_window,
        liquidations_window=len(recent_liqs),
        default_rate_window=default_rate,
        pool_rewards_window=sum(liq.pool_reward_amount for liq in recent_liqs),
        daily_series=tuple(daily_series),
        daily_liquidations=tuple(daily_liquidations),
    )


def aggregate_pools(
    loans: Iterable[LoanEvent],
    liquidations: Iterable[LiquidationEvent],
    now: int | None = None,
    flow_window_ms: int = MS_PER_DAY,
    risk_window_ms: int = 7 * MS_PER_DAY,
    rule: LiquidationRule = LiquidationRule.RECOVERED,
) -> tuple[PoolSnapshot, ...]:
    """One snapshot per pool seen in either collection, largest debt first.

    Borrow/repay deltas cover the trailing ``flow_window_ms``; liquidation
    count, pool rewards and default rate cover ``risk_window_ms``. The daily
    series always covers the trailing week, whatever the windows.
    """
    now = now_ms() if now is None else now
    loans = list(loans)
    liquidations = list(liquidations)

    loans_by_pool: dict[str, list[LoanEvent]] = {}
    liqs_by_pool: dict[str, list[LiquidationEvent]] = {}
    for loan in loans:
        loans_by_pool.setdefault(loan.pool_id, []).append(loan)
    for liq in liquidations:
        liqs_by_pool.setdefault(liq.pool_id, []).append(liq)

    pool_ids = list(dict.fromkeys([*loans_by_pool, *liqs_by_pool]))
    snapshots = [
        _pool_snapshot(
            pool_id,
            loans_by_pool.get(pool_id, []),
            liqs_by_pool.get(pool_id, []),
            now,
            now - flow_window_ms,
            now - risk_window_ms,
            rule,
        )
        for pool_id in pool_ids
    ]
    snapshots.sort(key=lambda s: s.outstanding_debt, reverse=True)
    return tuple(snapshots)
