"""FIFO loan-duration estimates.

Repayments and liquidations are assumed to settle the oldest open borrow in
the same pool first. The protocol does not guarantee that order, so the
resulting durations are estimates.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from ..models import (
    AccountPosition,
    Borrowed,
    Created,
    DurationSummary,
    Liquidated,
    LiquidationRule,
    LoanCycle,
    Repaid,
    TimelineEvent,
)

MS_PER_DAY = 1000 * 60 * 60 * 24


@dataclass
class _Bucket:
    amount: int
    timestamp: int


def _settled_amount(event: TimelineEvent, rule: LiquidationRule) -> int:
    """Amount a repay/liquidation event drains from the open buckets."""
    if isinstance(event, Repaid):
        return event.amount
    if isinstance(event, Liquidated):
        if rule is LiquidationRule.RECOVERED:
            return event.liquidation_amount - event.default_amount
        return event.liquidation_amount
    return 0


def match_durations(
    position: AccountPosition | None,
    rule: LiquidationRule = LiquidationRule.RECOVERED,
) -> tuple[LoanCycle, ...]:
    """Match borrows to later repayments/liquidations oldest-first.

    A bucket that is fully drained closes a LoanCycle; a partially drained
    bucket keeps its remainder at the front of the queue. Settlement in
    excess of all open buckets for the pool is discarded.
    """
    if position is None or not position.events:
        return ()

    buckets_by_pool: dict[str, deque[_Bucket]] = {}
    cycles: list[LoanCycle] = []

    for event in position.events:
        if isinstance(event, Created):
            continue
        if isinstance(event, Borrowed):
            if event.amount > 0:
                buckets_by_pool.setdefault(event.pool_id, deque()).append(
                    _Bucket(amount=event.amount, timestamp=event.timestamp)
                )
            continue

        remaining = _settled_amount(event, rule)
        queue = buckets_by_pool.get(event.pool_id)
        while remaining > 0 and queue:
            bucket = queue[0]
            taken = min(remaining, bucket.amount)
            if taken == bucket.amount:
                cycles.append(
                    LoanCycle(
                        pool_id=event.pool_id,
                        amount_matched=taken,
                        duration=(event.timestamp - bucket.timestamp) / MS_PER_DAY,
                    )
                )
                queue.popleft()
            else:
                bucket.amount -= taken
            remaining -= taken

    return tuple(cycles)


def summarize_durations(cycles: tuple[LoanCycle, ...], recent: int = 10) -> DurationSummary:
    """Average duration overall and per pool, plus the last ``recent`` cycles."""
    if not cycles:
        return DurationSummary(cycle_count=0, average_duration=0.0)

    by_pool: dict[str, list[float]] = {}
    for cycle in cycles:
        by_pool.setdefault(cycle.pool_id, []).append(cycle.duration)

    return DurationSummary(
        cycle_count=len(cycles),
        average_duration=sum(c.duration for c in cycles) / len(cycles),
        average_by_pool={pool: sum(d) / len(d) for pool, d in by_pool.items()},
        recent=tuple(cycles[-recent:]) if recent > 0 else (),
    )
