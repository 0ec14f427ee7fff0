"""Plain-text rendering of analytics results."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from ..analytics.feed import default_ratio
from ..analytics.risk import (
    distance_to_liquidation,
    health_status,
    liquidation_price_change,
)
from ..models import (
    AccountPosition,
    AccountStats,
    Borrowed,
    Created,
    DurationSummary,
    HealthStatus,
    KpiBundle,
    Liquidated,
    LiquidationEvent,
    LoanCycle,
    PoolSnapshot,
    Repaid,
    RiskPoint,
    TimelineEvent,
)

_SPARK_CHARS = "▁▂▃▄▅▆▇█"


def format_ts(timestamp_ms: int) -> str:
    if not timestamp_ms:
        return "—"
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_id(identifier: str) -> str:
    if len(identifier) > 16:
        return f"{identifier[:10]}...{identifier[-6:]}"
    return identifier


def sparkline(values: Iterable[int]) -> str:
    values = list(values)
    if not values:
        return ""
    lo, hi = min(values), max(values)
    if hi == lo:
        return _SPARK_CHARS[0] * len(values)
    span = hi - lo
    return "".join(
        _SPARK_CHARS[int((v - lo) / span * (len(_SPARK_CHARS) - 1))] for v in values
    )


def format_kpis(kpis: KpiBundle, label: str) -> str:
    window = (
        "all time"
        if kpis.window_start_ms == 0
        else f"{format_ts(kpis.window_start_ms)} → {format_ts(kpis.window_end_ms)}"
    )
    return (
        f"📊 Margin KPIs ({label}, {window})\n"
        f"\n"
        f"New accounts (24h): {kpis.new_accounts:,}\n"
        f"Active accounts:    {kpis.active_accounts:,}\n"
        f"Borrowed:           {kpis.borrowed:,}\n"
        f"Repaid:             {kpis.repaid:,}\n"
        f"Liquidations:       {kpis.liquidation_count:,} ({kpis.liquidated_amount:,})\n"
        f"Defaults:           {kpis.default_sum:,}\n"
        f"Pool rewards:       {kpis.pool_rewards:,}\n"
        f"Net debt change:    {kpis.net_debt_change:+,}"
    )


def format_pools(pools: Iterable[PoolSnapshot]) -> str:
    lines = [
        f"{'Pool':<20} {'Outstanding':>16} {'Net 24h':>14} {'Liq 7d':>7} "
        f"{'Default %':>10} {'Rewards 7d':>12}  7d trend"
    ]
    for pool in pools:
        lines.append(
            f"{format_id(pool.pool_id):<20} {pool.outstanding_debt:>16,} "
            f"{pool.net_window:>+14,} {pool.liquidations_window:>7} "
            f"{pool.default_rate_window:>9.2f}% {pool.pool_rewards_window:>12,}  "
            f"{sparkline(pool.daily_series)}"
        )
    if len(lines) == 1:
        return "No pools found."
    return "\n".join(lines)


def format_borrowers(positions: Iterable[AccountPosition]) -> str:
    lines = [
        f"{'Account':<20} {'Owner':<20} {'Outstanding':>14} {'Borrows':>8} "
        f"{'Repays':>7} {'Liqs':>5} {'Repay %':>8}  Last activity"
    ]
    for p in positions:
        lines.append(
            f"{format_id(p.account_id):<20} {format_id(p.owner):<20} "
            f"{p.total_outstanding_debt:>14,} {p.borrow_count:>8} {p.repay_count:>7} "
            f"{p.liquidation_count:>5} {p.repay_ratio:>7.1f}%  {format_ts(p.last_activity)}"
        )
    if len(lines) == 1:
        return "No borrowers found."
    return "\n".join(lines)


def _format_event(event: TimelineEvent) -> str:
    when = format_ts(event.timestamp)
    if isinstance(event, Created):
        return f"{when}  created by {format_id(event.owner)}"
    if isinstance(event, Borrowed):
        return f"{when}  borrow       {event.amount:>14,}  {format_id(event.pool_id)}"
    if isinstance(event, Repaid):
        return f"{when}  repay        {event.amount:>14,}  {format_id(event.pool_id)}"
    if isinstance(event, Liquidated):
        return (
            f"{when}  liquidation  {event.liquidation_amount:>14,}  "
            f"{format_id(event.pool_id)} (default {event.default_amount:,})"
        )
    return f"{when}  {event!r}"


def format_borrower(
    position: AccountPosition,
    cycles: tuple[LoanCycle, ...],
    summary: DurationSummary,
) -> str:
    debt_lines = [
        f"  {format_id(pool)}: {max(0, debt):,}"
        for pool, debt in position.outstanding_debt_by_pool.items()
    ] or ["  —"]

    if cycles:
        duration_lines = [
            f"  Closed cycles: {summary.cycle_count}  "
            f"avg {summary.average_duration:.2f} days"
        ]
        duration_lines += [
            f"  {format_id(pool)}: {avg:.2f} days"
            for pool, avg in summary.average_by_pool.items()
        ]
    else:
        duration_lines = ["  No completed loan cycles yet"]

    return "\n".join(
        [
            f"━━ {position.account_id} ━━",
            f"Owner:         {position.owner}",
            f"First seen:    {format_ts(position.first_seen)} UTC",
            f"Last activity: {format_ts(position.last_activity)} UTC",
            f"Outstanding:   {position.total_outstanding_debt:,}",
            *debt_lines,
            f"Borrows {position.borrow_count} · Repays {position.repay_count} · "
            f"Liquidations {position.liquidation_count} · Defaults {position.default_sum:,} · "
            f"Repay ratio {position.repay_ratio:.1f}%",
            "",
            "Loan durations (FIFO estimate):",
            *duration_lines,
            "",
            "Timeline:",
            *(f"  {_format_event(e)}" for e in position.events),
        ]
    )


def format_liquidations(
    liquidations: Iterable[LiquidationEvent],
    stats: dict[str, AccountStats] | None = None,
) -> str:
    lines = []
    for liq in liquidations:
        lines.append(
            f"{format_ts(liq.liquidated_at)}  {format_id(liq.pool_id):<20} "
            f"{format_id(liq.account_id):<20} {liq.liquidation_amount:>14,} "
            f"default {default_ratio(liq):5.1f}%  pool reward {liq.pool_reward_amount:,}"
        )
        account = (stats or {}).get(liq.account_id)
        if account is not None:
            lines.append(
                f"    lifetime: borrowed {account.total_borrowed:,} · "
                f"repaid {account.total_repaid:,} · "
                f"{account.liquidation_count} liquidations · "
                f"repay ratio {account.repay_ratio:.1f}%"
            )
    return "\n".join(lines) if lines else "No liquidations match the filters."


def format_risk_curve(symbol: str, points: Iterable[RiskPoint]) -> str:
    lines = [f"{'Δ price':>8} {symbol + ' price':>14} {'Health':>8}"]
    for point in points:
        flag = "  ⚠️ liquidatable" if point.liquidatable else ""
        lines.append(
            f"{point.price_change_pct:>+7.1f}% {point.price:>14.4f} "
            f"{point.health_factor:>8.3f}{flag}"
        )
    return "\n".join(lines)


_STATUS_ICONS = {
    HealthStatus.HEALTHY: "🟢",
    HealthStatus.WARNING: "🟡",
    HealthStatus.DANGER: "🟠",
    HealthStatus.LIQUIDATABLE: "🔴",
}


def format_position_health(health_factor: float, liquidation_risk_ratio: float) -> str:
    status = health_status(health_factor, liquidation_risk_ratio)
    distance = distance_to_liquidation(health_factor, liquidation_risk_ratio)
    move = liquidation_price_change(health_factor, liquidation_risk_ratio)
    return "\n".join(
        [
            f"Health factor: {health_factor:.3f} "
            f"(threshold {liquidation_risk_ratio:.3f}) {_STATUS_ICONS[status]} {status.value}",
            f"Distance to liquidation: {distance:.1f}%",
            f"Liquidation threshold reached at a {move:+.1f}% price move",
        ]
    )
