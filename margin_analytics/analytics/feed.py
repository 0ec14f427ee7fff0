"""Liquidation feed filtering and per-account lifetime stats."""
from __future__ import annotations

from typing import Iterable

from ..models import AccountStats, LiquidationEvent, LoanEvent, LoanStatus

ALL_POOLS = "all"


def default_ratio(liq: LiquidationEvent) -> float:
    """Defaulted share of a liquidation in percent; 0 for an empty liquidation."""
    if liq.liquidation_amount <= 0:
        return 0.0
    return liq.default_amount / liq.liquidation_amount * 100


def filter_liquidations(
    liquidations: Iterable[LiquidationEvent],
    pool: str = ALL_POOLS,
    default_ratio_min: float = 0.0,
    default_ratio_max: float = 100.0,
    min_amount: int = 0,
    window_start_ms: int = 0,
) -> list[LiquidationEvent]:
    """Apply the feed filters and return the matches newest first."""
    selected = []
    for liq in liquidations:
        if window_start_ms and liq.liquidated_at < window_start_ms:
            continue
        if pool != ALL_POOLS and liq.pool_id != pool:
            continue
        ratio = default_ratio(liq)
        if ratio < default_ratio_min or ratio > default_ratio_max:
            continue
        if liq.liquidation_amount < min_amount:
            continue
        selected.append(liq)

    selected.sort(key=lambda liq: liq.liquidated_at, reverse=True)
    return selected


def account_stats(
    account_id: str,
    loans: Iterable[LoanEvent],
    liquidations: Iterable[LiquidationEvent],
) -> AccountStats:
    own_loans = [loan for loan in loans if loan.account_id == account_id]
    own_liqs = [liq for liq in liquidations if liq.account_id == account_id]

    total_borrowed = sum(loan.amount for loan in own_loans)
    repaid_loans = [loan for loan in own_loans if loan.status is LoanStatus.REPAID]
    total_repaid = sum(loan.amount for loan in repaid_loans)

    return AccountStats(
        account_id=account_id,
        total_borrowed=total_borrowed,
        total_repaid=total_repaid,
        borrow_count=len(own_loans),
        repay_count=len(repaid_loans),
        liquidation_count=len(own_liqs),
        total_defaults=sum(liq.default_amount for liq in own_liqs),
        repay_ratio=total_repaid / total_borrowed * 100 if total_borrowed > 0 else 0.0,
    )
