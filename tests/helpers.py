"""Event builders and fixed timestamps shared by the test modules."""
from __future__ import annotations

from margin_analytics.models import LiquidationEvent, LoanEvent, LoanStatus

DAY = 24 * 60 * 60 * 1000
HOUR = 60 * 60 * 1000

# Fixed "now" used by every windowed test: 2024-06-01T00:00:00Z
NOW = 1_717_200_000_000


def make_loan(
    loan_id: str,
    account_id: str,
    pool_id: str,
    amount: int,
    borrowed_at: int,
    repaid_at: int | None = None,
    status: LoanStatus | None = None,
) -> LoanEvent:
    if status is None:
        status = LoanStatus.REPAID if repaid_at is not None else LoanStatus.BORROWED
    return LoanEvent(
        id=loan_id,
        account_id=account_id,
        pool_id=pool_id,
        amount=amount,
        borrowed_at=borrowed_at,
        status=status,
        repaid_at=repaid_at,
    )


def make_liquidation(
    liq_id: str,
    account_id: str,
    pool_id: str,
    amount: int,
    default: int,
    liquidated_at: int,
    pool_reward: int = 0,
) -> LiquidationEvent:
    return LiquidationEvent(
        id=liq_id,
        account_id=account_id,
        pool_id=pool_id,
        liquidation_amount=amount,
        default_amount=default,
        pool_reward_amount=pool_reward,
        liquidator_base_reward=0,
        liquidator_quote_reward=0,
        liquidated_at=liquidated_at,
    )
