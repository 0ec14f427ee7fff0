"""Ledger replay — folds raw events into one AccountPosition per account."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..models import (
    Account,
    AccountPosition,
    Borrowed,
    Created,
    Liquidated,
    LiquidationEvent,
    LiquidationRule,
    LoanEvent,
    Repaid,
    TimelineEvent,
)

logger = logging.getLogger(__name__)


@dataclass
class _Builder:
    """Mutable accumulator, private to a single replay() call."""

    account: Account
    last_activity: int
    pools_used: list[str] = field(default_factory=list)
    debt_by_pool: dict[str, int] = field(default_factory=dict)
    total_borrowed: int = 0
    total_repaid: int = 0
    borrow_count: int = 0
    repay_count: int = 0
    liquidation_count: int = 0
    default_sum: int = 0
    events: list[TimelineEvent] = field(default_factory=list)

    def touch(self, timestamp: int) -> None:
        self.last_activity = max(self.last_activity, timestamp)

    def add_loan(self, loan: LoanEvent) -> None:
        self.touch(loan.borrowed_at)
        if loan.pool_id not in self.pools_used:
            self.pools_used.append(loan.pool_id)

        self.debt_by_pool[loan.pool_id] = self.debt_by_pool.get(loan.pool_id, 0) + loan.amount
        self.total_borrowed += loan.amount
        self.borrow_count += 1
        self.events.append(
            Borrowed(
                timestamp=loan.borrowed_at,
                pool_id=loan.pool_id,
                amount=loan.amount,
                loan_id=loan.id,
            )
        )

        if loan.is_repaid:
            self.touch(loan.repaid_at)
            self.debt_by_pool[loan.pool_id] -= loan.amount
            self.total_repaid += loan.amount
            self.repay_count += 1
            self.events.append(
                Repaid(
                    timestamp=loan.repaid_at,
                    pool_id=loan.pool_id,
                    amount=loan.amount,
                    loan_id=loan.id,
                )
            )

    def add_liquidation(self, liq: LiquidationEvent, rule: LiquidationRule) -> None:
        self.touch(liq.liquidated_at)
        self.liquidation_count += 1
        self.default_sum += liq.default_amount

        # Pools with no debt entry, or a zero balance, are left untouched.
        if self.debt_by_pool.get(liq.pool_id):
            self.debt_by_pool[liq.pool_id] -= liq.debt_reduction(rule)

        self.events.append(
            Liquidated(
                timestamp=liq.liquidated_at,
                pool_id=liq.pool_id,
                liquidation_amount=liq.liquidation_amount,
                default_amount=liq.default_amount,
                liquidation_id=liq.id,
            )
        )

    def build(self) -> AccountPosition:
        total_outstanding = sum(max(0, debt) for debt in self.debt_by_pool.values())
        repay_ratio = (
            self.total_repaid / self.total_borrowed * 100 if self.total_borrowed > 0 else 0.0
        )
        return AccountPosition(
            account_id=self.account.id,
            owner=self.account.owner,
            first_seen=self.account.created_at,
            last_activity=self.last_activity,
            pools_used=tuple(self.pools_used),
            outstanding_debt_by_pool=dict(self.debt_by_pool),
            total_outstanding_debt=total_outstanding,
            total_borrowed=self.total_borrowed,
            total_repaid=self.total_repaid,
            borrow_count=self.borrow_count,
            repay_count=self.repay_count,
            liquidation_count=self.liquidation_count,
            default_sum=self.default_sum,
            repay_ratio=repay_ratio,
            # sorted() is stable: same-timestamp events keep insertion order
            events=tuple(sorted(self.events, key=lambda e: e.timestamp)),
        )


def replay(
    accounts: Iterable[Account],
    loans: Iterable[LoanEvent],
    liquidations: Iterable[LiquidationEvent],
    rule: LiquidationRule = LiquidationRule.RECOVERED,
) -> dict[str, AccountPosition]:
    """Rebuild every account's position from the three event collections.

    Loan and liquidation events for accounts without an account record are
    skipped. The result is a fresh mapping on every call; inputs are never
    mutated.
    """
    builders: dict[str, _Builder] = {}
    for account in accounts:
        builders[account.id] = _Builder(
            account=account,
            last_activity=account.created_at,
            events=[Created(timestamp=account.created_at, owner=account.owner)],
        )

    orphans = 0
    for loan in loans:
        builder = builders.get(loan.account_id)
        if builder is None:
            orphans += 1
            continue
        builder.add_loan(loan)

    for liq in liquidations:
        builder = builders.get(liq.account_id)
        if builder is None:
            orphans += 1
            continue
        builder.add_liquidation(liq, rule)

    if orphans:
        logger.debug("Skipped %d events with no matching account record", orphans)

    return {account_id: b.build() for account_id, b in builders.items()}
