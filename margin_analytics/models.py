"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class LoanStatus(str, Enum):
    BORROWED = "borrowed"
    REPAID = "repaid"
    LIQUIDATED = "liquidated"


class LiquidationRule(str, Enum):
    """How a liquidation reduces outstanding debt.

    WRITE_OFF: the full liquidation amount leaves the books; the default part
        is a realised loss.
    RECOVERED: only ``liquidation_amount - default_amount`` is taken off, the
        default stays on the books as unrecovered debt.
    """

    WRITE_OFF = "write_off"
    RECOVERED = "recovered"


class HealthStatus(str, Enum):
    """Risk band of a position relative to its liquidation threshold."""

    HEALTHY = "healthy"
    WARNING = "warning"
    DANGER = "danger"
    LIQUIDATABLE = "liquidatable"


# ---------------------------------------------------------------------------
# Raw events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Account:
    """A margin account (manager) as created on-chain."""

    id: str
    owner: str
    created_at: int


@dataclass(frozen=True)
class LoanEvent:
    """Single borrow, optionally later marked repaid."""

    id: str
    account_id: str
    pool_id: str
    amount: int
    borrowed_at: int
    status: LoanStatus
    repaid_at: int | None = None

    @property
    def is_repaid(self) -> bool:
        return self.status is LoanStatus.REPAID and self.repaid_at is not None


@dataclass(frozen=True)
class LiquidationEvent:
    id: str
    account_id: str
    pool_id: str
    liquidation_amount: int
    default_amount: int
    pool_reward_amount: int
    liquidator_base_reward: int
    liquidator_quote_reward: int
    liquidated_at: int

    @property
    def recovered_amount(self) -> int:
        return self.liquidation_amount - self.default_amount

    def debt_reduction(self, rule: LiquidationRule) -> int:
        """Amount of debt this liquidation takes off the books under ``rule``."""
        if rule is LiquidationRule.RECOVERED:
            return self.recovered_amount
        return self.liquidation_amount


# ---------------------------------------------------------------------------
# Timeline events (tagged variants)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Created:
    timestamp: int
    owner: str
    kind: str = field(default="created", init=False)


@dataclass(frozen=True)
class Borrowed:
    timestamp: int
    pool_id: str
    amount: int
    loan_id: str
    kind: str = field(default="borrow", init=False)


@dataclass(frozen=True)
class Repaid:
    timestamp: int
    pool_id: str
    amount: int
    loan_id: str
    kind: str = field(default="repay", init=False)


@dataclass(frozen=True)
class Liquidated:
    timestamp: int
    pool_id: str
    liquidation_amount: int
    default_amount: int
    liquidation_id: str
    kind: str = field(default="liquidation", init=False)


TimelineEvent = Union[Created, Borrowed, Repaid, Liquidated]


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountPosition:
    """Event-sourced state of one account, rebuilt on every replay."""

    account_id: str
    owner: str
    first_seen: int
    last_activity: int
    pools_used: tuple[str, ...] = ()
    outstanding_debt_by_pool: dict[str, int] = field(default_factory=dict)
    total_outstanding_debt: int = 0
    total_borrowed: int = 0
    total_repaid: int = 0
    borrow_count: int = 0
    repay_count: int = 0
    liquidation_count: int = 0
    default_sum: int = 0
    repay_ratio: float = 0.0
    events: tuple[TimelineEvent, ...] = ()


@dataclass(frozen=True)
class LoanCycle:
    """A closed borrow → repay/liquidation match."""

    pool_id: str
    amount_matched: int
    duration: float  # days


@dataclass(frozen=True)
class DurationSummary:
    cycle_count: int
    average_duration: float
    average_by_pool: dict[str, float] = field(default_factory=dict)
    recent: tuple[LoanCycle, ...] = ()


@dataclass(frozen=True)
class KpiBundle:
    """Scalar KPIs for one time window."""

    window_start_ms: int
    window_end_ms: int
    borrowed: int = 0
    repaid: int = 0
    liquidation_count: int = 0
    liquidated_amount: int = 0
    liquidation_repaid: int = 0
    default_sum: int = 0
    pool_rewards: int = 0
    net_debt_change: int = 0
    new_accounts: int = 0
    active_accounts: int = 0


@dataclass(frozen=True)
class PoolSnapshot:
    pool_id: str
    outstanding_debt: int = 0
    borrowed_window: int = 0
    repaid_window: int = 0
    net_window: int = 0
    liquidations_window: int = 0
    default_rate_window: float = 0.0
    pool_rewards_window: int = 0
    daily_series: tuple[int, ...] = ()
    daily_liquidations: tuple[int, ...] = ()


@dataclass(frozen=True)
class AccountStats:
    """Lifetime totals for one account, as shown next to a liquidation."""

    account_id: str
    total_borrowed: int = 0
    total_repaid: int = 0
    borrow_count: int = 0
    repay_count: int = 0
    liquidation_count: int = 0
    total_defaults: int = 0
    repay_ratio: float = 0.0


@dataclass(frozen=True)
class RiskPoint:
    price_change_pct: float
    price: float
    health_factor: float
    liquidatable: bool


@dataclass(frozen=True)
class Dataset:
    """The three raw collections as delivered by a data provider."""

    accounts: tuple[Account, ...] = ()
    loans: tuple[LoanEvent, ...] = ()
    liquidations: tuple[LiquidationEvent, ...] = ()
    source: str = ""
    fetched_at: int = 0
