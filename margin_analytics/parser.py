"""Pure parsing functions for raw margin event records — no I/O.

Providers deliver records with the indexer's field names::

    margin_managers:      id, owner, created_at
    margin_loans:         id, margin_manager_id, margin_pool_id, loan_amount,
                          borrowed_at, repaid_at, status
    margin_liquidations:  id, margin_manager_id, margin_pool_id,
                          liquidation_amount, default_amount, pool_reward_amount,
                          liquidator_base_reward, liquidator_quote_reward,
                          liquidated_at

A record that cannot be parsed is dropped with a warning; one bad record
never aborts the rest of the dataset.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .models import Account, Dataset, LiquidationEvent, LoanEvent, LoanStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseReport:
    """Counts of records dropped while parsing a dataset."""

    skipped_accounts: int = 0
    skipped_loans: int = 0
    skipped_liquidations: int = 0

    @property
    def total_skipped(self) -> int:
        return self.skipped_accounts + self.skipped_loans + self.skipped_liquidations


def _as_int(value: Any) -> int:
    """Coerce an integer-valued field; bools and fractional values are rejected."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"expected integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected integer, got {value!r}")
        return int(value)
    return int(value)


def _as_str(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"expected non-empty string, got {value!r}")
    return value


def parse_account(raw: dict[str, Any]) -> Account | None:
    try:
        return Account(
            id=_as_str(raw["id"]),
            owner=_as_str(raw["owner"]),
            created_at=_as_int(raw["created_at"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed account record %r: %s", raw.get("id"), e)
        return None


def parse_loan(raw: dict[str, Any]) -> LoanEvent | None:
    """Parse a loan record, enforcing the repaid_at/status invariants."""
    try:
        status = LoanStatus(raw["status"])
        amount = _as_int(raw["loan_amount"])
        borrowed_at = _as_int(raw["borrowed_at"])
        repaid_raw = raw.get("repaid_at")
        repaid_at = _as_int(repaid_raw) if repaid_raw is not None else None

        if amount < 0:
            raise ValueError(f"negative loan amount {amount}")
        if (repaid_at is not None) != (status is LoanStatus.REPAID):
            raise ValueError(
                f"repaid_at={repaid_at!r} inconsistent with status '{status.value}'"
            )
        if repaid_at is not None and repaid_at < borrowed_at:
            raise ValueError("repaid_at precedes borrowed_at")

        return LoanEvent(
            id=_as_str(raw["id"]),
            account_id=_as_str(raw["margin_manager_id"]),
            pool_id=_as_str(raw["margin_pool_id"]),
            amount=amount,
            borrowed_at=borrowed_at,
            status=status,
            repaid_at=repaid_at,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed loan record %r: %s", raw.get("id"), e)
        return None


def parse_liquidation(raw: dict[str, Any]) -> LiquidationEvent | None:
    try:
        liquidation_amount = _as_int(raw["liquidation_amount"])
        default_amount = _as_int(raw["default_amount"])
        if not 0 <= default_amount <= liquidation_amount:
            raise ValueError(
                f"default_amount {default_amount} outside [0, {liquidation_amount}]"
            )

        return LiquidationEvent(
            id=_as_str(raw["id"]),
            account_id=_as_str(raw["margin_manager_id"]),
            pool_id=_as_str(raw["margin_pool_id"]),
            liquidation_amount=liquidation_amount,
            default_amount=default_amount,
            pool_reward_amount=_as_int(raw.get("pool_reward_amount", 0)),
            liquidator_base_reward=_as_int(raw.get("liquidator_base_reward", 0)),
            liquidator_quote_reward=_as_int(raw.get("liquidator_quote_reward", 0)),
            liquidated_at=_as_int(raw["liquidated_at"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed liquidation record %r: %s", raw.get("id"), e)
        return None


def _parse_all(records: Iterable[Any], parse) -> tuple[tuple, int]:
    parsed = []
    skipped = 0
    for raw in records or ():
        item = parse(raw) if isinstance(raw, dict) else None
        if item is None:
            skipped += 1
        else:
            parsed.append(item)
    return tuple(parsed), skipped


def parse_dataset(
    payload: dict[str, Any], source: str = "", fetched_at: int = 0
) -> tuple[Dataset, ParseReport]:
    """Parse a ``{managers, loans, liquidations}`` payload into a Dataset."""
    accounts, skipped_accounts = _parse_all(payload.get("managers", []), parse_account)
    loans, skipped_loans = _parse_all(payload.get("loans", []), parse_loan)
    liquidations, skipped_liqs = _parse_all(
        payload.get("liquidations", []), parse_liquidation
    )

    report = ParseReport(
        skipped_accounts=skipped_accounts,
        skipped_loans=skipped_loans,
        skipped_liquidations=skipped_liqs,
    )
    if report.total_skipped:
        logger.warning(
            "Dropped %d malformed records (accounts=%d loans=%d liquidations=%d)",
            report.total_skipped,
            skipped_accounts,
            skipped_loans,
            skipped_liqs,
        )

    dataset = Dataset(
        accounts=accounts,
        loans=loans,
        liquidations=liquidations,
        source=source,
        fetched_at=fetched_at,
    )
    return dataset, report


def is_valid_dataset(payload: Any) -> bool:
    """Check the top-level shape of a snapshot payload."""
    return (
        isinstance(payload, dict)
        and isinstance(payload.get("managers"), list)
        and isinstance(payload.get("loans"), list)
        and isinstance(payload.get("liquidations"), list)
    )
