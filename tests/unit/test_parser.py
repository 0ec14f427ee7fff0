"""Unit tests for raw record parsing — pure functions, no I/O."""
from __future__ import annotations

import pytest

from margin_analytics.models import LoanStatus
from margin_analytics.parser import (
    is_valid_dataset,
    parse_account,
    parse_dataset,
    parse_liquidation,
    parse_loan,
)


def _loan(**overrides) -> dict:
    raw = {
        "id": "L1",
        "margin_manager_id": "0xMGR",
        "margin_pool_id": "pool_sui",
        "loan_amount": 1000,
        "borrowed_at": 1_000,
        "repaid_at": None,
        "status": "borrowed",
    }
    raw.update(overrides)
    return raw


def _liquidation(**overrides) -> dict:
    raw = {
        "id": "Q1",
        "margin_manager_id": "0xMGR",
        "margin_pool_id": "pool_sui",
        "liquidation_amount": 500,
        "default_amount": 50,
        "pool_reward_amount": 5,
        "liquidator_base_reward": 1,
        "liquidator_quote_reward": 2,
        "liquidated_at": 9_000,
    }
    raw.update(overrides)
    return raw


class TestParseAccount:
    def test_valid(self) -> None:
        account = parse_account({"id": "0xM", "owner": "0xO", "created_at": 42})
        assert account is not None
        assert account.id == "0xM"
        assert account.owner == "0xO"
        assert account.created_at == 42

    def test_missing_owner(self) -> None:
        assert parse_account({"id": "0xM", "created_at": 42}) is None

    def test_empty_id(self) -> None:
        assert parse_account({"id": "", "owner": "0xO", "created_at": 42}) is None


class TestParseLoan:
    def test_open_loan(self) -> None:
        loan = parse_loan(_loan())
        assert loan is not None
        assert loan.status is LoanStatus.BORROWED
        assert loan.repaid_at is None
        assert loan.amount == 1000

    def test_repaid_loan(self) -> None:
        loan = parse_loan(_loan(status="repaid", repaid_at=5_000))
        assert loan is not None
        assert loan.is_repaid

    def test_string_integers_accepted(self) -> None:
        loan = parse_loan(_loan(loan_amount="1000", borrowed_at="1000"))
        assert loan is not None
        assert loan.amount == 1000

    def test_repaid_without_timestamp_rejected(self) -> None:
        assert parse_loan(_loan(status="repaid", repaid_at=None)) is None

    def test_timestamp_without_repaid_status_rejected(self) -> None:
        assert parse_loan(_loan(status="borrowed", repaid_at=5_000)) is None

    def test_repaid_before_borrowed_rejected(self) -> None:
        assert parse_loan(_loan(status="repaid", repaid_at=500)) is None

    def test_negative_amount_rejected(self) -> None:
        assert parse_loan(_loan(loan_amount=-1)) is None

    def test_fractional_amount_rejected(self) -> None:
        assert parse_loan(_loan(loan_amount=10.5)) is None

    def test_bool_amount_rejected(self) -> None:
        assert parse_loan(_loan(loan_amount=True)) is None

    def test_unknown_status_rejected(self) -> None:
        assert parse_loan(_loan(status="pending")) is None


class TestParseLiquidation:
    def test_valid(self) -> None:
        liq = parse_liquidation(_liquidation())
        assert liq is not None
        assert liq.liquidation_amount == 500
        assert liq.default_amount == 50
        assert liq.pool_reward_amount == 5
        assert liq.liquidator_quote_reward == 2

    def test_reward_fields_default_to_zero(self) -> None:
        raw = _liquidation()
        for key in ("pool_reward_amount", "liquidator_base_reward", "liquidator_quote_reward"):
            del raw[key]
        liq = parse_liquidation(raw)
        assert liq is not None
        assert liq.pool_reward_amount == 0

    def test_default_above_amount_rejected(self) -> None:
        assert parse_liquidation(_liquidation(default_amount=600)) is None

    def test_negative_default_rejected(self) -> None:
        assert parse_liquidation(_liquidation(default_amount=-1)) is None


class TestParseDataset:
    def test_parses_all_collections(self, sample_payload: dict) -> None:
        dataset, report = parse_dataset(sample_payload, source="api", fetched_at=7)
        assert len(dataset.accounts) == 2
        assert len(dataset.loans) == 2
        assert len(dataset.liquidations) == 1
        assert dataset.source == "api"
        assert dataset.fetched_at == 7
        assert report.total_skipped == 0

    def test_bad_records_are_skipped_not_fatal(
        self, sample_payload: dict, caplog: pytest.LogCaptureFixture
    ) -> None:
        sample_payload["loans"].append(_loan(id="BAD", loan_amount="lots"))
        sample_payload["managers"].append("not-a-dict")
        dataset, report = parse_dataset(sample_payload)
        assert len(dataset.loans) == 2
        assert len(dataset.accounts) == 2
        assert report.skipped_loans == 1
        assert report.skipped_accounts == 1
        assert report.total_skipped == 2
        assert "Dropped 2 malformed records" in caplog.text

    def test_missing_collections_are_empty(self) -> None:
        dataset, report = parse_dataset({})
        assert dataset.accounts == ()
        assert dataset.loans == ()
        assert dataset.liquidations == ()
        assert report.total_skipped == 0


class TestIsValidDataset:
    def test_valid(self, sample_payload: dict) -> None:
        assert is_valid_dataset(sample_payload)

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {"managers": [], "loans": []},
            {"managers": [], "loans": {}, "liquidations": []},
        ],
    )
    def test_invalid(self, payload) -> None:
        assert not is_valid_dataset(payload)

