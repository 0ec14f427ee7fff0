"""Unit tests for the liquidation feed and account stats."""
from __future__ import annotations

import pytest

from margin_analytics.analytics.feed import (
    account_stats,
    default_ratio,
    filter_liquidations,
)
from tests.helpers import DAY, NOW, make_liquidation, make_loan


@pytest.fixture()
def feed():
    return [
        make_liquidation("Q1", "A", "pool_sui", 1_000, 0, NOW - 3 * DAY),
        make_liquidation("Q2", "B", "pool_usdc", 2_000, 1_000, NOW - 1 * DAY),
        make_liquidation("Q3", "A", "pool_sui", 500, 100, NOW - 10 * DAY),
    ]


class TestDefaultRatio:
    def test_percent(self) -> None:
        assert default_ratio(make_liquidation("Q", "A", "P", 400, 100, 0)) == pytest.approx(25.0)

    def test_zero_amount(self) -> None:
        assert default_ratio(make_liquidation("Q", "A", "P", 0, 0, 0)) == 0.0


class TestFilterLiquidations:
    def test_newest_first(self, feed) -> None:
        assert [liq.id for liq in filter_liquidations(feed)] == ["Q2", "Q1", "Q3"]

    def test_pool_filter(self, feed) -> None:
        assert [liq.id for liq in filter_liquidations(feed, pool="pool_sui")] == ["Q1", "Q3"]

    def test_default_ratio_bounds(self, feed) -> None:
        result = filter_liquidations(feed, default_ratio_min=10.0, default_ratio_max=30.0)
        assert [liq.id for liq in result] == ["Q3"]

    def test_min_amount(self, feed) -> None:
        assert [liq.id for liq in filter_liquidations(feed, min_amount=1_000)] == ["Q2", "Q1"]

    def test_window_start(self, feed) -> None:
        result = filter_liquidations(feed, window_start_ms=NOW - 7 * DAY)
        assert [liq.id for liq in result] == ["Q2", "Q1"]


class TestAccountStats:
    def test_lifetime_totals(self) -> None:
        loans = [
            make_loan("L1", "A", "P", 1_000, 1, 2),
            make_loan("L2", "A", "P", 3_000, 3),
            make_loan("L3", "B", "P", 9_999, 3),
        ]
        liqs = [make_liquidation("Q1", "A", "P", 3_000, 300, 5)]
        stats = account_stats("A", loans, liqs)
        assert stats.total_borrowed == 4_000
        assert stats.total_repaid == 1_000
        assert stats.borrow_count == 2
        assert stats.repay_count == 1
        assert stats.liquidation_count == 1
        assert stats.total_defaults == 300
        assert stats.repay_ratio == pytest.approx(25.0)

    def test_unknown_account(self) -> None:
        stats = account_stats("NOBODY", [], [])
        assert stats.total_borrowed == 0
        assert stats.repay_ratio == 0.0
