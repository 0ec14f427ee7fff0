"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from margin_analytics.config import (
    AnalyticsConfig,
    AppConfig,
    DataSourceConfig,
    PriceOracleConfig,
    PythConfig,
    RiskConfig,
)
from margin_analytics.models import Account, LiquidationEvent, LoanEvent, LoanStatus
from tests.helpers import DAY, HOUR, NOW, make_liquidation, make_loan


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_data_source_config(tmp_path: Path) -> DataSourceConfig:
    return DataSourceConfig(
        type="api",
        api_url="http://indexer.example.com",
        static_data_path=str(tmp_path / "snapshot.json"),
        refresh_interval_seconds=30,
        timeout=5,
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        feeds={"SUI": "aaa111", "WETH": "bbb222", "USDC": "ccc333"},
    )


@pytest.fixture()
def sample_app_config(
    sample_data_source_config: DataSourceConfig, sample_pyth_config: PythConfig
) -> AppConfig:
    return AppConfig(
        data_source=sample_data_source_config,
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
        analytics=AnalyticsConfig(),
        risk=RiskConfig(liquidation_risk_ratio=1.1),
    )


SAMPLE_YAML = textwrap.dedent("""\
    data_source:
      type: static
      api_url: "http://indexer.example.com"
      static_data_path: "data/snapshot.json"
      refresh_interval_seconds: 10
      timeout: 5
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {SUI: "aaa", WETH: "bbb"}
    analytics:
      default_time_range: 7d
      liquidation_rule: write_off
      flow_window_hours: 12
      risk_window_days: 3
    risk:
      liquidation_risk_ratio: 1.2
      price_change_range: 20
      price_change_step: 2.5
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


@pytest.fixture(autouse=True)
def _clear_source_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "MARGIN_DATA_SOURCE",
        "MARGIN_API_URL",
        "MARGIN_STATIC_DATA_PATH",
        "MARGIN_REFRESH_INTERVAL",
    ):
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Event fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_accounts() -> tuple[Account, ...]:
    return (
        Account(id="0xMGR_A", owner="0xOWNER_ALICE", created_at=NOW - 40 * DAY),
        Account(id="0xMGR_B", owner="0xOWNER_BOB", created_at=NOW - 10 * DAY),
        Account(id="0xMGR_C", owner="0xOWNER_ALICE", created_at=NOW - 2 * HOUR),
    )


@pytest.fixture()
def sample_loans() -> tuple[LoanEvent, ...]:
    return (
        # A: borrowed long ago, repaid within the last day
        make_loan("L1", "0xMGR_A", "pool_sui", 1_000, NOW - 35 * DAY, NOW - 3 * HOUR),
        # A: open loan from five days ago
        make_loan("L2", "0xMGR_A", "pool_usdc", 500, NOW - 5 * DAY),
        # B: borrowed and liquidated
        make_loan(
            "L3", "0xMGR_B", "pool_sui", 2_000, NOW - 9 * DAY,
            status=LoanStatus.LIQUIDATED,
        ),
        # C: fresh borrow within the last day
        make_loan("L4", "0xMGR_C", "pool_sui", 300, NOW - HOUR),
    )


@pytest.fixture()
def sample_liquidations() -> tuple[LiquidationEvent, ...]:
    return (
        make_liquidation("Q1", "0xMGR_B", "pool_sui", 2_000, 200, NOW - 2 * DAY, pool_reward=40),
    )


@pytest.fixture()
def sample_payload() -> dict:
    return {
        "managers": [
            {"id": "0xMGR_A", "balance_manager_id": "0xBM_A", "owner": "0xOWNER_ALICE",
             "created_at": NOW - 40 * DAY},
            {"id": "0xMGR_B", "balance_manager_id": "0xBM_B", "owner": "0xOWNER_BOB",
             "created_at": NOW - 10 * DAY},
        ],
        "loans": [
            {"id": "L1", "margin_manager_id": "0xMGR_A", "margin_pool_id": "pool_sui",
             "loan_amount": 1000, "borrowed_at": NOW - 35 * DAY,
             "repaid_at": NOW - 3 * HOUR, "status": "repaid"},
            {"id": "L2", "margin_manager_id": "0xMGR_B", "margin_pool_id": "pool_sui",
             "loan_amount": 2000, "borrowed_at": NOW - 9 * DAY,
             "repaid_at": None, "status": "liquidated"},
        ],
        "liquidations": [
            {"id": "Q1", "margin_manager_id": "0xMGR_B", "margin_pool_id": "pool_sui",
             "liquidation_amount": 2000, "pool_reward_amount": 40,
             "liquidator_base_reward": 10, "liquidator_quote_reward": 5,
             "default_amount": 200, "liquidated_at": NOW - 2 * DAY},
        ],
    }
