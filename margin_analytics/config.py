"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .analytics.risk import convert_risk_ratio
from .analytics.windows import TimeRange
from .models import LiquidationRule

logger = logging.getLogger(__name__)

DATA_SOURCE_TYPES = ("api", "static")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DataSourceConfig:
    type: str = "api"
    api_url: str = "http://localhost:9008"
    static_data_path: str = "data/dashboard-data.json"
    refresh_interval_seconds: int = 30
    timeout: int = 30


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AnalyticsConfig:
    default_time_range: TimeRange = TimeRange.ALL
    liquidation_rule: LiquidationRule = LiquidationRule.RECOVERED
    flow_window_hours: int = 24
    risk_window_days: int = 7


@dataclass(frozen=True)
class RiskConfig:
    liquidation_risk_ratio: float = 1.1
    price_change_range: float = 40.0
    price_change_step: float = 5.0


@dataclass(frozen=True)
class AppConfig:
    data_source: DataSourceConfig = field(default_factory=DataSourceConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")

# Direct environment overrides for the data source section.
_DATA_SOURCE_ENV = {
    "MARGIN_DATA_SOURCE": "type",
    "MARGIN_API_URL": "api_url",
    "MARGIN_STATIC_DATA_PATH": "static_data_path",
    "MARGIN_REFRESH_INTERVAL": "refresh_interval_seconds",
}


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_data_source(raw: dict[str, Any]) -> DataSourceConfig:
    merged = dict(raw)
    for env_var, key in _DATA_SOURCE_ENV.items():
        if os.environ.get(env_var):
            merged[key] = os.environ[env_var]

    return DataSourceConfig(
        type=str(merged.get("type", "api")),
        api_url=str(merged.get("api_url", DataSourceConfig.api_url)),
        static_data_path=str(
            merged.get("static_data_path", DataSourceConfig.static_data_path)
        ),
        refresh_interval_seconds=int(merged.get("refresh_interval_seconds", 30)),
        timeout=int(merged.get("timeout", 30)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_analytics(raw: dict[str, Any]) -> AnalyticsConfig:
    try:
        time_range = TimeRange(str(raw.get("default_time_range", "all")))
    except ValueError:
        raise ValueError(
            f"Unknown time range '{raw.get('default_time_range')}'"
        ) from None
    try:
        rule = LiquidationRule(str(raw.get("liquidation_rule", "recovered")))
    except ValueError:
        raise ValueError(
            f"Unknown liquidation rule '{raw.get('liquidation_rule')}'"
        ) from None

    return AnalyticsConfig(
        default_time_range=time_range,
        liquidation_rule=rule,
        flow_window_hours=int(raw.get("flow_window_hours", 24)),
        risk_window_days=int(raw.get("risk_window_days", 7)),
    )


def _build_risk(raw: dict[str, Any]) -> RiskConfig:
    ratio = float(raw.get("liquidation_risk_ratio", 1.1))
    # Accept the on-chain 1e9-scaled form as well, e.g. 1100000000.
    if ratio > 1000:
        ratio = convert_risk_ratio(int(ratio))
    return RiskConfig(
        liquidation_risk_ratio=ratio,
        price_change_range=float(raw.get("price_change_range", 40.0)),
        price_change_step=float(raw.get("price_change_step", 5.0)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        data_source=_build_data_source(raw.get("data_source", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        analytics=_build_analytics(raw.get("analytics", {})),
        risk=_build_risk(raw.get("risk", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def with_data_source(cfg: AppConfig, **changes: Any) -> AppConfig:
    """Return a copy of ``cfg`` with data-source fields replaced and re-validated."""
    updated = replace(cfg, data_source=replace(cfg.data_source, **changes))
    _validate(updated)
    return updated


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    source = cfg.data_source
    if source.type not in DATA_SOURCE_TYPES:
        raise ValueError(
            f"Unknown data source type '{source.type}' "
            f"(expected one of {', '.join(DATA_SOURCE_TYPES)})"
        )
    if source.type == "api" and not source.api_url:
        raise ValueError("Data source 'api' requires api_url")
    if source.type == "static" and not source.static_data_path:
        raise ValueError("Data source 'static' requires static_data_path")
    if source.refresh_interval_seconds < 0:
        raise ValueError("refresh_interval_seconds must not be negative")

    if cfg.analytics.flow_window_hours <= 0 or cfg.analytics.risk_window_days <= 0:
        raise ValueError("Analytics windows must be positive")

    if cfg.risk.price_change_step <= 0:
        raise ValueError("price_change_step must be positive")
