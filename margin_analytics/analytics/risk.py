"""Illustrative price-shock curve for a position's health factor.

Linear model: a price move of ``p`` percent scales the health factor by
``1 + p / 100``. This is a display aid, not a liquidation engine.
"""
from __future__ import annotations

from ..models import HealthStatus, RiskPoint

MIN_HEALTH_FACTOR = 0.1

# Move contracts store ratios scaled by 1e9.
RATIO_SCALE = 1_000_000_000

# Bands above the liquidation threshold, as multiples of it.
DANGER_BAND = 1.2
WARNING_BAND = 1.5


def convert_risk_ratio(raw: str | int) -> float:
    """Convert an on-chain 1e9-scaled ratio, e.g. "1100000000" → 1.1."""
    return int(raw) / RATIO_SCALE


def project_health_factor(health_factor: float, price_change_pct: float) -> float:
    return max(MIN_HEALTH_FACTOR, health_factor * (1 + price_change_pct / 100))


def liquidation_price_change(health_factor: float, liquidation_risk_ratio: float) -> float:
    """Price move in percent at which the projected health factor hits the threshold."""
    if health_factor <= 0:
        return 0.0
    return (liquidation_risk_ratio / health_factor - 1) * 100


def health_status(health_factor: float, liquidation_risk_ratio: float) -> HealthStatus:
    if health_factor <= liquidation_risk_ratio:
        return HealthStatus.LIQUIDATABLE
    if health_factor <= liquidation_risk_ratio * DANGER_BAND:
        return HealthStatus.DANGER
    if health_factor <= liquidation_risk_ratio * WARNING_BAND:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


def distance_to_liquidation(health_factor: float, liquidation_risk_ratio: float) -> float:
    """Headroom above the threshold in percent of the threshold, clamped to 0..100."""
    if health_factor <= liquidation_risk_ratio:
        return 0.0
    distance = (health_factor - liquidation_risk_ratio) / liquidation_risk_ratio * 100
    return max(0.0, min(100.0, distance))


def price_risk_curve(
    health_factor: float,
    price: float,
    liquidation_risk_ratio: float,
    price_change_range: float = 40.0,
    step: float = 5.0,
) -> tuple[RiskPoint, ...]:
    """Projected health factor from ``-range`` to ``+range`` percent in ``step`` increments."""
    if step <= 0:
        raise ValueError("step must be positive")

    points: list[RiskPoint] = []
    n_steps = int(round(2 * price_change_range / step))
    for i in range(n_steps + 1):
        change = -price_change_range + i * step
        hf = project_health_factor(health_factor, change)
        points.append(
            RiskPoint(
                price_change_pct=change,
                price=price * (1 + change / 100),
                health_factor=hf,
                liquidatable=hf < liquidation_risk_ratio,
            )
        )
    return tuple(points)
