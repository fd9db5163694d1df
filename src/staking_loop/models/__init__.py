"""Data model exports."""

from staking_loop.models.market import (
    DAY_SECONDS,
    GasConditions,
    HistoricalData,
    MarketConditions,
    PricePoint,
    PriceSeries,
    PriceTrend,
    RiskMetrics,
)
from staking_loop.models.step import StepDetails, StepType, StrategyStep

__all__ = [
    "DAY_SECONDS",
    "GasConditions",
    "HistoricalData",
    "MarketConditions",
    "PricePoint",
    "PriceSeries",
    "PriceTrend",
    "RiskMetrics",
    "StepDetails",
    "StepType",
    "StrategyStep",
]
