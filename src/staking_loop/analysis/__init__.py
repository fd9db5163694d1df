"""Market analysis exports."""

from staking_loop.analysis.indicators import (
    daily_returns,
    gas_conditions,
    mean_gas,
    price_trend,
    profit_potential,
    volatility,
)
from staking_loop.analysis.market import MarketAnalyzer

__all__ = [
    "MarketAnalyzer",
    "daily_returns",
    "gas_conditions",
    "mean_gas",
    "price_trend",
    "profit_potential",
    "volatility",
]
