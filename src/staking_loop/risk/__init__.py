"""Risk management exports."""

from staking_loop.risk.manager import (
    CriticalVolatilityRule,
    DownTrendProfitLockRule,
    ExitContext,
    ExitDecision,
    ExitRule,
    HealthFactorFloorRule,
    HighGasProfitRule,
    LossMarginRule,
    RiskEngine,
    default_exit_rules,
)

__all__ = [
    "CriticalVolatilityRule",
    "DownTrendProfitLockRule",
    "ExitContext",
    "ExitDecision",
    "ExitRule",
    "HealthFactorFloorRule",
    "HighGasProfitRule",
    "LossMarginRule",
    "RiskEngine",
    "default_exit_rules",
]
