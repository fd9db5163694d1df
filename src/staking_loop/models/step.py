"""Strategy step records produced by the simulator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Optional

from staking_loop.models.market import MarketConditions, RiskMetrics


class StepType(str, Enum):
    ENTER = "enter"
    SWAP = "swap"
    BORROW = "borrow"
    LEND = "lend"
    EXIT = "exit"
    REENTER = "reenter"


def json_number(value: float) -> Optional[float]:
    """JSON has no infinity; render non-finite values as null."""
    if value is None or not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class StepDetails:
    current_capital: str
    eth_balance: str
    wsteth_balance: str
    borrowed_eth: str
    total_value_usd: str
    profit_loss_usd: str

    def to_dict(self) -> dict:
        return {
            "currentCapital": self.current_capital,
            "ethBalance": self.eth_balance,
            "wstEthBalance": self.wsteth_balance,
            "borrowedEth": self.borrowed_eth,
            "totalValueUSD": self.total_value_usd,
            "profitLossUSD": self.profit_loss_usd,
        }


@dataclass(frozen=True)
class StrategyStep:
    loop_no: int
    date: str
    time: str
    step_type: StepType
    task: str
    reason: Optional[str]
    eth_price: float
    wsteth_price: float
    gas_price: float
    health_factor: float
    profit_loss: float
    cumulative_profit_loss: float
    details: StepDetails
    market_conditions: MarketConditions
    risk_metrics: RiskMetrics
    timestamp: int = 0
    price_carried_forward: bool = False

    def to_dict(self) -> dict:
        payload = {
            "loopNo": self.loop_no,
            "date": self.date,
            "time": self.time,
            "stepType": self.step_type.value,
            "task": self.task,
            "ethPrice": self.eth_price,
            "wstethPrice": self.wsteth_price,
            "gasPrice": self.gas_price,
            "healthFactor": json_number(self.health_factor),
            "profitLoss": json_number(self.profit_loss),
            "cumulativeProfitLoss": json_number(self.cumulative_profit_loss),
            "details": self.details.to_dict(),
            "marketConditions": self.market_conditions.to_dict(),
            "riskMetrics": {
                "volatility": self.risk_metrics.volatility,
                "projectedHealthFactor": json_number(
                    self.risk_metrics.projected_health_factor
                ),
                "safetyMargin": json_number(self.risk_metrics.safety_margin),
            },
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.price_carried_forward:
            payload["priceCarriedForward"] = True
        return payload
