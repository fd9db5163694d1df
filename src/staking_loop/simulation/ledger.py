"""Position valuation and strategy step construction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import re
from typing import Optional

from staking_loop.models.market import MarketConditions
from staking_loop.models.step import StepDetails, StepType, StrategyStep
from staking_loop.risk.manager import RiskEngine


COMPLETE_TASK = "Strategy Complete"
PERCENT_PATTERN = re.compile(r"(-?\d+\.?\d*)%")


@dataclass
class PositionState:
    """Mutable balances for one simulation run."""

    eth_balance: float
    wsteth_balance: float = 0.0
    borrowed_eth: float = 0.0
    loop_count: int = 0
    in_position: bool = False
    last_exit_profit_pct: float = 0.0


@dataclass(frozen=True)
class TickPrices:
    timestamp: int
    eth: float
    wsteth: float
    gas: float
    carried_forward: bool = False


@dataclass(frozen=True)
class PositionMetrics:
    total_value_usd: float
    borrow_value_usd: float
    profit_loss_usd: float
    profit_loss_pct: float


def calculate_position_metrics(
    eth_balance: float,
    wsteth_balance: float,
    borrowed_eth: float,
    eth_price: float,
    wsteth_price: float,
    initial_capital: float,
) -> PositionMetrics:
    total_value = eth_balance * eth_price + wsteth_balance * wsteth_price - borrowed_eth * eth_price
    profit_loss = total_value - initial_capital
    return PositionMetrics(
        total_value_usd=total_value,
        borrow_value_usd=borrowed_eth * eth_price,
        profit_loss_usd=profit_loss,
        profit_loss_pct=profit_loss / initial_capital * 100,
    )


def state_metrics(state: PositionState, prices: TickPrices, initial_capital: float) -> PositionMetrics:
    return calculate_position_metrics(
        state.eth_balance,
        state.wsteth_balance,
        state.borrowed_eth,
        prices.eth,
        prices.wsteth,
        initial_capital,
    )


def format_currency(amount: float) -> str:
    if amount < 0:
        return f"-${abs(amount):,.2f}"
    return f"${amount:,.2f}"


def parse_currency(text: str) -> float:
    return float(text.replace("$", "").replace(",", ""))


def _reported_profit_loss(task: str, reason: Optional[str], computed: float) -> float:
    # The closing step carries a precomputed figure in its reason text.
    if task != COMPLETE_TASK or not reason:
        return computed
    match = PERCENT_PATTERN.search(reason)
    if not match:
        return computed
    return float(match.group(1))


def build_step(
    risk_engine: RiskEngine,
    state: PositionState,
    prices: TickPrices,
    *,
    step_type: StepType,
    task: str,
    initial_capital: float,
    conditions: MarketConditions,
    reason: Optional[str] = None,
    loop_no: Optional[int] = None,
) -> StrategyStep:
    metrics = state_metrics(state, prices, initial_capital)
    profit_loss = _reported_profit_loss(task, reason, metrics.profit_loss_pct)
    # Health is derivative collateral against borrowed base, not net portfolio value.
    health_factor = risk_engine.calculate_health_factor(
        state.wsteth_balance * prices.wsteth,
        state.borrowed_eth * prices.eth,
    )
    moment = datetime.fromtimestamp(prices.timestamp, tz=timezone.utc)
    return StrategyStep(
        loop_no=state.loop_count if loop_no is None else loop_no,
        date=moment.strftime("%Y-%m-%d"),
        time=moment.strftime("%H:%M:%S"),
        step_type=step_type,
        task=task,
        reason=reason,
        eth_price=prices.eth,
        wsteth_price=prices.wsteth,
        gas_price=prices.gas,
        health_factor=health_factor,
        profit_loss=profit_loss,
        cumulative_profit_loss=profit_loss,
        details=StepDetails(
            current_capital=format_currency(initial_capital),
            eth_balance=f"{state.eth_balance:.4f}",
            wsteth_balance=f"{state.wsteth_balance:.4f}",
            borrowed_eth=f"{state.borrowed_eth:.4f}",
            total_value_usd=format_currency(metrics.total_value_usd),
            profit_loss_usd=format_currency(metrics.profit_loss_usd),
        ),
        market_conditions=conditions,
        risk_metrics=risk_engine.assess_risk(profit_loss, conditions.volatility, health_factor),
        timestamp=prices.timestamp,
        price_carried_forward=prices.carried_forward,
    )
