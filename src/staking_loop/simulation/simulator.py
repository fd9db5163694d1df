"""Day-by-day replay of the leveraged staking loop."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
import math
from typing import Any, List, Mapping, Optional, Tuple, Union

from staking_loop.analysis.market import MarketAnalyzer
from staking_loop.config import LoopPolicy
from staking_loop.models.market import (
    DAY_SECONDS,
    HistoricalData,
    MarketConditions,
    PriceSeries,
)
from staking_loop.models.step import StepType, StrategyStep
from staking_loop.risk.manager import RiskEngine
from staking_loop.simulation.errors import MissingPriceError, SimulationInputError
from staking_loop.simulation.ledger import (
    COMPLETE_TASK,
    PositionState,
    TickPrices,
    build_step,
    format_currency,
    state_metrics,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationParams:
    initial_capital: float
    historical_data: HistoricalData
    # Accepted for the caller's bookkeeping; the replay spans the ETH series.
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SimulationParams":
        capital = payload.get("initialCapital", payload.get("initial_capital"))
        if capital is None:
            raise SimulationInputError("initialCapital is required")
        history = payload.get("historicalData", payload.get("historical_data")) or {}
        if not isinstance(history, HistoricalData):
            history = HistoricalData.from_mapping(history)
        return cls(
            initial_capital=float(capital),
            historical_data=history,
            start_date=payload.get("startDate", payload.get("start_date")),
            end_date=payload.get("endDate", payload.get("end_date")),
        )


def _check_prices(series: PriceSeries, label: str, allow_zero: bool = False) -> None:
    """Reject NaN, infinite and non-positive (or negative, for gas) prices."""
    values = series.series
    lower_ok = values >= 0 if allow_zero else values > 0
    invalid = values[~(lower_ok & (values < math.inf))]
    if not invalid.empty:
        raise SimulationInputError(
            f"Invalid {label} price {invalid.iloc[0]} at timestamp {int(invalid.index[0])}"
        )


class LoopSimulator:
    """Replay the enter/borrow/exit state machine over daily history."""

    def __init__(
        self,
        policy: Optional[LoopPolicy] = None,
        analyzer: Optional[MarketAnalyzer] = None,
        risk_engine: Optional[RiskEngine] = None,
    ) -> None:
        self.policy = (policy or LoopPolicy()).validate()
        self.analyzer = analyzer or MarketAnalyzer(self.policy)
        self.risk_engine = risk_engine or RiskEngine(self.policy)

    def run(self, params: SimulationParams) -> List[StrategyStep]:
        self._validate(params)
        history = params.historical_data
        capital = params.initial_capital
        first = history.eth_prices.first
        end_ts = history.eth_prices.last.timestamp

        logger.info(
            "Simulating %d days from ts=%d with capital %s",
            (end_ts - first.timestamp) // DAY_SECONDS + 1,
            first.timestamp,
            format_currency(capital),
        )

        state = PositionState(eth_balance=capital / first.price)
        prices = self._tick_prices(history, first.timestamp)
        steps: List[StrategyStep] = [
            build_step(
                self.risk_engine,
                state,
                prices,
                step_type=StepType.ENTER,
                task="Initialize Strategy",
                initial_capital=capital,
                conditions=self.analyzer.analyze(history, first.timestamp),
                loop_no=0,
            )
        ]

        hold_logged = False
        timestamp = first.timestamp
        while timestamp <= end_ts:
            prices = self._tick_prices(history, timestamp)
            conditions = self.analyzer.analyze(history, timestamp)
            metrics = state_metrics(state, prices, capital)
            health_factor = self.risk_engine.calculate_health_factor(
                state.wsteth_balance * prices.wsteth,
                state.borrowed_eth * prices.eth,
            )

            if not state.in_position:
                if state.loop_count >= self.policy.max_loops:
                    if not hold_logged:
                        logger.info(
                            "Loop ceiling %d reached; holding from ts=%d",
                            self.policy.max_loops,
                            timestamp,
                        )
                        hold_logged = True
                else:
                    enter, reentry = self._entry_signal(
                        state, conditions, metrics.profit_loss_pct
                    )
                    if enter:
                        self._enter(state, prices, conditions, capital, steps, reentry)
            else:
                decision = self.risk_engine.should_exit_loop(
                    health_factor, conditions, metrics.profit_loss_pct
                )
                if decision.should_exit:
                    self._exit(
                        state,
                        prices,
                        conditions,
                        capital,
                        steps,
                        decision.reason,
                        metrics.profit_loss_pct,
                    )

            timestamp += DAY_SECONDS

        # Value the close at the final tick of the replay.
        final_metrics = state_metrics(state, prices, capital)
        steps.append(
            build_step(
                self.risk_engine,
                state,
                prices,
                step_type=StepType.EXIT,
                task=COMPLETE_TASK,
                initial_capital=capital,
                conditions=self.analyzer.analyze(history, prices.timestamp),
                reason=(
                    f"Final strategy result: {state.last_exit_profit_pct:.2f}% profit/loss"
                    f" | Final Total Value: {format_currency(final_metrics.total_value_usd)}"
                ),
            )
        )
        logger.info(
            "Simulation finished: %d steps, %d loops, final value %s",
            len(steps),
            state.loop_count,
            format_currency(final_metrics.total_value_usd),
        )
        return steps

    def _validate(self, params: SimulationParams) -> None:
        history = params.historical_data
        if history.eth_prices.empty:
            raise SimulationInputError("No ETH price data")
        if history.wsteth_prices.empty:
            raise SimulationInputError("No wstETH price data")
        if history.gas_prices.empty:
            raise SimulationInputError("No gas price data")
        if params.initial_capital <= 0:
            raise SimulationInputError("Initial capital must be positive")
        if history.eth_prices.first.price <= 0:
            raise SimulationInputError("First ETH price must be positive")
        _check_prices(history.eth_prices, "ETH")
        _check_prices(history.wsteth_prices, "wstETH")
        _check_prices(history.gas_prices, "gas", allow_zero=True)

    def _lookup(self, series: PriceSeries, label: str, timestamp: int) -> Tuple[float, bool]:
        price = series.price_at(timestamp)
        if price is not None:
            return price, False
        if self.policy.missing_price_policy == "carry_forward":
            point = series.last_known(timestamp)
            if point is not None:
                logger.warning(
                    "Carrying forward %s price from ts=%d to ts=%d",
                    label,
                    point.timestamp,
                    timestamp,
                )
                return point.price, True
        raise MissingPriceError(label, timestamp)

    def _tick_prices(self, history: HistoricalData, timestamp: int) -> TickPrices:
        eth, eth_carried = self._lookup(history.eth_prices, "ETH", timestamp)
        wsteth, wsteth_carried = self._lookup(history.wsteth_prices, "wstETH", timestamp)
        gas, gas_carried = self._lookup(history.gas_prices, "gas", timestamp)
        return TickPrices(
            timestamp=timestamp,
            eth=eth,
            wsteth=wsteth,
            gas=gas,
            carried_forward=eth_carried or wsteth_carried or gas_carried,
        )

    def _entry_signal(
        self, state: PositionState, conditions: MarketConditions, profit_loss_pct: float
    ) -> Tuple[bool, bool]:
        """Return (enter, is_reentry) for the configured entry policy."""
        if state.loop_count > 0 and self.policy.reentry_policy == "reentry":
            return (
                self.risk_engine.should_reenter_loop(conditions, state.last_exit_profit_pct),
                True,
            )
        return self.risk_engine.should_enter_loop(conditions, profit_loss_pct), False

    def _enter(
        self,
        state: PositionState,
        prices: TickPrices,
        conditions: MarketConditions,
        capital: float,
        steps: List[StrategyStep],
        reentry: bool,
    ) -> None:
        state.loop_count += 1
        loop = state.loop_count
        if reentry:
            steps.append(
                build_step(
                    self.risk_engine,
                    state,
                    prices,
                    step_type=StepType.REENTER,
                    task=f"Re-enter Position - Loop {loop}",
                    initial_capital=capital,
                    conditions=conditions,
                    reason=(
                        "Re-entry conditions met after exit at "
                        f"{state.last_exit_profit_pct:.2f}%"
                    ),
                )
            )

        swap_amount = state.eth_balance
        state.eth_balance = 0.0
        state.wsteth_balance += swap_amount * prices.eth / prices.wsteth
        steps.append(
            build_step(
                self.risk_engine,
                state,
                prices,
                step_type=StepType.SWAP,
                task=f"Swap ETH to wstETH - Loop {loop}",
                initial_capital=capital,
                conditions=conditions,
            )
        )

        borrow_amount = self.risk_engine.calculate_optimal_borrow_amount(
            state.wsteth_balance * prices.wsteth, prices.eth, conditions.volatility
        )
        state.eth_balance += borrow_amount
        state.borrowed_eth += borrow_amount
        state.in_position = True
        steps.append(
            build_step(
                self.risk_engine,
                state,
                prices,
                step_type=StepType.BORROW,
                task=f"Borrow ETH Against Collateral - Loop {loop}",
                initial_capital=capital,
                conditions=conditions,
                reason=f"Borrowed {borrow_amount:.4f} ETH optimally",
            )
        )
        logger.debug(
            "Loop %d entered at ts=%d: swapped %.4f ETH, borrowed %.4f ETH",
            loop,
            prices.timestamp,
            swap_amount,
            borrow_amount,
        )

    def _exit(
        self,
        state: PositionState,
        prices: TickPrices,
        conditions: MarketConditions,
        capital: float,
        steps: List[StrategyStep],
        reason: str,
        profit_loss_pct: float,
    ) -> None:
        repayment = min(state.eth_balance, state.borrowed_eth)
        state.eth_balance -= repayment
        state.borrowed_eth -= repayment
        # Collateral is only released once the loan is fully repaid.
        if state.borrowed_eth == 0 and state.wsteth_balance > 0:
            state.eth_balance += state.wsteth_balance * (prices.wsteth / prices.eth)
            state.wsteth_balance = 0.0

        state.last_exit_profit_pct = profit_loss_pct
        state.in_position = False
        steps.append(
            build_step(
                self.risk_engine,
                state,
                prices,
                step_type=StepType.EXIT,
                task="Exit Position",
                initial_capital=capital,
                conditions=conditions,
                reason=reason,
            )
        )
        logger.debug(
            "Loop %d exited at ts=%d (%s) with P/L %.2f%%",
            state.loop_count,
            prices.timestamp,
            reason,
            profit_loss_pct,
        )


def simulate_strategy(
    params: Union[SimulationParams, Mapping[str, Any]],
    policy: Optional[LoopPolicy] = None,
) -> List[StrategyStep]:
    """Run one simulation; raises instead of returning partial results."""
    if not isinstance(params, SimulationParams):
        params = SimulationParams.from_mapping(params)
    return LoopSimulator(policy=policy).run(params)
