"""Performance summary over a simulated step ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from staking_loop.models.market import DAY_SECONDS
from staking_loop.models.step import StepType, StrategyStep, json_number
from staking_loop.simulation.ledger import COMPLETE_TASK, parse_currency


EXIT_TASK = "Exit Position"


@dataclass(frozen=True)
class StrategyStats:
    total_loops: int
    successful_loops: int
    total_profit_pct: float
    max_drawdown_pct: float
    profit_loss_volatility: float
    average_loop_duration_days: float
    average_loop_profit_pct: float
    final_health_factor: float
    exit_points: List[Tuple[str, str]] = field(default_factory=list)
    reentry_points: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalLoops": self.total_loops,
            "successfulLoops": self.successful_loops,
            "totalProfit": self.total_profit_pct,
            "maxDrawdown": self.max_drawdown_pct,
            "profitLossVolatility": self.profit_loss_volatility,
            "averageLoopDuration": self.average_loop_duration_days,
            "averageLoopProfit": self.average_loop_profit_pct,
            "finalHealthFactor": json_number(self.final_health_factor),
            "exitPoints": [{"date": d, "reason": r} for d, r in self.exit_points],
            "reentryPoints": [{"date": d, "reason": r} for d, r in self.reentry_points],
        }


def _loop_durations(steps: Sequence[StrategyStep]) -> List[float]:
    durations = []
    opened_at = None
    for step in steps:
        if step.step_type == StepType.SWAP:
            opened_at = step.timestamp
        elif step.step_type == StepType.EXIT and opened_at is not None:
            durations.append((step.timestamp - opened_at) / DAY_SECONDS)
            opened_at = None
    return durations


def summarize_steps(steps: Sequence[StrategyStep]) -> StrategyStats:
    if not steps:
        raise ValueError("Cannot summarize an empty step list")

    exits = [s for s in steps if s.step_type == StepType.EXIT and s.task == EXIT_TASK]
    reentries = [s for s in steps if s.step_type == StepType.REENTER]
    profit_loss = np.array([s.profit_loss for s in steps], dtype=float)

    changes = np.diff(profit_loss)
    pl_volatility = float(np.sqrt(np.mean(changes**2))) if changes.size else 0.0

    last = steps[-1]
    final_value = parse_currency(last.details.total_value_usd)
    capital = parse_currency(last.details.current_capital)
    total_profit = (final_value - capital) / capital * 100 if capital else 0.0
    if last.task != COMPLETE_TASK:
        total_profit = last.profit_loss

    durations = _loop_durations(steps)
    exit_profits = [s.profit_loss for s in exits]

    return StrategyStats(
        total_loops=sum(1 for s in steps if s.step_type == StepType.SWAP),
        successful_loops=sum(1 for p in exit_profits if p > 0),
        total_profit_pct=total_profit,
        max_drawdown_pct=float(profit_loss.min()),
        profit_loss_volatility=pl_volatility,
        average_loop_duration_days=float(np.mean(durations)) if durations else 0.0,
        average_loop_profit_pct=float(np.mean(exit_profits)) if exit_profits else 0.0,
        final_health_factor=last.health_factor,
        exit_points=[(s.date, s.reason or "") for s in exits],
        reentry_points=[(s.date, s.reason or "") for s in reentries],
    )
