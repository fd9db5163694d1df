"""Risk policy: health factor math, borrow sizing and entry/exit rules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import math
from typing import List, Optional, Tuple

from staking_loop.config import LoopPolicy
from staking_loop.models.market import (
    GasConditions,
    MarketConditions,
    PriceTrend,
    RiskMetrics,
)


@dataclass(frozen=True)
class ExitContext:
    health_factor: float
    conditions: MarketConditions
    profit_loss_pct: float


@dataclass(frozen=True)
class ExitDecision:
    should_exit: bool
    reason: str = ""
    rule: str = ""


class ExitRule(ABC):
    name: str

    @abstractmethod
    def check(self, context: ExitContext) -> Tuple[bool, str]:
        """Return (passed, reason); a failed check signals an exit."""
        raise NotImplementedError


@dataclass(frozen=True)
class HealthFactorFloorRule(ExitRule):
    min_health_factor: float
    name: str = "health_factor_floor"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        if context.health_factor < self.min_health_factor:
            return False, "Health factor below minimum threshold"
        return True, "ok"


@dataclass(frozen=True)
class LossMarginRule(ExitRule):
    safety_margin_pct: float
    name: str = "loss_margin"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        if context.profit_loss_pct < -self.safety_margin_pct:
            return False, "Position showing loss beyond safety margin"
        return True, "ok"


@dataclass(frozen=True)
class CriticalVolatilityRule(ExitRule):
    critical_volatility: float
    name: str = "critical_volatility"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        if context.conditions.volatility > self.critical_volatility:
            return False, "Market volatility too high"
        return True, "ok"


@dataclass(frozen=True)
class DownTrendProfitLockRule(ExitRule):
    profit_lock_pct: float
    name: str = "downtrend_profit_lock"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        if (
            context.conditions.price_trend == PriceTrend.DOWN
            and context.profit_loss_pct > self.profit_lock_pct
        ):
            return False, "Locking in profits in downward trend"
        return True, "ok"


@dataclass(frozen=True)
class HighGasProfitRule(ExitRule):
    name: str = "high_gas_profit"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        if (
            context.conditions.gas_conditions == GasConditions.HIGH
            and context.profit_loss_pct > 0
        ):
            return False, "High gas costs with existing profits"
        return True, "ok"


def default_exit_rules(policy: LoopPolicy) -> List[ExitRule]:
    """Exit checks in priority order; the first failing rule wins."""
    return [
        HealthFactorFloorRule(policy.min_health_factor),
        LossMarginRule(policy.safety_margin_pct),
        CriticalVolatilityRule(policy.critical_volatility),
        DownTrendProfitLockRule(policy.profit_lock_pct),
        HighGasProfitRule(),
    ]


class RiskEngine:
    """Pure risk calculations parameterised by a LoopPolicy."""

    def __init__(
        self,
        policy: Optional[LoopPolicy] = None,
        exit_rules: Optional[List[ExitRule]] = None,
    ) -> None:
        self.policy = policy or LoopPolicy()
        if exit_rules is None:
            exit_rules = default_exit_rules(self.policy)
        self.exit_rules = exit_rules

    def calculate_health_factor(self, collateral_value_usd: float, borrow_value_usd: float) -> float:
        if borrow_value_usd == 0:
            return math.inf
        return (collateral_value_usd * self.policy.liquidation_threshold) / borrow_value_usd

    def project_health_factor(
        self,
        current_collateral: float,
        additional_collateral: float,
        current_borrow: float,
        additional_borrow: float,
        collateral_price: float,
        borrow_price: float,
    ) -> float:
        return self.calculate_health_factor(
            (current_collateral + additional_collateral) * collateral_price,
            (current_borrow + additional_borrow) * borrow_price,
        )

    def calculate_max_safe_exposure(
        self, collateral_value_usd: float, target_health_factor: Optional[float] = None
    ) -> float:
        target = target_health_factor or self.policy.target_health_factor
        return (collateral_value_usd * self.policy.liquidation_threshold) / target

    def calculate_optimal_borrow_amount(
        self, collateral_value_usd: float, price: float, volatility: float
    ) -> float:
        """Borrow size in asset units, scaled down linearly as volatility nears the ceiling."""
        if price <= 0:
            return 0.0
        max_safe = self.calculate_max_safe_exposure(collateral_value_usd)
        adjustment = max(0.0, 1 - volatility / self.policy.max_volatility)
        return max_safe * adjustment / price

    def assess_risk(
        self, profit_loss_pct: float, volatility: float, health_factor: float
    ) -> RiskMetrics:
        return RiskMetrics(
            volatility=volatility,
            projected_health_factor=health_factor * (1 - volatility),
            safety_margin=profit_loss_pct,
        )

    def should_enter_loop(self, conditions: MarketConditions, current_profit_pct: float) -> bool:
        return (
            (
                conditions.is_favorable
                or conditions.profit_potential > self.policy.min_profit_potential_pct
            )
            and conditions.volatility < self.policy.max_volatility
            and conditions.gas_conditions != GasConditions.HIGH
            and current_profit_pct >= -self.policy.safety_margin_pct
        )

    def should_exit_loop(
        self, health_factor: float, conditions: MarketConditions, profit_loss_pct: float
    ) -> ExitDecision:
        context = ExitContext(
            health_factor=health_factor,
            conditions=conditions,
            profit_loss_pct=profit_loss_pct,
        )
        for rule in self.exit_rules:
            passed, reason = rule.check(context)
            if not passed:
                return ExitDecision(should_exit=True, reason=reason, rule=rule.name)
        return ExitDecision(should_exit=False)

    def should_reenter_loop(self, conditions: MarketConditions, last_exit_profit_pct: float) -> bool:
        return (
            conditions.is_favorable
            and conditions.volatility < self.policy.max_volatility
            and conditions.price_trend != PriceTrend.DOWN
            and conditions.gas_conditions != GasConditions.HIGH
            and last_exit_profit_pct >= -self.policy.safety_margin_pct
        )
