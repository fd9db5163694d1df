"""Configuration loader for the staking loop simulator."""

from dataclasses import dataclass, fields
import logging
import os
from typing import Tuple

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

REENTRY_POLICIES = ("entry", "reentry")
MISSING_PRICE_POLICIES = ("fail", "carry_forward")


def _get_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_choice(value: str | None, choices: Tuple[str, ...], default: str) -> str:
    if not value:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in choices else default


@dataclass(frozen=True)
class LoopPolicy:
    """Risk and market thresholds shared by the analyzer, risk engine and simulator."""

    liquidation_threshold: float = 0.825
    min_health_factor: float = 1.1
    target_health_factor: float = 1.5
    max_volatility: float = 0.2
    critical_volatility: float = 0.3
    safety_margin_pct: float = 5.0
    min_profit_potential_pct: float = 1.0
    profit_lock_pct: float = 2.0
    favorable_volatility: float = 0.05
    trend_threshold: float = 0.02
    high_gas_gwei: float = 100.0
    medium_gas_gwei: float = 50.0
    lookback_days: int = 7
    max_loops: int = 5
    reentry_policy: str = "entry"
    missing_price_policy: str = "fail"

    def validate(self) -> "LoopPolicy":
        if not 0 < self.liquidation_threshold <= 1:
            raise ValueError("liquidation_threshold must be in (0, 1]")
        if self.min_health_factor < 1:
            raise ValueError("min_health_factor must be >= 1")
        if self.target_health_factor <= self.min_health_factor:
            raise ValueError("target_health_factor must exceed min_health_factor")
        if self.max_volatility <= 0:
            raise ValueError("max_volatility must be positive")
        if self.critical_volatility < self.max_volatility:
            raise ValueError("critical_volatility must be >= max_volatility")
        if self.safety_margin_pct < 0:
            raise ValueError("safety_margin_pct must be >= 0")
        if self.medium_gas_gwei > self.high_gas_gwei:
            raise ValueError("medium_gas_gwei must not exceed high_gas_gwei")
        if self.lookback_days < 1:
            raise ValueError("lookback_days must be >= 1")
        if self.max_loops < 0:
            raise ValueError("max_loops must be >= 0")
        if self.reentry_policy not in REENTRY_POLICIES:
            raise ValueError(f"Unsupported reentry_policy: {self.reentry_policy}")
        if self.missing_price_policy not in MISSING_PRICE_POLICIES:
            raise ValueError(
                f"Unsupported missing_price_policy: {self.missing_price_policy}"
            )
        return self


@dataclass(frozen=True)
class Settings:
    llama_coins_api_base: str
    llama_api_base: str
    lido_api_base: str
    etherscan_api_base: str
    etherscan_api_key: str
    http_timeout_s: float
    http_max_retries: int
    cache_dir: str
    cache_ttl_s: int
    log_level: str
    policy_overrides: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        overrides = tuple(
            (key[len("LOOP_") :].lower(), value)
            for key, value in sorted(os.environ.items())
            if key.startswith("LOOP_") and value != ""
        )
        return cls(
            llama_coins_api_base=os.getenv(
                "LLAMA_COINS_API_BASE", "https://coins.llama.fi"
            ),
            llama_api_base=os.getenv("LLAMA_API_BASE", "https://api.llama.fi"),
            lido_api_base=os.getenv("LIDO_API_BASE", "https://api.lido.fi"),
            etherscan_api_base=os.getenv(
                "ETHERSCAN_API_BASE", "https://api.etherscan.io/api"
            ),
            etherscan_api_key=os.getenv("ETHERSCAN_API_KEY", ""),
            http_timeout_s=_get_float(os.getenv("HTTP_TIMEOUT_S"), 30.0),
            http_max_retries=_get_int(os.getenv("HTTP_MAX_RETRIES"), 3),
            cache_dir=os.getenv("CACHE_DIR", ".cache"),
            cache_ttl_s=_get_int(os.getenv("CACHE_TTL_S"), 3600),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            policy_overrides=overrides,
        )

    def policy(self) -> LoopPolicy:
        """Build a LoopPolicy from defaults plus LOOP_* overrides."""
        defaults = LoopPolicy()
        known = {f.name for f in fields(LoopPolicy)}
        values = {}
        for name, raw in self.policy_overrides:
            if name not in known:
                logger.warning("Ignoring unknown policy override LOOP_%s", name.upper())
                continue
            current = getattr(defaults, name)
            if isinstance(current, str):
                values[name] = _get_choice(
                    raw,
                    REENTRY_POLICIES if name == "reentry_policy" else MISSING_PRICE_POLICIES,
                    current,
                )
            elif isinstance(current, int):
                values[name] = _get_int(raw, current)
            else:
                values[name] = _get_float(raw, current)
        return LoopPolicy(**values).validate()


settings = Settings.from_env()
