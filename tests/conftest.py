from dataclasses import dataclass
from typing import Tuple

import pytest

from staking_loop.config import LoopPolicy, Settings
from staking_loop.models.market import DAY_SECONDS, HistoricalData
from staking_loop.risk.manager import ExitContext, ExitRule, RiskEngine

# 2024-01-01T00:00:00Z
BASE_TS = 1_704_067_200


def _points(values, start=BASE_TS):
    return [(start + i * DAY_SECONDS, float(v)) for i, v in enumerate(values)]


def _make_history(eth, wsteth, gas, start=BASE_TS):
    if isinstance(gas, (int, float)):
        gas = [gas] * len(eth)
    return HistoricalData.from_points(
        _points(eth, start), _points(wsteth, start), _points(gas, start)
    )


@dataclass(frozen=True)
class AlwaysExitRule(ExitRule):
    name: str = "always_exit"

    def check(self, context: ExitContext) -> Tuple[bool, str]:
        return False, "Forced exit"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        llama_coins_api_base="https://coins.test",
        llama_api_base="https://api.test",
        lido_api_base="https://lido.test",
        etherscan_api_base="https://etherscan.test/api",
        etherscan_api_key="key",
        http_timeout_s=5.0,
        http_max_retries=2,
        cache_dir=str(tmp_path),
        cache_ttl_s=3600,
        log_level="INFO",
    )


@pytest.fixture
def make_history():
    return _make_history


@pytest.fixture
def points():
    return _points


@pytest.fixture
def rising_history():
    return _make_history(
        [2000 + 10 * i for i in range(10)],
        [2050 + 12 * i for i in range(10)],
        30,
    )


@pytest.fixture
def crash_history():
    return _make_history(
        [2000, 2010, 2020, 2030, 2040, 2050, 2000, 1950, 1900, 1850],
        [2050, 2062, 2074, 2086, 2098, 2110, 2055, 2000, 1945, 1890],
        [30 + 5 * i for i in range(10)],
    )


@pytest.fixture
def decline_history():
    return _make_history(
        [2000 - 20 * i for i in range(10)],
        [2050 - 18 * i for i in range(10)],
        50,
    )


@pytest.fixture
def flat_history():
    return _make_history([2000] * 10, [2050] * 10, 30)


@pytest.fixture
def churn_engine():
    """Risk engine that exits every open position on the next tick."""

    def build(policy: LoopPolicy) -> RiskEngine:
        return RiskEngine(policy, exit_rules=[AlwaysExitRule()])

    return build
