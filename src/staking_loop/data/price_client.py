"""Historical price, gas and protocol data from DeFiLlama, Etherscan and Lido."""

from __future__ import annotations

from datetime import date, datetime, timezone
import logging
import math
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from staking_loop.config import Settings, settings as default_settings
from staking_loop.data.cache import FileCache
from staking_loop.data.interpolate import interpolate_daily
from staking_loop.models.market import DAY_SECONDS, HistoricalData, PricePoint, PriceSeries


logger = logging.getLogger(__name__)

WETH_TOKEN = "ethereum:0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
WSTETH_TOKEN = "ethereum:0x7f39c581f595b53c5cb19bd0b3f8da6c935e2ca0"
DEFAULT_TOKENS = (WETH_TOKEN, WSTETH_TOKEN)

TOKEN_KEYS = {
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": "ethereum",
    "0x7f39c581f595b53c5cb19bd0b3f8da6c935e2ca0": "wsteth",
}

FALLBACK_STAKING_APY = 4.5
WEEKEND_GAS_FACTOR = 0.8
WEEKDAY_GAS_FACTOR = 1.2


class PriceDataError(RuntimeError):
    """Upstream price or gas data could not be retrieved or understood."""


def to_timestamp(value: date | datetime | int | float) -> int:
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())


def _iso_day(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _token_key(token: str) -> str:
    parts = token.split(":")
    if len(parts) != 2 or not parts[1]:
        raise PriceDataError(f"Invalid token format: {token}")
    key = TOKEN_KEYS.get(parts[1].lower())
    if key is None:
        raise PriceDataError(f"Unknown token address: {parts[1]}")
    return key


def _points_from_cache(payload: Dict[str, List[dict]]) -> Dict[str, List[PricePoint]]:
    return {
        key: [PricePoint(int(p["timestamp"]), float(p["price"])) for p in points]
        for key, points in payload.items()
    }


class PriceHistoryClient:
    """Fetches daily, gap-free series for the simulator and caches the results."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[FileCache] = None,
        client: Optional[httpx.Client] = None,
        backoff_s: float = 0.5,
    ) -> None:
        self.settings = settings or default_settings
        self.cache = cache or FileCache(self.settings.cache_dir, ttl_s=self.settings.cache_ttl_s)
        self.timeout = self.settings.http_timeout_s
        self.max_retries = max(1, self.settings.http_max_retries)
        self.backoff_s = backoff_s
        self._client = client

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        for attempt in range(1, self.max_retries + 1):
            try:
                if self._client is not None:
                    response = self._client.get(url, params=params, timeout=self.timeout)
                else:
                    with httpx.Client(timeout=self.timeout) as client:
                        response = client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                if attempt < self.max_retries:
                    logger.warning(
                        "GET %s failed (attempt %d/%d): %s",
                        url,
                        attempt,
                        self.max_retries,
                        exc,
                    )
                    time.sleep(self.backoff_s * attempt)
                    continue
                raise PriceDataError(f"Request to {url} failed: {exc}") from exc
        raise PriceDataError(f"Request to {url} failed")

    def fetch_historical_prices(
        self,
        start: date | datetime | int,
        end: date | datetime | int,
        tokens: Sequence[str] = DEFAULT_TOKENS,
    ) -> Dict[str, List[PricePoint]]:
        start_ts = to_timestamp(start)
        end_ts = to_timestamp(end)
        cache_key = f"historical_prices_{start_ts}_{end_ts}"
        cached = self.cache.get(cache_key)
        if cached:
            logger.info("Using cached historical price data")
            return _points_from_cache(cached)

        span_days = max(1, math.ceil((end_ts - start_ts) / DAY_SECONDS))
        logger.info("Fetching prices for %d days", span_days)

        result: Dict[str, List[PricePoint]] = {}
        for token in tokens:
            key = _token_key(token)
            data = self._get_json(
                f"{self.settings.llama_coins_api_base.rstrip('/')}/chart/{token}",
                params={"start": start_ts, "span": span_days, "period": "1d"},
            )
            coin = (data.get("coins") or {}).get(token) if isinstance(data, dict) else None
            raw_prices = coin.get("prices") if isinstance(coin, dict) else None
            if not isinstance(raw_prices, list):
                raise PriceDataError(f"Invalid price data format for {key}")
            try:
                points = [
                    PricePoint(int(p["timestamp"]), float(p["price"]))
                    for p in raw_prices
                    if isinstance(p, dict) and p.get("price") and float(p["price"]) > 0
                ]
            except (KeyError, TypeError, ValueError) as exc:
                raise PriceDataError(f"Invalid price data format for {key}") from exc
            if not points:
                raise PriceDataError(f"No price data available for {key}")
            result[key] = interpolate_daily(points, start_ts, end_ts)
            logger.info(
                "Data coverage for %s: received=%d generated=%d",
                key,
                len(points),
                len(result[key]),
            )

        for key in ("ethereum", "wsteth"):
            if not result.get(key):
                raise PriceDataError(f"Missing or empty price data for {key}")

        self.cache.set(
            cache_key, {key: [p.to_dict() for p in points] for key, points in result.items()}
        )
        return result

    def fetch_historical_gas_prices(
        self, start: date | datetime | int, end: date | datetime | int
    ) -> List[PricePoint]:
        start_ts = to_timestamp(start)
        end_ts = to_timestamp(end)
        cache_key = f"historical_gas_{start_ts}_{end_ts}"
        cached = self.cache.get(cache_key)
        if cached:
            logger.info("Using cached gas price data")
            return _points_from_cache({"gas": cached})["gas"]

        try:
            data = self._get_json(
                self.settings.etherscan_api_base,
                params={
                    "module": "stats",
                    "action": "dailyavggasprice",
                    "startdate": _iso_day(start_ts),
                    "enddate": _iso_day(end_ts),
                    "sort": "asc",
                    "apikey": self.settings.etherscan_api_key,
                },
            )
            if data.get("status") == "0" and data.get("message") == "NOTOK":
                raise PriceDataError(f"Etherscan API error: {data.get('result')}")
            entries = data.get("result")
            if not isinstance(entries, list) or not entries:
                raise PriceDataError("No gas price data found")
            points = [
                PricePoint(
                    to_timestamp(datetime.strptime(entry["UTCDate"], "%Y-%m-%d")),
                    float(math.floor(float(entry["avgGasPrice_Wei"]) / 1e9)),
                )
                for entry in entries
            ]
        except (PriceDataError, KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Historical gas fetch failed, using estimates: %s", exc)
            return self.fetch_estimated_gas_prices(start_ts, end_ts)

        daily = interpolate_daily(points, start_ts, end_ts, round_prices=True)
        self.cache.set(cache_key, [p.to_dict() for p in daily])
        return daily

    def fetch_estimated_gas_prices(
        self, start: date | datetime | int, end: date | datetime | int
    ) -> List[PricePoint]:
        """Project today's safe gas price across the range, cheaper on weekends."""
        start_ts = to_timestamp(start)
        end_ts = to_timestamp(end)
        data = self._get_json(
            self.settings.etherscan_api_base,
            params={
                "module": "gastracker",
                "action": "gasoracle",
                "apikey": self.settings.etherscan_api_key,
            },
        )
        try:
            base_gas = float(data["result"]["SafeGasPrice"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PriceDataError("Invalid response format from Etherscan gas oracle") from exc

        points = []
        for ts in range(start_ts, end_ts + 1, DAY_SECONDS):
            weekday = datetime.fromtimestamp(ts, tz=timezone.utc).weekday()
            factor = WEEKEND_GAS_FACTOR if weekday >= 5 else WEEKDAY_GAS_FACTOR
            points.append(PricePoint(ts, float(round(base_gas * factor))))
        return points

    def fetch_protocol_tvl(self, protocol: str) -> float:
        data = self._get_json(f"{self.settings.llama_api_base.rstrip('/')}/protocol/{protocol}")
        chain_tvls = data.get("currentChainTvls") if isinstance(data, dict) else None
        if not isinstance(chain_tvls, dict):
            raise PriceDataError(f"Invalid TVL response for {protocol}")
        return float(chain_tvls.get("Ethereum") or 0.0)

    def fetch_staking_apy(self) -> float:
        """Lido stETH SMA APR (percent) compounded daily into an APY (percent)."""
        try:
            data = self._get_json(
                f"{self.settings.lido_api_base.rstrip('/')}/v1/protocol/steth/apr/sma"
            )
            apr = data["data"]["smaApr"]
            if not isinstance(apr, (int, float)):
                raise PriceDataError("Invalid response format from Lido API")
        except (PriceDataError, KeyError, TypeError) as exc:
            logger.warning("Staking APY fetch failed, using fallback: %s", exc)
            return FALLBACK_STAKING_APY
        return ((1 + apr / 100 / 365) ** 365 - 1) * 100

    def get_current_prices(self, tokens: Sequence[str] = DEFAULT_TOKENS) -> Dict[str, float]:
        data = self._get_json(
            f"{self.settings.llama_coins_api_base.rstrip('/')}/prices/current/{','.join(tokens)}"
        )
        result: Dict[str, float] = {}
        for token, value in (data.get("coins") or {}).items():
            address = token.split(":")[-1].lower()
            key = TOKEN_KEYS.get(address)
            if key and isinstance(value, dict) and value.get("price"):
                result[key] = float(value["price"])
        return result

    def fetch_historical_data(
        self, start: date | datetime | int, end: date | datetime | int
    ) -> HistoricalData:
        prices = self.fetch_historical_prices(start, end)
        gas = self.fetch_historical_gas_prices(start, end)
        history = HistoricalData(
            eth_prices=PriceSeries(prices["ethereum"], name="eth"),
            wsteth_prices=PriceSeries(prices["wsteth"], name="wsteth"),
            gas_prices=PriceSeries(gas, name="gas"),
        )
        if not (len(history.eth_prices) == len(history.wsteth_prices) == len(history.gas_prices)):
            raise PriceDataError("Inconsistent number of data points after interpolation")
        return history
