"""HTTP API wiring request parameters to the loop simulator."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from staking_loop.config import Settings, settings as default_settings
from staking_loop.data.price_client import PriceHistoryClient
from staking_loop.models.market import HistoricalData
from staking_loop.simulation.errors import MissingPriceError, SimulationInputError
from staking_loop.simulation.simulator import SimulationParams, simulate_strategy
from staking_loop.simulation.stats import summarize_steps


logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SimulateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    initial_capital: float = Field(alias="initialCapital")

    @field_validator("initial_capital")
    @classmethod
    def _check_capital(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("initialCapital must be positive")
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "SimulateRequest":
        if _as_utc(self.end_date) < _as_utc(self.start_date):
            raise ValueError("endDate must not be before startDate")
        return self


class PricePointModel(BaseModel):
    timestamp: int
    price: float


class HistoricalPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    eth_prices: List[PricePointModel] = Field(default_factory=list, alias="ethPrices")
    wsteth_prices: List[PricePointModel] = Field(default_factory=list, alias="wstethPrices")
    gas_prices: List[PricePointModel] = Field(default_factory=list, alias="gasPrices")

    def to_history(self) -> HistoricalData:
        return HistoricalData.from_points(
            [p.model_dump() for p in self.eth_prices],
            [p.model_dump() for p in self.wsteth_prices],
            [p.model_dump() for p in self.gas_prices],
        )


class ReplayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    initial_capital: float = Field(alias="initialCapital")
    historical_data: HistoricalPayload = Field(
        default_factory=HistoricalPayload, alias="historicalData"
    )


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": error, "details": str(exc), "timestamp": _utc_now_iso()},
        status_code=status_code,
    )


def _gas_summary(history: HistoricalData) -> dict:
    gas = history.gas_prices.series
    if gas.empty:
        return {"average": 0, "min": 0, "max": 0}
    return {
        "average": round(float(gas.mean())),
        "min": float(gas.min()),
        "max": float(gas.max()),
    }


def create_app(
    settings: Optional[Settings] = None,
    price_client: Optional[PriceHistoryClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    policy = settings.policy()
    client = price_client or PriceHistoryClient(settings=settings)

    app = FastAPI(title="Staking Loop Simulator API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health", response_class=JSONResponse)
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "timestamp": _utc_now_iso()})

    @app.post("/api/simulate", response_class=JSONResponse)
    def api_simulate(request: SimulateRequest = Body(...)) -> JSONResponse:
        try:
            logger.info("Fetching historical data...")
            history = client.fetch_historical_data(request.start_date, request.end_date)
            market_data = {
                "aaveTVL": client.fetch_protocol_tvl("aave-v3"),
                "compoundTVL": client.fetch_protocol_tvl("compound-v3"),
                "stakingAPY": client.fetch_staking_apy(),
                "gasPrices": _gas_summary(history),
            }
            logger.info("Simulating strategy...")
            steps = simulate_strategy(
                SimulationParams(
                    initial_capital=request.initial_capital,
                    historical_data=history,
                    start_date=request.start_date,
                    end_date=request.end_date,
                ),
                policy=policy,
            )
        except Exception as exc:
            logger.exception("Strategy simulation failed: %s", exc)
            return _error_response(500, "Failed to simulate strategy", exc)

        return JSONResponse(
            {
                "steps": [step.to_dict() for step in steps],
                "stats": summarize_steps(steps).to_dict(),
                "marketData": market_data,
            }
        )

    @app.post("/api/simulate/replay", response_class=JSONResponse)
    def api_replay(request: ReplayRequest = Body(...)) -> JSONResponse:
        try:
            steps = simulate_strategy(
                SimulationParams(
                    initial_capital=request.initial_capital,
                    historical_data=request.historical_data.to_history(),
                ),
                policy=policy,
            )
        except (SimulationInputError, MissingPriceError) as exc:
            return _error_response(400, "Invalid simulation input", exc)

        return JSONResponse(
            {
                "steps": [step.to_dict() for step in steps],
                "stats": summarize_steps(steps).to_dict(),
            }
        )

    return app
