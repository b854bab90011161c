"""Pydantic request/response schemas for the glidepath API."""

from datetime import datetime, timezone
from typing import Annotated, Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field

from glidepath.engine import (
    CashGlidePath,
    FixedAllocation,
    LeverageGlidePath,
    MarketModel,
    PortfolioParams,
    StrategySpec,
)

T = TypeVar("T")


# --- Base schemas ---


class Meta(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cached: bool = False


class ApiResponse(BaseModel, Generic[T]):
    data: T
    meta: Meta = Field(default_factory=Meta)


class ErrorResponse(BaseModel):
    error: dict[str, Any] = Field(
        description="Error details with code, message, and optional detail"
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    cache_entries: int


# --- Strategy schemas (discriminated on ``kind``) ---


class FixedStrategyIn(BaseModel):
    kind: Literal["fixed"] = "fixed"
    cash_pct: float = Field(20.0, ge=0, le=100, description="Cash share held constant (%)")

    def to_spec(self) -> StrategySpec:
        return FixedAllocation(cash_pct=self.cash_pct)


class CashGlideStrategyIn(BaseModel):
    kind: Literal["glide_cash"]
    start_cash_pct: float = Field(ge=0, le=100)
    end_cash_pct: float = Field(ge=0, le=100)

    def to_spec(self) -> StrategySpec:
        return CashGlidePath(start_cash_pct=self.start_cash_pct, end_cash_pct=self.end_cash_pct)


class LeverageGlideStrategyIn(BaseModel):
    kind: Literal["glide_leverage"]
    start_leverage: float = Field(ge=0, description="Asset/equity ratio at month 0")
    end_leverage: float = Field(ge=0, description="Asset/equity ratio at the final month")
    borrow_cost_annual_pct: float = Field(5.0, ge=0, description="Annual borrow rate (%)")

    def to_spec(self) -> StrategySpec:
        return LeverageGlidePath(
            start_leverage=self.start_leverage,
            end_leverage=self.end_leverage,
            borrow_cost_annual_pct=self.borrow_cost_annual_pct,
        )


StrategyIn = Annotated[
    Union[FixedStrategyIn, CashGlideStrategyIn, LeverageGlideStrategyIn],
    Field(discriminator="kind"),
]


# --- Request schemas ---


class PortfolioIn(BaseModel):
    initial_capital: float = Field(10_000_000, ge=0, description="Starting capital (KRW)")
    monthly_contribution: float = Field(500_000, ge=0, description="Monthly contribution (KRW)")
    strategy: StrategyIn = Field(default_factory=FixedStrategyIn)

    def to_params(self) -> PortfolioParams:
        return PortfolioParams(
            initial_capital=self.initial_capital,
            monthly_contribution=self.monthly_contribution,
            strategy=self.strategy.to_spec(),
        )


class MarketModelIn(BaseModel):
    expected_return: float = Field(8.0, description="Annual expected return (%)")
    volatility: float = Field(15.0, ge=0, description="Annual volatility (%)")

    def to_model(self) -> MarketModel:
        return MarketModel(
            annual_return_pct=self.expected_return,
            annual_volatility_pct=self.volatility,
        )


class SimulationRequest(BaseModel):
    portfolio: PortfolioIn = Field(default_factory=PortfolioIn)
    market: MarketModelIn = Field(default_factory=MarketModelIn)
    duration_years: int = Field(10, gt=0, le=100)
    seed: int | None = Field(None, ge=0, description="Fix for reproducible (cacheable) results")


class MonteCarloRequest(SimulationRequest):
    iterations: int = Field(10000, gt=0, le=100_000)
    bins: int = Field(25, gt=0, le=200)


class PathsRequest(SimulationRequest):
    count: int = Field(50, gt=0, le=500)


# --- Response schemas ---


class PortfolioStepOut(BaseModel):
    month_index: int
    total_value: float
    cash_value: float
    asset_value: float
    asset_price: float
    cumulative_contribution: float
    target_asset_ratio: float


class RunSummaryOut(BaseModel):
    final_value: float
    total_invested: float
    profit: float
    roi_pct: float


class SimulationRunResult(BaseModel):
    summary: RunSummaryOut
    steps: list[PortfolioStepOut]


class SimulationStatsOut(BaseModel):
    p10: float = Field(description="Worst-decile terminal value")
    p50: float = Field(description="Median terminal value")
    p90: float = Field(description="Best-decile terminal value")
    min: float
    max: float
    benchmark_beat_rate: float | None = Field(
        None, description="% of runs whose profit beat 100% asset buy & hold"
    )
    median_benchmark_return_pct: float | None = None


class HistogramBinOut(BaseModel):
    range_start: float
    range_end: float
    count: int
    label: str


class MonteCarloResult(BaseModel):
    iterations: int
    duration_years: int
    stats: SimulationStatsOut
    histogram: list[HistogramBinOut]


class PathsResult(BaseModel):
    median_index: int
    paths: list[list[PortfolioStepOut]]
    invested_capital: list[float]
