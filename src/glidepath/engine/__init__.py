"""Portfolio projection engine.

Shared types for the three layers of the engine:
- generator: synthetic monthly GBM market paths
- simulator: rebalancing ledger over one path
- monte_carlo: repeated runs reduced into outcomes and sampled paths
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, NamedTuple, NotRequired, TypedDict, Union


class InvalidInputError(ValueError):
    """Raised when a caller passes arguments outside the engine's contract."""


class Strategy(str, Enum):
    FIXED = "fixed"
    GLIDE_CASH = "glide_cash"
    GLIDE_LEVERAGE = "glide_leverage"


# ---------------------------------------------------------------------------
# Path / ledger records
# ---------------------------------------------------------------------------


class MarketPoint(NamedTuple):
    month_index: int
    price: float
    period_return: float  # simple return over the period ending here


class PortfolioStep(NamedTuple):
    month_index: int
    total_value: float
    cash_value: float
    asset_value: float
    asset_price: float
    cumulative_contribution: float
    target_asset_ratio: float


# ---------------------------------------------------------------------------
# Strategies (one case per rebalancing policy)
# ---------------------------------------------------------------------------


def _check_pct(name: str, value: float) -> None:
    if not 0.0 <= value <= 100.0:
        raise InvalidInputError(f"{name} must be within [0, 100], got {value}")


@dataclass(frozen=True)
class FixedAllocation:
    """Hold a constant cash share for the whole run."""

    cash_pct: float

    kind: ClassVar[Strategy] = Strategy.FIXED
    monthly_borrow_rate: ClassVar[float] = 0.0

    def __post_init__(self):
        _check_pct("cash_pct", self.cash_pct)

    def initial_ratio(self) -> float:
        return 1 - self.cash_pct / 100

    def target_ratio(self, progress: float) -> float:
        return 1 - self.cash_pct / 100


@dataclass(frozen=True)
class CashGlidePath:
    """Move the cash share linearly from start to end over the run."""

    start_cash_pct: float
    end_cash_pct: float

    kind: ClassVar[Strategy] = Strategy.GLIDE_CASH
    monthly_borrow_rate: ClassVar[float] = 0.0

    def __post_init__(self):
        _check_pct("start_cash_pct", self.start_cash_pct)
        _check_pct("end_cash_pct", self.end_cash_pct)

    def initial_ratio(self) -> float:
        return 1 - self.start_cash_pct / 100

    def target_ratio(self, progress: float) -> float:
        cash_pct = self.start_cash_pct + (self.end_cash_pct - self.start_cash_pct) * progress
        return 1 - cash_pct / 100


@dataclass(frozen=True)
class LeverageGlidePath:
    """Move the asset/equity ratio linearly from start to end.

    Ratios above 1 borrow against the portfolio; the resulting negative cash
    balance is charged ``borrow_cost_annual_pct`` per year, monthly.
    """

    start_leverage: float
    end_leverage: float
    borrow_cost_annual_pct: float = 0.0

    kind: ClassVar[Strategy] = Strategy.GLIDE_LEVERAGE

    def __post_init__(self):
        if self.start_leverage < 0 or self.end_leverage < 0:
            raise InvalidInputError(
                f"leverage must be >= 0, got {self.start_leverage} -> {self.end_leverage}"
            )
        if self.borrow_cost_annual_pct < 0:
            raise InvalidInputError(
                f"borrow_cost_annual_pct must be >= 0, got {self.borrow_cost_annual_pct}"
            )

    @property
    def monthly_borrow_rate(self) -> float:
        return self.borrow_cost_annual_pct / 100 / 12

    def initial_ratio(self) -> float:
        return self.start_leverage

    def target_ratio(self, progress: float) -> float:
        return self.start_leverage + (self.end_leverage - self.start_leverage) * progress


StrategySpec = Union[FixedAllocation, CashGlidePath, LeverageGlidePath]


def build_strategy(
    strategy: Strategy | str,
    start_ratio: float,
    end_ratio: float | None = None,
    borrow_cost_annual_pct: float = 0.0,
) -> StrategySpec:
    """Build a strategy case from the flat form-field layout.

    ``start_ratio``/``end_ratio`` are cash percentages for FIXED and
    GLIDE_CASH, and asset/equity multiples for GLIDE_LEVERAGE. A missing
    ``end_ratio`` means a flat glide.
    """
    strategy = Strategy(strategy)
    if end_ratio is None:
        end_ratio = start_ratio

    if strategy == Strategy.FIXED:
        return FixedAllocation(cash_pct=start_ratio)
    if strategy == Strategy.GLIDE_CASH:
        return CashGlidePath(start_cash_pct=start_ratio, end_cash_pct=end_ratio)
    return LeverageGlidePath(
        start_leverage=start_ratio,
        end_leverage=end_ratio,
        borrow_cost_annual_pct=borrow_cost_annual_pct,
    )


# ---------------------------------------------------------------------------
# Run inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PortfolioParams:
    initial_capital: float
    monthly_contribution: float
    strategy: StrategySpec

    def __post_init__(self):
        if self.initial_capital < 0:
            raise InvalidInputError(f"initial_capital must be >= 0, got {self.initial_capital}")
        if self.monthly_contribution < 0:
            raise InvalidInputError(
                f"monthly_contribution must be >= 0, got {self.monthly_contribution}"
            )


@dataclass(frozen=True)
class MarketModel:
    """Annual GBM parameters, in percent (8.0 means 8%)."""

    annual_return_pct: float
    annual_volatility_pct: float

    def __post_init__(self):
        if self.annual_volatility_pct < 0:
            raise InvalidInputError(
                f"annual_volatility_pct must be >= 0, got {self.annual_volatility_pct}"
            )

    @property
    def mean(self) -> float:
        return self.annual_return_pct / 100

    @property
    def volatility(self) -> float:
        return self.annual_volatility_pct / 100


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RunSummary(TypedDict):
    final_value: float
    total_invested: float
    profit: float
    roi_pct: float


class MonteCarloOutcome(TypedDict):
    terminal_values: list[float]
    benchmark_beat_rate: float  # % of runs whose profit beat 100%-asset buy & hold
    median_benchmark_return_pct: float


class SimulationStats(TypedDict):
    p10: float
    p50: float
    p90: float
    min: float
    max: float
    benchmark_beat_rate: NotRequired[float]
    median_benchmark_return_pct: NotRequired[float]


class HistogramBin(TypedDict):
    range_start: float
    range_end: float
    count: int
    label: str


class PathSampleResult(TypedDict):
    paths: list[list[PortfolioStep]]  # ascending by final total_value
    median_index: int


__all__ = [
    "InvalidInputError",
    "Strategy",
    "MarketPoint",
    "PortfolioStep",
    "FixedAllocation",
    "CashGlidePath",
    "LeverageGlidePath",
    "StrategySpec",
    "build_strategy",
    "PortfolioParams",
    "MarketModel",
    "RunSummary",
    "MonteCarloOutcome",
    "SimulationStats",
    "HistogramBin",
    "PathSampleResult",
]
