"""Monte Carlo driver and path sampler.

Every trial draws an independent GBM path, runs the portfolio over it and
compares the result against a 100%-asset buy-and-hold benchmark fed the
same contributions. Trials share no state, so the iteration range can be
split across processes; results are reassembled by chunk index so the
outcome for a given seed does not depend on completion order.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Sequence

import numpy as np

from . import (
    InvalidInputError,
    MarketModel,
    MarketPoint,
    MonteCarloOutcome,
    PathSampleResult,
    PortfolioParams,
    PortfolioStep,
    SimulationStats,
)
from .generator import DEFAULT_INITIAL_PRICE, MONTHS_PER_YEAR, UniformSource, generate_path
from .simulator import simulate
from .stats import compute_percentiles

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 10000
DEFAULT_PATH_COUNT = 50
DEFAULT_CHUNK_SIZE = 1000


def _check_positive(name: str, value: int) -> None:
    if value <= 0:
        raise InvalidInputError(f"{name} must be > 0, got {value}")


def _run_trial(
    params: PortfolioParams,
    months: int,
    market_model: MarketModel,
    rng: UniformSource,
    initial_price: float,
) -> tuple[list[MarketPoint], list[PortfolioStep]]:
    path = generate_path(
        months,
        market_model.mean,
        market_model.volatility,
        initial_price=initial_price,
        rng=rng,
    )
    return path, simulate(params, path)


def benchmark_growth(params: PortfolioParams, path: Sequence[MarketPoint]) -> tuple[float, float]:
    """Buy-and-hold 100% asset over ``path`` with the same contributions.

    Returns:
        (benchmark value, benchmark contributions)
    """
    bench_value = params.initial_capital
    bench_contribution = params.initial_capital
    for point in path:
        bench_value *= 1 + point.period_return
        bench_value += params.monthly_contribution
        bench_contribution += params.monthly_contribution
    return bench_value, bench_contribution


def _run_trials(
    params: PortfolioParams,
    iterations: int,
    months: int,
    market_model: MarketModel,
    rng: UniformSource,
    initial_price: float,
) -> tuple[list[float], int, list[float]]:
    """Run ``iterations`` trials; return terminal values, beat count, benchmark returns."""
    terminal_values: list[float] = []
    benchmark_returns: list[float] = []
    beat_count = 0

    for _ in range(iterations):
        path, steps = _run_trial(params, months, market_model, rng, initial_price)
        final = steps[-1]
        terminal_values.append(final.total_value)

        bench_value, bench_contribution = benchmark_growth(params, path)
        bench_profit = bench_value - bench_contribution
        portfolio_profit = final.total_value - final.cumulative_contribution

        # Ties go to the benchmark
        if portfolio_profit > bench_profit:
            beat_count += 1

        if bench_contribution > 0:
            benchmark_returns.append(bench_profit / bench_contribution * 100)
        else:
            benchmark_returns.append(0.0)

    return terminal_values, beat_count, benchmark_returns


def _reduce_outcome(
    terminal_values: list[float],
    beat_count: int,
    benchmark_returns: list[float],
    iterations: int,
) -> MonteCarloOutcome:
    ordered = sorted(benchmark_returns)
    return MonteCarloOutcome(
        terminal_values=terminal_values,
        benchmark_beat_rate=beat_count / iterations * 100,
        median_benchmark_return_pct=ordered[len(ordered) // 2],
    )


def run_monte_carlo(
    params: PortfolioParams,
    iterations: int,
    duration_years: int,
    market_model: MarketModel,
    rng: UniformSource | None = None,
    initial_price: float = DEFAULT_INITIAL_PRICE,
) -> MonteCarloOutcome:
    """Run ``iterations`` independent trials in this process.

    Args:
        params: Portfolio configuration shared by every trial.
        iterations: Number of trials.
        duration_years: Horizon; each path has ``duration_years * 12`` months.
        market_model: Annual return/volatility in percent.
        rng: Uniform random source; a fresh ``np.random.default_rng()`` if None.
        initial_price: Price at month 0 of every path.

    Returns:
        MonteCarloOutcome with terminal values in trial order.
    """
    _check_positive("iterations", iterations)
    _check_positive("duration_years", duration_years)
    if rng is None:
        rng = np.random.default_rng()

    months = duration_years * MONTHS_PER_YEAR
    started = time.perf_counter()
    terminal_values, beat_count, benchmark_returns = _run_trials(
        params, iterations, months, market_model, rng, initial_price
    )
    logger.debug(
        "Monte Carlo: %d trials x %d months in %.2fs",
        iterations, months, time.perf_counter() - started,
    )
    return _reduce_outcome(terminal_values, beat_count, benchmark_returns, iterations)


def _run_chunk_worker(
    chunk_index: int,
    params: PortfolioParams,
    iterations: int,
    months: int,
    market_model: MarketModel,
    seed_seq: np.random.SeedSequence,
    initial_price: float,
) -> tuple[int, list[float], int, list[float]]:
    """Picklable worker for ProcessPoolExecutor."""
    rng = np.random.default_rng(seed_seq)
    terminal_values, beat_count, benchmark_returns = _run_trials(
        params, iterations, months, market_model, rng, initial_price
    )
    return chunk_index, terminal_values, beat_count, benchmark_returns


def run_monte_carlo_parallel(
    params: PortfolioParams,
    iterations: int,
    duration_years: int,
    market_model: MarketModel,
    seed: int | None = None,
    max_workers: int = 4,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    initial_price: float = DEFAULT_INITIAL_PRICE,
) -> MonteCarloOutcome:
    """Split the trials into chunks and run them across worker processes.

    Each chunk draws from its own child of ``SeedSequence(seed)``, so a fixed
    seed reproduces the same outcome for the same ``chunk_size`` regardless
    of ``max_workers``.
    """
    _check_positive("iterations", iterations)
    _check_positive("duration_years", duration_years)
    _check_positive("max_workers", max_workers)
    _check_positive("chunk_size", chunk_size)

    months = duration_years * MONTHS_PER_YEAR
    sizes = [chunk_size] * (iterations // chunk_size)
    if iterations % chunk_size:
        sizes.append(iterations % chunk_size)
    child_seeds = np.random.SeedSequence(seed).spawn(len(sizes))
    max_workers = min(max_workers, len(sizes))

    logger.info(
        "Running %d trials in %d chunks with %d workers",
        iterations, len(sizes), max_workers,
    )
    started = time.perf_counter()

    chunks: dict[int, tuple[list[float], int, list[float]]] = {}
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                _run_chunk_worker, i, params, size, months,
                market_model, child_seeds[i], initial_price,
            ): i
            for i, size in enumerate(sizes)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                chunk_index, values, beats, bench_returns = future.result()
            except Exception as e:
                logger.warning("Monte Carlo chunk %d failed: %s", index, e)
                raise
            chunks[chunk_index] = (values, beats, bench_returns)

    terminal_values: list[float] = []
    benchmark_returns: list[float] = []
    beat_count = 0
    for i in range(len(sizes)):
        values, beats, bench_returns = chunks[i]
        terminal_values.extend(values)
        benchmark_returns.extend(bench_returns)
        beat_count += beats

    logger.info(
        "Parallel Monte Carlo complete: %d trials in %.2fs",
        iterations, time.perf_counter() - started,
    )
    return _reduce_outcome(terminal_values, beat_count, benchmark_returns, iterations)


def summarize_outcome(outcome: MonteCarloOutcome) -> SimulationStats:
    """Percentiles of the terminal values with the benchmark figures attached."""
    stats = compute_percentiles(outcome["terminal_values"])
    stats["benchmark_beat_rate"] = outcome["benchmark_beat_rate"]
    stats["median_benchmark_return_pct"] = outcome["median_benchmark_return_pct"]
    return stats


def sample_paths(
    params: PortfolioParams,
    count: int,
    duration_years: int,
    market_model: MarketModel,
    rng: UniformSource | None = None,
    initial_price: float = DEFAULT_INITIAL_PRICE,
) -> PathSampleResult:
    """Keep ``count`` full ledgers, sorted ascending by final total value.

    ``median_index`` is ``count // 2``, the lower median for even counts.
    """
    _check_positive("count", count)
    _check_positive("duration_years", duration_years)
    if rng is None:
        rng = np.random.default_rng()

    months = duration_years * MONTHS_PER_YEAR
    paths = [
        _run_trial(params, months, market_model, rng, initial_price)[1]
        for _ in range(count)
    ]
    paths.sort(key=lambda steps: steps[-1].total_value)

    return PathSampleResult(paths=paths, median_index=len(paths) // 2)


def invested_capital_series(result: PathSampleResult) -> list[float]:
    """Cumulative contributions per month; identical across all sampled paths."""
    if not result["paths"]:
        return []
    return [step.cumulative_contribution for step in result["paths"][0]]
