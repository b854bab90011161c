"""Simulation API endpoints: single run, Monte Carlo distribution, sampled paths."""

import logging

import numpy as np
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from glidepath.config import Settings
from glidepath.engine.generator import generate_path
from glidepath.engine.monte_carlo import (
    invested_capital_series,
    run_monte_carlo,
    sample_paths,
    summarize_outcome,
)
from glidepath.engine.simulator import simulate, summarize_run
from glidepath.engine.stats import compute_histogram
from glidepath.formatters import format_eok_range
from glidepath.web.cache import CacheService
from glidepath.web.dependencies import get_cache, get_settings
from glidepath.web.schemas import (
    ApiResponse,
    Meta,
    MonteCarloRequest,
    MonteCarloResult,
    PathsRequest,
    PathsResult,
    SimulationRequest,
    SimulationRunResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulation", tags=["simulation"])


def _cache_key(kind: str, req: SimulationRequest) -> str | None:
    # Unseeded runs are fresh draws every time
    if req.seed is None:
        return None
    return f"simulation:{kind}:{req.model_dump_json()}"


def _run_single(req: SimulationRequest, initial_price: float) -> SimulationRunResult:
    params = req.portfolio.to_params()
    market = req.market.to_model()
    path = generate_path(
        req.duration_years * 12,
        market.mean,
        market.volatility,
        initial_price=initial_price,
        rng=np.random.default_rng(req.seed),
    )
    steps = simulate(params, path)
    return SimulationRunResult(
        summary=summarize_run(steps),
        steps=[step._asdict() for step in steps],
    )


def _run_distribution(req: MonteCarloRequest, initial_price: float) -> MonteCarloResult:
    outcome = run_monte_carlo(
        req.portfolio.to_params(),
        req.iterations,
        req.duration_years,
        req.market.to_model(),
        rng=np.random.default_rng(req.seed),
        initial_price=initial_price,
    )
    return MonteCarloResult(
        iterations=req.iterations,
        duration_years=req.duration_years,
        stats=summarize_outcome(outcome),
        histogram=compute_histogram(outcome["terminal_values"], req.bins, label_fn=format_eok_range),
    )


def _run_paths(req: PathsRequest, initial_price: float) -> PathsResult:
    result = sample_paths(
        req.portfolio.to_params(),
        req.count,
        req.duration_years,
        req.market.to_model(),
        rng=np.random.default_rng(req.seed),
        initial_price=initial_price,
    )
    return PathsResult(
        median_index=result["median_index"],
        paths=[[step._asdict() for step in steps] for steps in result["paths"]],
        invested_capital=invested_capital_series(result),
    )


@router.post("/run", response_model=ApiResponse[SimulationRunResult])
async def post_simulation_run(
    req: SimulationRequest,
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Simulate the portfolio over one random market path."""
    cache_key = _cache_key("run", req)
    if cache_key:
        cached = await cache.get(cache_key)
        if cached:
            return ApiResponse(data=cached, meta=Meta(cached=True))

    result = await run_in_threadpool(_run_single, req, settings.initial_price)
    if cache_key:
        await cache.set(cache_key, result.model_dump())
    return ApiResponse(data=result)


@router.post("/monte-carlo", response_model=ApiResponse[MonteCarloResult])
async def post_monte_carlo(
    req: MonteCarloRequest,
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Terminal-value distribution and benchmark comparison over many runs."""
    cache_key = _cache_key("monte-carlo", req)
    if cache_key:
        cached = await cache.get(cache_key)
        if cached:
            return ApiResponse(data=cached, meta=Meta(cached=True))

    logger.info(
        "Monte Carlo request: %d iterations, %d years, strategy=%s",
        req.iterations, req.duration_years, req.portfolio.strategy.kind,
    )
    result = await run_in_threadpool(_run_distribution, req, settings.initial_price)
    if cache_key:
        await cache.set(cache_key, result.model_dump())
    return ApiResponse(data=result)


@router.post("/paths", response_model=ApiResponse[PathsResult])
async def post_paths(
    req: PathsRequest,
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Full ledgers for a sample of runs, sorted by terminal value."""
    cache_key = _cache_key("paths", req)
    if cache_key:
        cached = await cache.get(cache_key)
        if cached:
            return ApiResponse(data=cached, meta=Meta(cached=True))

    result = await run_in_threadpool(_run_paths, req, settings.initial_price)
    if cache_key:
        await cache.set(cache_key, result.model_dump())
    return ApiResponse(data=result)
