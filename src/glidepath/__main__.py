import logging

import click
import numpy as np

from glidepath.config import Settings
from glidepath.engine import InvalidInputError, MarketModel, PortfolioParams, Strategy, build_strategy
from glidepath.formatters import format_compact_krw, format_eok_range, format_krw
from glidepath.logging_config import setup_logging

logger = logging.getLogger(__name__)

HISTOGRAM_BAR_WIDTH = 40


def _portfolio_options(func):
    """Shared portfolio/market options; defaults come from Settings."""
    options = [
        click.option("--capital", "initial_capital", type=float, default=None,
                     help="Initial capital (KRW)"),
        click.option("--monthly", "monthly_contribution", type=float, default=None,
                     help="Monthly contribution (KRW)"),
        click.option("--strategy", type=click.Choice([s.value for s in Strategy]), default=None,
                     help="Rebalancing strategy"),
        click.option("--start-ratio", type=float, default=None,
                     help="Start cash % (fixed/glide_cash) or leverage x (glide_leverage)"),
        click.option("--end-ratio", type=float, default=None,
                     help="End cash % or leverage x"),
        click.option("--borrow-cost", type=float, default=None,
                     help="Annual borrow rate % for leveraged positions"),
        click.option("--years", "duration_years", type=int, default=None,
                     help="Projection horizon in years"),
        click.option("--return", "expected_return", type=float, default=None,
                     help="Annual expected return %"),
        click.option("--volatility", type=float, default=None,
                     help="Annual volatility %"),
        click.option("--seed", type=int, default=None,
                     help="Random seed for reproducible runs"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve(settings: Settings, opts: dict) -> tuple[PortfolioParams, MarketModel, int]:
    """Merge CLI overrides onto Settings and build engine inputs."""
    def pick(key: str):
        value = opts.get(key)
        return value if value is not None else getattr(settings, key)

    duration_years = pick("duration_years")
    if duration_years <= 0:
        raise click.BadParameter("must be > 0", param_hint="--years")

    try:
        strategy = build_strategy(
            pick("strategy"),
            pick("start_ratio"),
            pick("end_ratio"),
            pick("borrow_cost"),
        )
        params = PortfolioParams(
            initial_capital=pick("initial_capital"),
            monthly_contribution=pick("monthly_contribution"),
            strategy=strategy,
        )
        market = MarketModel(
            annual_return_pct=pick("expected_return"),
            annual_volatility_pct=pick("volatility"),
        )
    except InvalidInputError as e:
        raise click.UsageError(str(e)) from e

    return params, market, duration_years


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """glidepath - Monte Carlo projection of rebalanced portfolios"""
    setup_logging(verbose=verbose)


@cli.command()
@_portfolio_options
def simulate(seed: int | None, **opts):
    """Simulate one random market path and print the yearly ledger."""
    from glidepath.engine.generator import generate_path
    from glidepath.engine.simulator import simulate as run_simulation, summarize_run

    settings = Settings()
    params, market, duration_years = _resolve(settings, opts)

    path = generate_path(
        duration_years * 12,
        market.mean,
        market.volatility,
        initial_price=settings.initial_price,
        rng=np.random.default_rng(seed),
    )
    steps = run_simulation(params, path)
    summary = summarize_run(steps)

    click.echo(f"{'Year':>4}  {'Total':>16}  {'Asset':>16}  {'Cash':>16}  {'Invested':>16}")
    for step in steps:
        if step.month_index % 12 == 0:
            click.echo(
                f"{step.month_index // 12:>4}  {format_krw(step.total_value):>16}  "
                f"{format_krw(step.asset_value):>16}  {format_krw(step.cash_value):>16}  "
                f"{format_krw(step.cumulative_contribution):>16}"
            )

    click.echo("")
    click.echo(f"Final value:    {format_krw(summary['final_value'])}")
    click.echo(f"Total invested: {format_krw(summary['total_invested'])}")
    click.echo(f"Profit:         {format_krw(summary['profit'])}")
    click.echo(f"ROI:            {summary['roi_pct']:.1f}%")


@cli.command("monte-carlo")
@_portfolio_options
@click.option("--iterations", "-n", type=int, default=None, help="Number of simulated runs")
@click.option("--bins", type=int, default=None, help="Histogram bin count")
@click.option("--workers", "-w", type=int, default=1, show_default=True,
              help="Worker processes (>1 uses the parallel driver)")
def monte_carlo(seed: int | None, iterations: int | None, bins: int | None, workers: int, **opts):
    """Run many simulations and print the terminal-value distribution."""
    from glidepath.engine.monte_carlo import (
        run_monte_carlo,
        run_monte_carlo_parallel,
        summarize_outcome,
    )
    from glidepath.engine.stats import compute_histogram

    settings = Settings()
    params, market, duration_years = _resolve(settings, opts)
    if iterations is None:
        iterations = settings.simulation_iterations
    if bins is None:
        bins = settings.simulation_histogram_bins

    click.echo(
        f"Running {iterations} simulations over {duration_years} years "
        f"({params.strategy.kind.value}, {market.annual_return_pct}% / {market.annual_volatility_pct}%)"
    )

    try:
        if workers > 1:
            outcome = run_monte_carlo_parallel(
                params, iterations, duration_years, market,
                seed=seed,
                max_workers=min(workers, settings.simulation_max_workers),
                chunk_size=settings.simulation_chunk_size,
                initial_price=settings.initial_price,
            )
        else:
            outcome = run_monte_carlo(
                params, iterations, duration_years, market,
                rng=np.random.default_rng(seed),
                initial_price=settings.initial_price,
            )
        stats = summarize_outcome(outcome)
        histogram = compute_histogram(outcome["terminal_values"], bins, label_fn=format_eok_range)
    except InvalidInputError as e:
        raise click.UsageError(str(e)) from e

    click.echo("")
    click.echo(f"  P10 (unlucky): {format_krw(stats['p10'])}")
    click.echo(f"  P50 (median):  {format_krw(stats['p50'])}")
    click.echo(f"  P90 (lucky):   {format_krw(stats['p90'])}")
    click.echo(f"  Min / Max:     {format_krw(stats['min'])} / {format_krw(stats['max'])}")
    click.echo(f"  Beat benchmark: {stats['benchmark_beat_rate']:.1f}% of runs")
    click.echo(f"  Median benchmark return: {stats['median_benchmark_return_pct']:.1f}%")
    click.echo("")

    peak = max(b["count"] for b in histogram) or 1
    for b in histogram:
        bar = "#" * round(b["count"] / peak * HISTOGRAM_BAR_WIDTH)
        click.echo(f"  {b['label']:>14} | {bar} {b['count']}")


@cli.command()
@_portfolio_options
@click.option("--count", "-n", type=int, default=None, help="Number of sampled paths")
def paths(seed: int | None, count: int | None, **opts):
    """Sample full paths and print the worst, median and best trajectories."""
    from glidepath.engine.monte_carlo import invested_capital_series, sample_paths

    settings = Settings()
    params, market, duration_years = _resolve(settings, opts)
    if count is None:
        count = settings.simulation_path_count

    try:
        result = sample_paths(
            params, count, duration_years, market,
            rng=np.random.default_rng(seed),
            initial_price=settings.initial_price,
        )
    except InvalidInputError as e:
        raise click.UsageError(str(e)) from e

    sampled = result["paths"]
    invested = invested_capital_series(result)
    picks = [("Worst", 0), ("Median", result["median_index"]), ("Best", len(sampled) - 1)]

    click.echo(f"{count} paths over {duration_years} years, invested {format_krw(invested[-1])}")
    for name, index in picks:
        final = sampled[index][-1]
        click.echo(f"  {name:<6} #{index:<4} {format_krw(final.total_value)}")

    finals = [format_compact_krw(steps[-1].total_value) for steps in sampled]
    click.echo(f"  Sorted finals: {', '.join(finals)}")


@cli.command()
@click.option("--host", default=None, help="Bind address (default: settings.api_host)")
@click.option("--port", type=int, default=None, help="Port (default: settings.api_port)")
def serve(host: str | None, port: int | None):
    """Start the JSON API server."""
    import uvicorn

    from glidepath.web.app import create_app

    settings = Settings()
    host = host or settings.api_host
    port = port or settings.api_port
    click.echo(f"Serving glidepath API on http://{host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    cli()
