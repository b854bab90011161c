"""Rebalancing ledger for one market path."""

from typing import Sequence

from . import InvalidInputError, MarketPoint, PortfolioParams, PortfolioStep, RunSummary


def simulate(params: PortfolioParams, path: Sequence[MarketPoint]) -> list[PortfolioStep]:
    """Run the portfolio over ``path`` and return one step per market point.

    Each month applies, strictly in this order:

    1. progress = i / max(n - 1, 1)
    2. target asset ratio from the strategy at that progress
    3. market growth on the asset sleeve
    4. borrow interest on negative cash
    5. monthly contribution into cash
    6. frictionless rebalance to the target ratio

    Reordering any of these changes the numbers.
    """
    strategy = params.strategy
    contribution = params.monthly_contribution
    borrow_rate = strategy.monthly_borrow_rate

    asset_value = params.initial_capital * strategy.initial_ratio()
    cash_value = params.initial_capital - asset_value
    cumulative_contribution = params.initial_capital

    total_months = len(path)
    denominator = max(total_months - 1, 1)
    steps: list[PortfolioStep] = []

    for i, point in enumerate(path):
        progress = i / denominator
        target_ratio = strategy.target_ratio(progress)

        asset_value *= 1 + point.period_return

        if cash_value < 0:
            cash_value -= abs(cash_value) * borrow_rate

        cash_value += contribution
        cumulative_contribution += contribution

        total_value = asset_value + cash_value
        diff = total_value * target_ratio - asset_value
        asset_value += diff
        cash_value -= diff

        steps.append(
            PortfolioStep(
                month_index=point.month_index,
                total_value=asset_value + cash_value,
                cash_value=cash_value,
                asset_value=asset_value,
                asset_price=point.price,
                cumulative_contribution=cumulative_contribution,
                target_asset_ratio=target_ratio,
            )
        )

    return steps


def summarize_run(steps: Sequence[PortfolioStep]) -> RunSummary:
    """Headline numbers for a finished run: final value, invested, profit, ROI."""
    if not steps:
        raise InvalidInputError("cannot summarize an empty run")

    final = steps[-1]
    total_invested = final.cumulative_contribution
    profit = final.total_value - total_invested
    roi_pct = profit / total_invested * 100 if total_invested > 0 else 0.0

    return RunSummary(
        final_value=final.total_value,
        total_invested=total_invested,
        profit=profit,
        roi_pct=roi_pct,
    )
