"""Monthly Geometric Brownian Motion market path generator."""

import logging
from typing import Protocol

import numpy as np

from . import InvalidInputError, MarketPoint

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12
DEFAULT_INITIAL_PRICE = 100.0


class UniformSource(Protocol):
    """Anything with numpy's ``Generator.random(size)`` signature."""

    def random(self, size=None): ...


def standard_normal(rng: UniformSource, size: int) -> np.ndarray:
    """Draw ``size`` standard normals via Box-Muller.

    Uniforms are consumed in draw order, ``u`` then ``v`` for each variate.
    A zero draw for either is skipped and the next uniform takes its place,
    so both stay in (0, 1).
    """
    needed = 2 * size
    accepted = np.empty(0, dtype=float)
    while accepted.size < needed:
        draw = np.asarray(rng.random(needed - accepted.size), dtype=float).ravel()
        accepted = np.concatenate((accepted, draw[draw != 0.0]))

    u = accepted[0::2]
    v = accepted[1::2]
    return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)


def generate_path(
    months: int,
    annual_mean_return: float,
    annual_volatility: float,
    initial_price: float = DEFAULT_INITIAL_PRICE,
    rng: UniformSource | None = None,
) -> list[MarketPoint]:
    """Generate one synthetic monthly price path.

    Args:
        months: Number of monthly steps after month 0.
        annual_mean_return: Arithmetic annual drift (decimal, 0.08 = 8%).
        annual_volatility: Annualised volatility (decimal).
        initial_price: Price at month 0.
        rng: Uniform random source; a fresh ``np.random.default_rng()`` if None.

    Returns:
        ``months + 1`` MarketPoints, month 0 carrying ``initial_price`` and a
        zero period return.
    """
    if months < 0:
        raise InvalidInputError(f"months must be >= 0, got {months}")
    if initial_price <= 0:
        raise InvalidInputError(f"initial_price must be > 0, got {initial_price}")

    if rng is None:
        rng = np.random.default_rng()

    if months == 0:
        return [MarketPoint(0, float(initial_price), 0.0)]

    dt = 1.0 / MONTHS_PER_YEAR
    drift = (annual_mean_return - 0.5 * annual_volatility**2) * dt
    sigma = annual_volatility * np.sqrt(dt)

    z = standard_normal(rng, months)
    log_returns = drift + sigma * z

    # Running product keeps each price equal to previous * exp(log_return)
    factors = np.concatenate(([float(initial_price)], np.exp(log_returns)))
    prices = np.cumprod(factors)
    period_returns = (prices[1:] - prices[:-1]) / prices[:-1]

    path = [MarketPoint(0, float(prices[0]), 0.0)]
    path.extend(
        MarketPoint(i, float(prices[i]), float(period_returns[i - 1]))
        for i in range(1, months + 1)
    )
    return path


def constant_return_path(
    months: int,
    monthly_return: float = 0.0,
    initial_price: float = DEFAULT_INITIAL_PRICE,
) -> list[MarketPoint]:
    """Deterministic path compounding ``monthly_return`` every month."""
    if months < 0:
        raise InvalidInputError(f"months must be >= 0, got {months}")
    if initial_price <= 0:
        raise InvalidInputError(f"initial_price must be > 0, got {initial_price}")

    path = [MarketPoint(0, float(initial_price), 0.0)]
    price = float(initial_price)
    for i in range(1, months + 1):
        price = price * (1 + monthly_return)
        path.append(MarketPoint(i, price, monthly_return))
    return path
