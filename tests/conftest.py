"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from glidepath.engine import FixedAllocation, MarketModel, PortfolioParams


class StubUniform:
    """Deterministic uniform source replaying ``values`` in order (cycling)."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0
        self._pos = 0

    def _next(self) -> float:
        value = self.values[self._pos % len(self.values)]
        self._pos += 1
        return value

    def random(self, size=None):
        self.calls += 1
        if size is None:
            return self._next()
        shape = (size,) if isinstance(size, int) else tuple(size)
        n = int(np.prod(shape))
        return np.array([self._next() for _ in range(n)], dtype=float).reshape(shape)



@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def default_params():
    """Sample KRW portfolio: 10M start, 500k/month, 20% cash."""
    return PortfolioParams(
        initial_capital=10_000_000,
        monthly_contribution=500_000,
        strategy=FixedAllocation(cash_pct=20),
    )


@pytest.fixture
def market_model():
    return MarketModel(annual_return_pct=8.0, annual_volatility_pct=15.0)
