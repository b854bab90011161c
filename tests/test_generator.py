"""Unit tests for the GBM market path generator."""

import math

import numpy as np
import pytest

from glidepath.engine import InvalidInputError, MarketPoint
from glidepath.engine.generator import constant_return_path, generate_path, standard_normal

from conftest import StubUniform


# ---------------------------------------------------------------------------
# Box-Muller
# ---------------------------------------------------------------------------

class TestStandardNormal:
    def test_pairs_consumed_in_draw_order(self):
        z = standard_normal(StubUniform([0.5, 0.5, 0.25, 0.0625]), 2)
        assert z[0] == pytest.approx(-math.sqrt(-2 * math.log(0.5)))
        assert z[1] == pytest.approx(math.sqrt(-2 * math.log(0.25)) * math.cos(math.pi / 8))

    def test_zero_u_takes_next_uniform(self):
        # u=0.0 skipped: u=0.3, v=0.5; 0.7 is never needed
        stub = StubUniform([0.0, 0.3, 0.5, 0.7])
        z = standard_normal(stub, 1)
        assert z[0] == pytest.approx(math.sqrt(-2 * math.log(0.3)) * math.cos(math.pi))
        assert z[0] == pytest.approx(-1.5518, abs=1e-4)
        assert stub.calls == 2

    def test_zero_v_takes_next_uniform(self):
        # v=0.0 skipped: u=0.5, v=0.25 gives cos(pi/2)
        z = standard_normal(StubUniform([0.5, 0.0, 0.25, 0.9]), 1)
        assert z[0] == pytest.approx(0.0, abs=1e-12)

    def test_later_variates_shift_past_zeros(self):
        z = standard_normal(StubUniform([0.5, 0.0, 0.5, 0.0, 0.25, 0.5]), 2)
        assert z[0] == pytest.approx(-math.sqrt(-2 * math.log(0.5)))
        assert z[1] == pytest.approx(-math.sqrt(-2 * math.log(0.25)))
        assert np.all(np.isfinite(z))

    def test_roughly_standard(self, rng):
        z = standard_normal(rng, 20000)
        assert abs(z.mean()) < 0.05
        assert z.std() == pytest.approx(1.0, abs=0.05)


# ---------------------------------------------------------------------------
# generate_path
# ---------------------------------------------------------------------------

class TestGeneratePath:
    def test_length_and_month_zero(self, rng):
        path = generate_path(120, 0.08, 0.15, initial_price=100, rng=rng)
        assert len(path) == 121
        assert path[0] == MarketPoint(0, 100.0, 0.0)
        assert [p.month_index for p in path] == list(range(121))

    def test_zero_months_single_point(self, rng):
        path = generate_path(0, 0.08, 0.15, initial_price=50, rng=rng)
        assert path == [MarketPoint(0, 50.0, 0.0)]

    def test_prices_positive(self, rng):
        path = generate_path(240, 0.0, 0.8, rng=rng)
        assert all(p.price > 0 for p in path)

    def test_period_return_matches_prices(self, rng):
        path = generate_path(24, 0.08, 0.15, rng=rng)
        for prev, cur in zip(path, path[1:]):
            assert cur.period_return == pytest.approx((cur.price - prev.price) / prev.price)

    def test_pinned_values_from_stub(self):
        uniforms = [0.5, 0.25, 0.1, 0.75, 0.9, 0.6]
        path = generate_path(3, 0.10, 0.20, initial_price=100, rng=StubUniform(uniforms))

        dt = 1 / 12
        drift = (0.10 - 0.5 * 0.20**2) * dt
        sigma = 0.20 * math.sqrt(dt)
        price = 100.0
        for i in range(3):
            u, v = uniforms[2 * i], uniforms[2 * i + 1]
            z = math.sqrt(-2 * math.log(u)) * math.cos(2 * math.pi * v)
            new_price = price * math.exp(drift + sigma * z)
            assert path[i + 1].price == pytest.approx(new_price, rel=1e-12)
            assert path[i + 1].period_return == pytest.approx((new_price - price) / price, rel=1e-9)
            price = new_price

    def test_bit_reproducible_with_same_source(self):
        uniforms = [0.31, 0.77, 0.05, 0.42, 0.93, 0.18, 0.66, 0.29]
        a = generate_path(12, 0.07, 0.18, rng=StubUniform(uniforms))
        b = generate_path(12, 0.07, 0.18, rng=StubUniform(uniforms))
        assert a == b

    def test_seeded_generator_reproducible(self):
        a = generate_path(60, 0.08, 0.15, rng=np.random.default_rng(7))
        b = generate_path(60, 0.08, 0.15, rng=np.random.default_rng(7))
        assert a == b

    def test_independent_draws_differ(self, rng):
        a = generate_path(60, 0.08, 0.15, rng=rng)
        b = generate_path(60, 0.08, 0.15, rng=rng)
        assert a != b

    def test_zero_volatility_is_deterministic_drift(self, rng):
        path = generate_path(12, 0.12, 0.0, rng=rng)
        expected_return = math.exp(0.12 / 12) - 1
        for p in path[1:]:
            assert p.period_return == pytest.approx(expected_return)

    def test_negative_months_rejected(self, rng):
        with pytest.raises(InvalidInputError):
            generate_path(-1, 0.08, 0.15, rng=rng)

    @pytest.mark.parametrize("price", [0.0, -10.0])
    def test_non_positive_price_rejected(self, rng, price):
        with pytest.raises(InvalidInputError):
            generate_path(12, 0.08, 0.15, initial_price=price, rng=rng)


class TestConstantReturnPath:
    def test_flat_market(self):
        path = constant_return_path(12)
        assert len(path) == 13
        assert all(p.price == 100.0 and p.period_return == 0.0 for p in path)

    def test_compounds(self):
        path = constant_return_path(2, 0.10, initial_price=100)
        assert path[1].price == pytest.approx(110.0)
        assert path[2].price == pytest.approx(121.0)
        assert path[0].period_return == 0.0
        assert path[2].period_return == 0.10
