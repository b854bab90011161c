"""API tests via FastAPI's TestClient."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from glidepath.config import Settings
from glidepath.web.app import create_app
from glidepath.web.cache import CacheService


@pytest.fixture
def client():
    app = create_app(Settings(cors_origins=["http://testserver"]))
    with TestClient(app) as c:
        yield c


def _body(**overrides):
    body = {
        "portfolio": {
            "initial_capital": 10_000_000,
            "monthly_contribution": 500_000,
            "strategy": {"kind": "fixed", "cash_pct": 20},
        },
        "market": {"expected_return": 8.0, "volatility": 15.0},
        "duration_years": 2,
        "seed": 42,
    }
    body.update(overrides)
    return body


class TestSystem:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestSimulationRun:
    def test_single_run(self, client):
        resp = client.post("/api/v1/simulation/run", json=_body())
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data["steps"]) == 25
        assert data["steps"][0]["month_index"] == 0
        assert data["summary"]["total_invested"] == pytest.approx(10_000_000 + 25 * 500_000)

    def test_seeded_run_is_cached(self, client):
        first = client.post("/api/v1/simulation/run", json=_body())
        second = client.post("/api/v1/simulation/run", json=_body())
        assert first.json()["meta"]["cached"] is False
        assert second.json()["meta"]["cached"] is True
        assert first.json()["data"] == second.json()["data"]

    def test_unseeded_run_not_cached(self, client):
        client.post("/api/v1/simulation/run", json=_body(seed=None))
        resp = client.post("/api/v1/simulation/run", json=_body(seed=None))
        assert resp.json()["meta"]["cached"] is False

    def test_defaults_accepted(self, client):
        resp = client.post("/api/v1/simulation/run", json={"duration_years": 1})
        assert resp.status_code == 200
        assert len(resp.json()["data"]["steps"]) == 13

    def test_leverage_strategy(self, client):
        body = _body()
        body["portfolio"]["strategy"] = {
            "kind": "glide_leverage",
            "start_leverage": 1.5,
            "end_leverage": 1.0,
            "borrow_cost_annual_pct": 5.0,
        }
        resp = client.post("/api/v1/simulation/run", json=body)
        assert resp.status_code == 200
        steps = resp.json()["data"]["steps"]
        assert steps[0]["target_asset_ratio"] == pytest.approx(1.5)
        assert steps[-1]["target_asset_ratio"] == pytest.approx(1.0)

    def test_unknown_strategy_kind(self, client):
        body = _body()
        body["portfolio"]["strategy"] = {"kind": "momentum"}
        assert client.post("/api/v1/simulation/run", json=body).status_code == 422

    def test_zero_duration_rejected(self, client):
        resp = client.post("/api/v1/simulation/run", json=_body(duration_years=0))
        assert resp.status_code == 422


class TestMonteCarlo:
    def test_distribution(self, client):
        resp = client.post(
            "/api/v1/simulation/monte-carlo", json=_body(iterations=300, bins=10)
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        stats = data["stats"]
        assert stats["min"] <= stats["p10"] <= stats["p50"] <= stats["p90"] <= stats["max"]
        assert 0 <= stats["benchmark_beat_rate"] <= 100
        assert len(data["histogram"]) == 10
        assert sum(b["count"] for b in data["histogram"]) == 300
        assert all(b["label"].endswith("억") for b in data["histogram"])

    def test_seed_reproducible(self, client):
        a = client.post("/api/v1/simulation/monte-carlo", json=_body(iterations=50, bins=5))
        client.app.state.cache._memory.clear()
        b = client.post("/api/v1/simulation/monte-carlo", json=_body(iterations=50, bins=5))
        assert b.json()["meta"]["cached"] is False
        assert a.json()["data"] == b.json()["data"]

    def test_iteration_cap(self, client):
        resp = client.post("/api/v1/simulation/monte-carlo", json=_body(iterations=0))
        assert resp.status_code == 422


class TestPaths:
    def test_sampled_paths(self, client):
        resp = client.post("/api/v1/simulation/paths", json=_body(count=6))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["median_index"] == 3
        finals = [p[-1]["total_value"] for p in data["paths"]]
        assert finals == sorted(finals)
        assert len(data["invested_capital"]) == 25


class TestCacheService:
    def test_set_get_and_clear_prefix(self):
        async def scenario():
            cache = await CacheService.create(ttl=60, maxsize=8)
            await cache.set("simulation:run:a", {"x": 1})
            await cache.set("simulation:paths:b", {"x": 2})
            assert await cache.get("simulation:run:a") == {"x": 1}
            assert len(cache) == 2
            await cache.clear_prefix("simulation:run:")
            assert await cache.get("simulation:run:a") is None
            assert len(cache) == 1

        asyncio.run(scenario())

    def test_maxsize_evicts(self):
        async def scenario():
            cache = CacheService(ttl=60, maxsize=2)
            for i in range(3):
                await cache.set(f"k{i}", i)
            assert len(cache) == 2

        asyncio.run(scenario())
