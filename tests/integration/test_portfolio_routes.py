import pytest
from httpx import ASGITransport, AsyncClient

from app.domain.services.valuation_engine import build_static_snapshot

pytestmark = pytest.mark.integration


async def test_static_portfolio(client):
    resp = await client.get("/api/portfolio/static")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert set(data) == {"holdings", "sectorSummaries", "portfolioSummary", "lastUpdated"}
    assert len(data["holdings"]) == 3
    assert data["holdings"][0]["investment"] == 1000.0
    assert data["holdings"][0]["presentValue"] == 0.0
    assert data["portfolioSummary"]["totalInvestment"] == 2500.0


async def test_dynamic_portfolio_full_set(client):
    resp = await client.get("/api/portfolio/dynamic")

    assert resp.status_code == 200
    data = resp.json()["data"]
    hdfc = data["holdings"][0]
    assert hdfc["symbol"] == "HDFCBANK"
    assert hdfc["purchasePrice"] == 100.0
    assert hdfc["presentValue"] == 1500.0
    assert hdfc["gainLoss"] == 500.0
    assert hdfc["gainLossPercentage"] == 50.0
    assert hdfc["portfolioPercentage"] == 75.0
    assert hdfc["peRatio"] == 20.0
    assert hdfc["latestEarnings"] == {"period": "Mar 2025", "amount": 5.2, "type": "per-share"}
    assert "quoteError" not in hdfc

    kpit = data["holdings"][2]
    assert kpit["presentValue"] == 0.0
    assert kpit["latestEarnings"] == {"amount": 0.0}
    assert "not found" in kpit["quoteError"]

    financial = data["sectorSummaries"][0]
    assert financial["name"] == "Financial Services"
    assert financial["totalPresentValue"] == 2000.0
    assert [h["name"] for h in financial["holdings"]] == ["HDFC Bank", "ICICI Bank"]


async def test_dynamic_portfolio_with_one_failed_quote(client):
    resp = await client.get("/api/portfolio/dynamic", params={"stocks": "HDFC Bank, KPIT Tech"})

    assert resp.status_code == 200
    holdings = resp.json()["data"]["holdings"]
    assert [h["name"] for h in holdings] == ["HDFC Bank", "KPIT Tech"]
    assert holdings[1]["presentValue"] == 0.0
    assert holdings[0]["portfolioPercentage"] == 100.0


@pytest.mark.parametrize("stocks", ["", " , ,"])
async def test_dynamic_portfolio_rejects_empty_names(client, stocks):
    resp = await client.get("/api/portfolio/dynamic", params={"stocks": stocks})

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "No valid stock names provided",
        "message": "Please provide at least one valid stock name",
    }


async def test_dynamic_portfolio_rejects_unknown_names(client):
    resp = await client.get("/api/portfolio/dynamic", params={"stocks": "HDFC Bank,Unknown Co"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Unknown holdings"
    assert "Unknown Co" in body["message"]


async def test_dynamic_portfolio_unexpected_error(client, portfolio_service, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("aggregation exploded")

    monkeypatch.setattr(portfolio_service, "live_snapshot", boom)

    resp = await client.get("/api/portfolio/dynamic")

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "Failed to fetch dynamic portfolio data",
        "message": "aggregation exploded",
    }


async def test_refresh_without_scheduler_forces_fetch(client, portfolio_service):
    first = await portfolio_service.live_snapshot()

    resp = await client.post("/api/portfolio/refresh")

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert portfolio_service.cached_snapshot() is not first


async def test_refresh_through_scheduler(client, app, holdings):
    class FakeScheduler:
        last_error = None

        def __init__(self):
            self.triggers = []

        async def refresh(self, trigger):
            self.triggers.append(trigger)
            return build_static_snapshot(holdings)

    scheduler = FakeScheduler()
    app.state.refresh_scheduler = scheduler

    resp = await client.post("/api/portfolio/refresh")

    assert resp.status_code == 200
    assert scheduler.triggers == ["manual"]


async def test_refresh_failure_envelope(client, app):
    class FailingScheduler:
        last_error = "quotes unavailable"

        async def refresh(self, trigger):
            return None

    app.state.refresh_scheduler = FailingScheduler()

    resp = await client.post("/api/portfolio/refresh")

    assert resp.status_code == 500
    assert resp.json()["message"] == "quotes unavailable"


async def test_health_and_root_without_startup():
    from app.main import app as main_app

    transport = ASGITransport(app=main_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        health = await ac.get("/health")
        root = await ac.get("/")

    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["scheduler"] == {"running": False}
    assert root.json()["docs"] == "/docs"
