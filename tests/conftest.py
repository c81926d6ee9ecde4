from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.routes import portfolio
from app.domain.models import HoldingStatic, QuoteResult
from app.infrastructure.market_data.types import PageFundamentals
from app.services.portfolio_service import PortfolioService
from tests.stubs import StubFundamentalsProvider, StubQuoteProvider, make_fetcher


@pytest.fixture()
def holdings():
    return [
        HoldingStatic(id="1", name="HDFC Bank", sector="Financial Services", purchase_price=100.0, quantity=10),
        HoldingStatic(id="2", name="ICICI Bank", sector="Financial Services", purchase_price=50.0, quantity=10),
        HoldingStatic(id="3", name="KPIT Tech", sector="Technology", purchase_price=200.0, quantity=5),
    ]


@pytest.fixture()
def quote_provider():
    return StubQuoteProvider(
        quotes={
            "HDFC Bank": QuoteResult(name="HDFC Bank", symbol="HDFCBANK", exchange="NSI", current_price=150.0, pe_ratio=20.0),
            "ICICI Bank": QuoteResult(name="ICICI Bank", symbol="ICICIBANK", exchange="NSI", current_price=50.0, pe_ratio=18.5),
        },
    )


@pytest.fixture()
def fundamentals_provider():
    return StubFundamentalsProvider(
        pages={
            "HDFCBANK": PageFundamentals(symbol="HDFCBANK", exchange="NSE", pe_ratio=21.0, eps=5.2, eps_period="Mar 2025"),
        },
    )


@pytest.fixture()
def portfolio_service(holdings, quote_provider, fundamentals_provider) -> PortfolioService:
    fetcher = make_fetcher(quote_provider, fundamentals_provider)
    return PortfolioService(holdings=holdings, fetcher=fetcher, snapshot_ttl_seconds=60)


@pytest.fixture()
def app(portfolio_service) -> FastAPI:
    app = FastAPI()
    app.include_router(portfolio.router, prefix="/api/portfolio", tags=["Portfolio"])
    app.state.portfolio_service = portfolio_service
    app.state.refresh_scheduler = None
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
