"""
FastAPI Main Application with Refresh Scheduler
Portfolio tracker: configured holdings valued with live market data
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.logging import setup_logging
from app.domain.services.config_engine import ConfigEngine
from app.domain.services.valuation_engine import DEFAULT_EXCHANGE
from app.infrastructure.market_data.provider_factory import get_quote_fetcher
from app.scheduler.scheduler import PortfolioRefreshScheduler
from app.services.portfolio_service import PortfolioService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Portfolio Tracker")
    logger.info("=" * 60)

    # 1. Load configuration
    logger.info("⚙️  Step 1/3: Loading configuration...")
    config_engine = ConfigEngine(settings.CONFIG_DIR)
    config_engine.load_all()
    logger.info("✅ Configuration loaded | holdings=%d", len(config_engine.holdings))

    # 2. Build services
    logger.info("🏗️  Step 2/3: Initializing market data and portfolio service...")
    fetcher = get_quote_fetcher(config_engine)
    service = PortfolioService(
        holdings=config_engine.holdings,
        fetcher=fetcher,
        snapshot_ttl_seconds=settings.SNAPSHOT_TTL_SECONDS,
        max_cached_snapshots=settings.SNAPSHOT_CACHE_MAX_ENTRIES,
        default_exchange=config_engine.get_app_setting(
            "market_data", "default_exchange", DEFAULT_EXCHANGE
        ),
    )
    app.state.config_engine = config_engine
    app.state.portfolio_service = service
    app.state.refresh_scheduler = None
    logger.info("✅ Services initialized")

    # 3. Start background refresh
    logger.info("🚀 Step 3/3: Starting background refresh...")
    scheduler = None
    if settings.REFRESH_ENABLED:
        try:
            scheduler = PortfolioRefreshScheduler(service, settings.REFRESH_INTERVAL_SECONDS)
            scheduler.start()
            app.state.refresh_scheduler = scheduler
        except Exception as e:
            logger.error(f"❌ Failed to start refresh scheduler: {e}")
            scheduler = None
    else:
        logger.info("⏰ Refresh scheduler disabled")

    logger.info("🎯 API Server: http://%s:%s (docs at /docs)", settings.API_HOST, settings.API_PORT)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Portfolio Tracker...")
    if scheduler:
        scheduler.stop()

    fundamentals = fetcher.fundamentals_provider
    if fundamentals is not None and hasattr(fundamentals, "close"):
        await fundamentals.close()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Portfolio Tracker",
    description="Static holdings valued with live quotes, grouped by sector",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Service and scheduler health"""
    scheduler = getattr(app.state, "refresh_scheduler", None)
    service = getattr(app.state, "portfolio_service", None)
    return {
        "status": "healthy",
        "service": "Portfolio Tracker",
        "version": VERSION,
        "holdings": len(service.holdings) if service else 0,
        "scheduler": scheduler.status() if scheduler else {"running": False},
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "📈 Portfolio Tracker",
        "version": VERSION,
        "docs": "/docs",
    }


# Import and include routers
from app.api.routes import portfolio

app.include_router(portfolio.router, prefix="/api/portfolio", tags=["Portfolio"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
