"""
Portfolio API Routes
Configured holdings valued with live market data
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from app.domain.models import PortfolioSnapshot
from app.domain.schemas.portfolio import ApiEnvelope, PortfolioSnapshotSchema
from app.scheduler.scheduler import TRIGGER_MANUAL, PortfolioRefreshScheduler
from app.services.portfolio_service import PortfolioService, UnknownHoldingError

logger = logging.getLogger(__name__)
router = APIRouter()

PortfolioEnvelope = ApiEnvelope[PortfolioSnapshotSchema]


def _get_service(request: Request) -> PortfolioService:
    service = getattr(request.app.state, "portfolio_service", None)
    if service is None:
        raise RuntimeError("Portfolio service not initialized")
    return service


def _get_scheduler(request: Request) -> Optional[PortfolioRefreshScheduler]:
    return getattr(request.app.state, "refresh_scheduler", None)


def _parse_stock_names(stocks: str) -> List[str]:
    return [name.strip() for name in stocks.split(",") if name.strip()]


def _success(snapshot: PortfolioSnapshot) -> PortfolioEnvelope:
    return PortfolioEnvelope(
        success=True,
        data=PortfolioSnapshotSchema.model_validate(snapshot),
    )


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    envelope = ApiEnvelope(success=False, error=error, message=message)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/static", response_model=PortfolioEnvelope, response_model_exclude_none=True)
async def get_static_portfolio(request: Request):
    """
    Configured holdings without market data (fast, no external calls).
    """
    try:
        return _success(_get_service(request).static_snapshot())
    except Exception as e:
        logger.exception("Static portfolio error")
        return _error(500, "Failed to fetch static portfolio data", str(e))


@router.get("/dynamic", response_model=PortfolioEnvelope, response_model_exclude_none=True)
async def get_dynamic_portfolio(
    request: Request,
    stocks: Optional[str] = Query(None, description="Comma-separated holding names"),
):
    """
    Holdings valued with live quotes.

    Without `stocks` the whole configured portfolio is returned.
    A failed quote values that holding at zero; it is never dropped.
    """
    names: Optional[List[str]] = None
    if stocks is not None:
        names = _parse_stock_names(stocks)
        if not names:
            return _error(
                400,
                "No valid stock names provided",
                "Please provide at least one valid stock name",
            )

    try:
        snapshot = await _get_service(request).live_snapshot(names)
    except UnknownHoldingError as e:
        return _error(400, "Unknown holdings", str(e))
    except Exception as e:
        logger.exception("Dynamic portfolio error")
        return _error(500, "Failed to fetch dynamic portfolio data", str(e))

    return _success(snapshot)


@router.post("/refresh", response_model=PortfolioEnvelope, response_model_exclude_none=True)
async def refresh_portfolio(request: Request):
    """
    Rebuild the live portfolio now, superseding any pending scheduled refresh.
    """
    scheduler = _get_scheduler(request)
    try:
        if scheduler is not None:
            snapshot = await scheduler.refresh(TRIGGER_MANUAL)
            if snapshot is None:
                return _error(
                    500,
                    "Failed to refresh portfolio data",
                    scheduler.last_error or "Refresh did not complete",
                )
        else:
            snapshot = await _get_service(request).live_snapshot(force=True)
    except Exception as e:
        logger.exception("Portfolio refresh error")
        return _error(500, "Failed to refresh portfolio data", str(e))

    return _success(snapshot)
