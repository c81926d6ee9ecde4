from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.domain.models import EarningsType

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LatestEarningsSchema(ApiModel):
    period: Optional[str] = None
    amount: float = 0.0
    type: Optional[EarningsType] = None


class HoldingSchema(ApiModel):
    id: str
    name: str
    sector: str
    purchase_price: float
    quantity: int
    symbol: str
    exchange: str
    current_price: float
    pe_ratio: float
    latest_earnings: LatestEarningsSchema
    investment: float
    present_value: float
    gain_loss: float
    gain_loss_percentage: float
    portfolio_percentage: float
    quote_error: Optional[str] = None


class SectorSummarySchema(ApiModel):
    name: str
    total_investment: float
    total_present_value: float
    total_gain_loss: float
    gain_loss_percentage: float
    holdings: List[HoldingSchema]


class PortfolioSummarySchema(ApiModel):
    total_investment: float
    total_present_value: float
    total_gain_loss: float
    gain_loss_percentage: float
    last_updated: datetime


class PortfolioSnapshotSchema(ApiModel):
    holdings: List[HoldingSchema]
    sector_summaries: List[SectorSummarySchema]
    portfolio_summary: PortfolioSummarySchema
    last_updated: datetime


class ApiEnvelope(ApiModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
