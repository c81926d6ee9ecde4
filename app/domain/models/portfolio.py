"""
DOMAIN MODELS: PORTFOLIO VALUATION

Immutable valuation outputs. Rebuilt from scratch on every aggregation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .holding import LatestEarnings


@dataclass(frozen=True)
class EnrichedHolding:
    """
    A configured holding merged with its quote and valued.
    """
    id: str
    name: str
    sector: str
    purchase_price: float
    quantity: int
    symbol: str
    exchange: str
    current_price: float
    pe_ratio: float
    latest_earnings: LatestEarnings
    investment: float
    present_value: float
    gain_loss: float
    gain_loss_percentage: float
    portfolio_percentage: float = 0.0
    quote_error: Optional[str] = None


@dataclass(frozen=True)
class SectorSummary:
    name: str
    total_investment: float
    total_present_value: float
    total_gain_loss: float
    gain_loss_percentage: float
    holdings: List[EnrichedHolding]


@dataclass(frozen=True)
class PortfolioSummary:
    total_investment: float
    total_present_value: float
    total_gain_loss: float
    gain_loss_percentage: float
    last_updated: datetime


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Result of one aggregation pass.
    """
    holdings: List[EnrichedHolding]
    sector_summaries: List[SectorSummary]
    portfolio_summary: PortfolioSummary
    last_updated: datetime

    @property
    def failed_names(self) -> List[str]:
        return [h.name for h in self.holdings if h.quote_error is not None]
