"""
DOMAIN MODELS: HOLDINGS & QUOTES

Immutable structures for the configured holdings and the market data
fetched for them. No network access. No valuation logic.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class EarningsType(str, Enum):
    """How an earnings figure is expressed"""
    PER_SHARE = "per-share"
    TOTAL = "total"


@dataclass(frozen=True)
class HoldingStatic:
    """
    A tracked stock position as configured.
    `name` is the join key to fetched quotes.
    """
    id: str
    name: str
    sector: str
    purchase_price: float
    quantity: int


@dataclass(frozen=True)
class QuarterlyEarnings:
    """Total earnings for one quarter, labelled like `2Q2024`"""
    period: str
    amount: float


@dataclass(frozen=True)
class LatestEarnings:
    amount: float = 0.0
    period: Optional[str] = None
    type: Optional[EarningsType] = None


@dataclass(frozen=True)
class QuoteResult:
    """
    Normalized market data for one holding name.

    `eps` / `eps_period` carry the per-share figure scraped from the
    quote page; `quarterly_earnings` carries total earnings reported by
    the quote library.
    """
    name: str
    symbol: str
    exchange: str
    current_price: float = 0.0
    pe_ratio: float = 0.0
    eps: Optional[float] = None
    eps_period: Optional[str] = None
    quarterly_earnings: Tuple[QuarterlyEarnings, ...] = field(default_factory=tuple)
    currency: str = "INR"
    market_cap: float = 0.0
    volume: int = 0


@dataclass(frozen=True)
class QuoteFailure:
    """Marker for a name whose quote could not be fetched"""
    name: str
    reason: str


QuoteOutcome = Union[QuoteResult, QuoteFailure]
