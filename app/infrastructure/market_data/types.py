"""
Quote provider protocols and errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from app.domain.models import QuoteResult


class QuoteFetchError(Exception):
    """A provider could not produce data for a symbol or name."""


class SymbolNotFoundError(QuoteFetchError):
    pass


class RateLimitError(QuoteFetchError):
    pass


@dataclass(frozen=True)
class PageFundamentals:
    """Figures scraped from a quote page."""
    symbol: str
    exchange: str
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None
    eps_period: Optional[str] = None


class QuoteProvider(Protocol):
    async def get_quote_by_name(self, name: str) -> QuoteResult:
        ...


class FundamentalsProvider(Protocol):
    async def get_fundamentals(self, symbol: str, exchange: str) -> PageFundamentals:
        ...
