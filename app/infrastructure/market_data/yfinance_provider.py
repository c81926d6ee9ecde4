"""
YFinance Quote Provider
Resolve holding names to Yahoo symbols and fetch quotes, P/E and
quarterly earnings. Async-safe via thread offloading.
"""

import asyncio
import logging
import math
import time
from typing import Any, Dict, List, Optional, Tuple

import yfinance as yf

from app.domain.models import QuarterlyEarnings, QuoteResult
from app.infrastructure.market_data.types import (
    QuoteFetchError,
    RateLimitError,
    SymbolNotFoundError,
)

logger = logging.getLogger(__name__)

EARNINGS_ROWS = ("Net Income", "Net Income Common Stockholders")


def _classify_error(exc: Exception, subject: str) -> QuoteFetchError:
    message = str(exc)
    lowered = message.lower()
    if "rate limit" in lowered or "too many requests" in lowered:
        return RateLimitError(f"Rate limit exceeded for {subject}. Please try again later.")
    if "not found" in lowered or "no data" in lowered:
        return SymbolNotFoundError(f"Stock symbol {subject} not found or has no data.")
    return QuoteFetchError(f"Failed to fetch quote data for {subject}: {message}")


def _number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def quarter_label(ts) -> str:
    """`2024-06-30` -> `2Q2024`"""
    return f"{(ts.month - 1) // 3 + 1}Q{ts.year}"


def quarterly_earnings_from_statement(statement) -> Tuple[QuarterlyEarnings, ...]:
    """
    Turn a yfinance quarterly income statement (rows = line items,
    columns = period end dates) into labelled quarterly totals.
    """
    if statement is None or getattr(statement, "empty", True):
        return ()
    row_name = next((name for name in EARNINGS_ROWS if name in statement.index), None)
    if row_name is None:
        return ()

    entries = []
    for column, value in statement.loc[row_name].items():
        amount = _number(value)
        if amount is None or not hasattr(column, "year"):
            continue
        entries.append(QuarterlyEarnings(period=quarter_label(column), amount=amount))
    return tuple(entries)


class YFinanceQuoteProvider:
    """
    Yahoo Finance quote provider keyed by company name.
    """

    def __init__(
        self,
        preferred_exchange: str = "NSI",
        search_cache_ttl_seconds: int = 3600,
        max_search_results: int = 8,
    ):
        self.preferred_exchange = preferred_exchange
        self.search_cache_ttl_seconds = search_cache_ttl_seconds
        self.max_search_results = max_search_results
        self._cache: Dict[str, Tuple[float, str]] = {}

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    def _cache_get(self, key: str) -> Optional[str]:
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if time.time() - ts > self.search_cache_ttl_seconds:
            self._cache.pop(key, None)
            return None
        return value

    def _cache_set(self, key: str, value: str) -> None:
        self._cache[key] = (time.time(), value)

    def _search_quotes(self, name: str) -> List[Dict[str, Any]]:
        return list(yf.Search(name, max_results=self.max_search_results).quotes or [])

    def _load_ticker(self, symbol: str) -> Tuple[Dict[str, Any], Any]:
        ticker = yf.Ticker(symbol)
        info = ticker.info or {}
        try:
            statement = ticker.quarterly_income_stmt
        except Exception as exc:
            logger.debug("No quarterly statement for %s: %s", symbol, exc)
            statement = None
        return info, statement

    # ------------------------------------------------------------------
    # SEARCH
    # ------------------------------------------------------------------

    async def search_symbol(self, name: str) -> str:
        """
        Resolve a company name to a Yahoo symbol, preferring listings on
        the preferred exchange.
        """
        key = name.strip().lower()
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        try:
            quotes = await asyncio.to_thread(self._search_quotes, name)
        except Exception as exc:
            raise _classify_error(exc, name) from exc

        candidates = [q for q in quotes if q.get("symbol")]
        if not candidates:
            raise SymbolNotFoundError(f"No results found for query: {name}")

        preferred = next(
            (q for q in candidates if q.get("exchange") == self.preferred_exchange),
            candidates[0],
        )
        symbol = preferred["symbol"]
        self._cache_set(key, symbol)
        return symbol

    # ------------------------------------------------------------------
    # QUOTES
    # ------------------------------------------------------------------

    async def get_quote(self, symbol: str, name: Optional[str] = None) -> QuoteResult:
        try:
            info, statement = await asyncio.to_thread(self._load_ticker, symbol)
        except Exception as exc:
            raise _classify_error(exc, symbol) from exc

        if not info:
            raise SymbolNotFoundError(f"Stock symbol {symbol} not found or has no data.")

        price = _number(info.get("regularMarketPrice"))
        if price is None:
            price = _number(info.get("currentPrice"))

        pe = _number(info.get("trailingPE"))
        if pe is None:
            pe = _number(info.get("forwardPE"))

        volume = _number(info.get("regularMarketVolume"))
        if volume is None:
            volume = _number(info.get("volume"))

        raw_symbol = info.get("symbol") or symbol
        return QuoteResult(
            name=name or info.get("longName") or info.get("shortName") or raw_symbol,
            symbol=raw_symbol.split(".")[0],
            exchange=info.get("exchange") or "",
            current_price=price or 0.0,
            pe_ratio=round(pe, 2) if pe is not None else 0.0,
            quarterly_earnings=quarterly_earnings_from_statement(statement),
            currency=info.get("currency") or "INR",
            market_cap=_number(info.get("marketCap")) or 0.0,
            volume=int(volume or 0),
        )

    async def get_quote_by_name(self, name: str) -> QuoteResult:
        symbol = await self.search_symbol(name)
        return await self.get_quote(symbol, name=name)
