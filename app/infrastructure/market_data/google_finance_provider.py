"""
Google Finance Quote Page Scraper
Fetches P/E ratio, earnings per share and the EPS reporting period
from the public quote page of a symbol.

The page has no API; parsing follows the page markup and is kept in
`parse_quote_page` so it can be swapped without touching callers.
"""

import logging
import re
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from app.infrastructure.market_data.types import (
    PageFundamentals,
    QuoteFetchError,
    RateLimitError,
    SymbolNotFoundError,
)

logger = logging.getLogger(__name__)

_MONTH_YEAR = re.compile(r"^[A-Za-z]{3,}\s+\d{4}$")
_YEAR = re.compile(r"\b20\d{2}\b")
_PERIOD_IN_TEXT = re.compile(r"([A-Za-z]{3,}\s+\d{4})")
_MISSING = {"", "-", "—", "–", "N/A"}


def parse_number(text: Optional[str]) -> Optional[float]:
    """
    Parse a figure as displayed on the page: `1,234.50`, `−3.2`, `12.5%`.
    """
    if text is None:
        return None
    cleaned = text.strip().replace(",", "").replace("−", "-").rstrip("%").strip()
    if cleaned in _MISSING:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def _has_class(tag, class_name: str) -> bool:
    return class_name in (tag.get("class") or [])


def _find_pe_ratio(soup: BeautifulSoup) -> Optional[str]:
    for label in soup.select("div.mfs7Fc"):
        if label.get_text(strip=True) != "P/E ratio":
            continue
        parent = label.parent
        if parent is None or parent.name != "span":
            return None
        value = parent.find_next_sibling()
        if value is not None and value.name == "div" and _has_class(value, "P6K39c"):
            return value.get_text(strip=True)
        return None
    return None


def _find_eps(soup: BeautifulSoup) -> Optional[str]:
    for row in soup.select("tr.roXhBd"):
        label = row.select_one("div.rsPbEe")
        if label is None or label.get_text(strip=True) != "Earnings per share":
            continue
        cell = row.select_one("td.QXDnM")
        return cell.get_text(strip=True) if cell is not None else None
    return None


def _find_eps_period(soup: BeautifulSoup) -> Optional[str]:
    # Financial table header, e.g. "Mar 2025"
    for header in soup.select("th.yNnsfe"):
        text = header.get_text(strip=True)
        if _MONTH_YEAR.match(text):
            return text

    # Any short element holding just a period
    for element in soup.find_all(True):
        text = element.get_text(strip=True)
        if len(text) < 20 and _MONTH_YEAR.match(text):
            return text

    # Any table header mentioning a year
    for header in soup.find_all("th"):
        text = header.get_text(strip=True)
        if _YEAR.search(text):
            match = _PERIOD_IN_TEXT.search(text)
            if match:
                return match.group(1)

    return None


def parse_quote_page(html: str, symbol: str, exchange: str) -> PageFundamentals:
    soup = BeautifulSoup(html, "html.parser")

    eps_period = _find_eps_period(soup)
    if eps_period is None:
        logger.debug("EPS period not found for %s:%s", symbol, exchange)

    return PageFundamentals(
        symbol=symbol,
        exchange=exchange,
        pe_ratio=parse_number(_find_pe_ratio(soup)),
        eps=parse_number(_find_eps(soup)),
        eps_period=eps_period,
    )


class GoogleFinanceQuoteProvider:
    """
    Scrapes quote pages at `{base_url}/{symbol}:{exchange}`.
    """

    BASE_URL = "https://www.google.com/finance/quote"

    HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/115.0 Safari/537.36"
        ),
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        exchange_aliases: Optional[Dict[str, str]] = None,
    ):
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.exchange_aliases = dict(exchange_aliases or {"NSI": "NSE"})
        self.session: Optional[httpx.AsyncClient] = None

    async def _get_session(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP session"""
        if self.session is None:
            self.session = httpx.AsyncClient(
                headers=self.HEADERS,
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
        return self.session

    def quote_url(self, symbol: str, exchange: str) -> str:
        return f"{self.base_url}/{quote(symbol, safe='')}:{quote(exchange, safe='')}"

    async def get_fundamentals(self, symbol: str, exchange: str) -> PageFundamentals:
        if not symbol:
            raise SymbolNotFoundError("No symbol to look up")

        exchange = self.exchange_aliases.get(exchange, exchange) or "NSE"
        url = self.quote_url(symbol, exchange)

        session = await self._get_session()
        try:
            response = await session.get(url)
        except httpx.HTTPError as exc:
            raise QuoteFetchError(f"Google Finance request failed for {symbol}: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError(f"Rate limit exceeded for {symbol}. Please try again later.")
        if response.status_code == 404:
            raise SymbolNotFoundError(f"Stock symbol {symbol} not found or has no data.")
        if response.status_code != 200:
            raise QuoteFetchError(f"Google Finance HTTP {response.status_code} for {symbol}")

        return parse_quote_page(response.text, symbol, exchange)

    async def close(self) -> None:
        if self.session is not None:
            await self.session.aclose()
            self.session = None
