"""
Quote fetcher - resolve every requested name, isolate failures.

Each name is resolved through the quote provider and then enriched with
page fundamentals. Names are fetched concurrently; a failure for one
name never affects another and never escapes as an exception.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from app.domain.models import QuoteFailure, QuoteOutcome, QuoteResult
from app.infrastructure.market_data.types import (
    FundamentalsProvider,
    QuoteProvider,
    SymbolNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuoteFetcher:
    def __init__(
        self,
        quote_provider: QuoteProvider,
        fundamentals_provider: Optional[FundamentalsProvider] = None,
        timeout_seconds: float = 20.0,
        max_retries: int = 2,
        backoff_base_seconds: float = 0.5,
        max_concurrency: int = 8,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        fundamentals_timeout_seconds: Optional[float] = None,
    ):
        self.quote_provider = quote_provider
        self.fundamentals_provider = fundamentals_provider
        self.timeout_seconds = timeout_seconds
        # Bounds every fundamentals attempt for one name, retries included
        self.fundamentals_timeout_seconds = (
            fundamentals_timeout_seconds if fundamentals_timeout_seconds is not None else timeout_seconds
        )
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.max_concurrency = max(1, max_concurrency)
        self._sleep = sleep

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        """
        Retry transient failures with exponential backoff and jitter.
        Unknown symbols are not retried.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return await call()
            except SymbolNotFoundError:
                raise
            except Exception as exc:
                last_exc = exc
                if attempt < self.max_retries:
                    delay = self.backoff_base_seconds * (2 ** attempt) + random.random() * 0.2
                    await self._sleep(delay)
        if last_exc:
            raise last_exc
        return await call()

    async def _enrich_with_fundamentals(self, quote: QuoteResult) -> QuoteResult:
        if self.fundamentals_provider is None:
            return quote
        try:
            page = await asyncio.wait_for(
                self._with_retry(
                    lambda: self.fundamentals_provider.get_fundamentals(quote.symbol, quote.exchange)
                ),
                timeout=self.fundamentals_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Fundamentals timed out for %s (%s), keeping quote", quote.name, quote.symbol)
            return quote
        except Exception as exc:
            logger.warning("Fundamentals unavailable for %s (%s): %s", quote.name, quote.symbol, exc)
            return quote

        return replace(
            quote,
            pe_ratio=quote.pe_ratio or page.pe_ratio or 0.0,
            eps=page.eps,
            eps_period=page.eps_period,
        )

    async def _resolve_quote(self, name: str) -> QuoteResult:
        return await self._with_retry(lambda: self.quote_provider.get_quote_by_name(name))

    async def fetch_quote(self, name: str) -> QuoteOutcome:
        """
        Quote resolution runs under the per-name timeout. Fundamentals
        enrichment runs afterwards under its own timeout and can only
        add to a resolved quote, never fail it.
        """
        try:
            quote = await asyncio.wait_for(self._resolve_quote(name), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            reason = f"Timed out fetching quote for {name}"
        except Exception as exc:
            reason = str(exc) or f"Failed to fetch data for {name}"
        else:
            return await self._enrich_with_fundamentals(quote)
        logger.warning("Quote failed for %s: %s", name, reason)
        return QuoteFailure(name=name, reason=reason)

    async def fetch_quotes(self, names: Iterable[str]) -> Dict[str, QuoteOutcome]:
        """
        One outcome per distinct requested name, keyed by that name.
        Returns only after every fetch has settled.
        """
        unique: List[str] = list(dict.fromkeys(names))
        if not unique:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(name: str) -> QuoteOutcome:
            async with semaphore:
                return await self.fetch_quote(name)

        outcomes = await asyncio.gather(*(bounded(name) for name in unique))
        results = dict(zip(unique, outcomes))

        failed = sum(1 for o in outcomes if isinstance(o, QuoteFailure))
        logger.info("Fetched quotes | requested=%d ok=%d failed=%d", len(unique), len(unique) - failed, failed)
        return results
