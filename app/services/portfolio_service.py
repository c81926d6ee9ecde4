# app/services/portfolio_service.py

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.domain.models import HoldingStatic, PortfolioSnapshot
from app.domain.services.valuation_engine import DEFAULT_EXCHANGE, aggregate, build_static_snapshot
from app.infrastructure.market_data.quote_fetcher import QuoteFetcher

logger = logging.getLogger(__name__)

Fingerprint = Tuple[str, ...]


class UnknownHoldingError(ValueError):
    def __init__(self, names: Sequence[str]):
        self.names = list(names)
        super().__init__(f"Unknown holdings: {', '.join(self.names)}")


class PortfolioService:
    """
    Fetch quotes and value the configured portfolio.

    Live snapshots are cached per request fingerprint (the sorted set of
    holding names) for `snapshot_ttl_seconds`; `invalidate` drops them.
    Expired entries are evicted on every write, and at most
    `max_cached_snapshots` fingerprints are kept (oldest evicted first).
    """

    def __init__(
        self,
        holdings: Sequence[HoldingStatic],
        fetcher: QuoteFetcher,
        snapshot_ttl_seconds: float = 15.0,
        max_cached_snapshots: int = 64,
        default_exchange: str = DEFAULT_EXCHANGE,
    ):
        self.holdings: List[HoldingStatic] = list(holdings)
        self.fetcher = fetcher
        self.snapshot_ttl_seconds = snapshot_ttl_seconds
        self.max_cached_snapshots = max(1, max_cached_snapshots)
        self.default_exchange = default_exchange
        self._cache: Dict[Fingerprint, Tuple[float, PortfolioSnapshot]] = {}
        self._locks: Dict[Fingerprint, asyncio.Lock] = {}

    # ------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------
    def select_holdings(self, names: Optional[Iterable[str]] = None) -> List[HoldingStatic]:
        if names is None:
            return list(self.holdings)

        requested = list(dict.fromkeys(names))
        known = {h.name for h in self.holdings}
        unknown = [n for n in requested if n not in known]
        if unknown:
            raise UnknownHoldingError(unknown)

        wanted = set(requested)
        return [h for h in self.holdings if h.name in wanted]

    @staticmethod
    def fingerprint(holdings: Iterable[HoldingStatic]) -> Fingerprint:
        return tuple(sorted({h.name for h in holdings}))

    # ------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------
    def static_snapshot(self) -> PortfolioSnapshot:
        return build_static_snapshot(self.holdings, default_exchange=self.default_exchange)

    def cached_snapshot(self, names: Optional[Iterable[str]] = None) -> Optional[PortfolioSnapshot]:
        key = self.fingerprint(self.select_holdings(names))
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, snapshot = cached
        if time.monotonic() - ts > self.snapshot_ttl_seconds:
            return None
        return snapshot

    async def live_snapshot(
        self,
        names: Optional[Iterable[str]] = None,
        force: bool = False,
    ) -> PortfolioSnapshot:
        holdings = self.select_holdings(names)
        key = self.fingerprint(holdings)
        lock = self._locks.setdefault(key, asyncio.Lock())

        async with lock:
            if not force:
                cached = self._cache.get(key)
                if cached and time.monotonic() - cached[0] <= self.snapshot_ttl_seconds:
                    return cached[1]

            logger.info("🔍 Building live portfolio snapshot | holdings=%d", len(holdings))
            quotes = await self.fetcher.fetch_quotes(h.name for h in holdings)
            snapshot = aggregate(holdings, quotes, default_exchange=self.default_exchange)
            self._store(key, snapshot)

        summary = snapshot.portfolio_summary
        logger.info(
            "✅ Portfolio snapshot ready | invested=%.2f value=%.2f pnl=%.2f missing=%d",
            summary.total_investment,
            summary.total_present_value,
            summary.total_gain_loss,
            len(snapshot.failed_names),
        )
        return snapshot

    def invalidate(self, names: Optional[Iterable[str]] = None) -> None:
        if names is None:
            self._cache.clear()
        else:
            self._cache.pop(self.fingerprint(self.select_holdings(names)), None)
        self._drop_idle_locks()

    # ------------------------------------------------------------
    # Cache upkeep
    # ------------------------------------------------------------
    def _store(self, key: Fingerprint, snapshot: PortfolioSnapshot) -> None:
        now = time.monotonic()
        self._cache[key] = (now, snapshot)

        expired = [k for k, (ts, _) in self._cache.items() if now - ts > self.snapshot_ttl_seconds]
        for k in expired:
            del self._cache[k]

        overflow = len(self._cache) - self.max_cached_snapshots
        if overflow > 0:
            oldest = sorted(self._cache, key=lambda k: self._cache[k][0])[:overflow]
            for k in oldest:
                del self._cache[k]

        self._drop_idle_locks()

    def _drop_idle_locks(self) -> None:
        # A held lock belongs to an in-flight build and must survive
        for k in [k for k, lock in self._locks.items() if k not in self._cache and not lock.locked()]:
            del self._locks[k]
