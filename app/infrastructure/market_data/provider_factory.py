"""
Quote fetcher factory (config-driven).
"""

from __future__ import annotations

from typing import Dict, Optional

from app.config import settings
from app.domain.services.config_engine import ConfigEngine
from app.infrastructure.market_data.google_finance_provider import GoogleFinanceQuoteProvider
from app.infrastructure.market_data.quote_fetcher import QuoteFetcher
from app.infrastructure.market_data.yfinance_provider import YFinanceQuoteProvider


def _build_google_provider(app_config: Dict) -> Optional[GoogleFinanceQuoteProvider]:
    google_cfg = app_config.get("google", {}) or {}
    if not google_cfg.get("enabled", True):
        return None
    return GoogleFinanceQuoteProvider(
        base_url=google_cfg.get("base_url"),
        timeout_seconds=float(google_cfg.get("timeout", 10)),
        exchange_aliases=app_config.get("exchange_aliases") or {"NSI": "NSE"},
    )


def _build_yahoo_provider(app_config: Dict) -> YFinanceQuoteProvider:
    yahoo_cfg = app_config.get("yahoo", {}) or {}
    if not yahoo_cfg.get("enabled", True):
        raise ValueError("Yahoo quote provider is required and cannot be disabled")
    return YFinanceQuoteProvider(
        preferred_exchange=app_config.get("preferred_exchange", "NSI"),
        search_cache_ttl_seconds=int(app_config.get("search_cache_ttl", 3600)),
    )


def get_quote_fetcher(config_engine: ConfigEngine) -> QuoteFetcher:
    app_config = config_engine.get_app_setting("market_data", default={}) or {}
    return QuoteFetcher(
        quote_provider=_build_yahoo_provider(app_config),
        fundamentals_provider=_build_google_provider(app_config),
        timeout_seconds=float(app_config.get("timeout", settings.QUOTE_TIMEOUT_SECONDS)),
        max_retries=int(app_config.get("max_retries", settings.QUOTE_MAX_RETRIES)),
        backoff_base_seconds=float(
            app_config.get("backoff_base_seconds", settings.QUOTE_BACKOFF_BASE_SECONDS)
        ),
        max_concurrency=int(app_config.get("max_concurrency", settings.QUOTE_MAX_CONCURRENCY)),
        fundamentals_timeout_seconds=float(
            app_config.get("fundamentals_timeout", settings.FUNDAMENTALS_TIMEOUT_SECONDS)
        ),
    )
