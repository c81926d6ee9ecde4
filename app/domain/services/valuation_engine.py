"""
VALUATION ENGINE
Merge configured holdings with fetched quotes and value the portfolio

RESPONSIBILITIES:
- Enrich every configured holding with its quote (or a zero quote)
- Pick the latest earnings figure per holding
- Compute investment, present value, gain/loss and portfolio share
- Roll holdings up into sector and portfolio summaries

RULES:
❌ No network access
❌ No caching of derived state between calls
❌ Never drop a holding because its quote failed
✅ Pure calculation over already-fetched data
✅ Sector order follows first appearance
"""

import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.domain.models import (
    EarningsType,
    EnrichedHolding,
    HoldingStatic,
    LatestEarnings,
    PortfolioSnapshot,
    PortfolioSummary,
    QuarterlyEarnings,
    QuoteFailure,
    QuoteOutcome,
    QuoteResult,
    SectorSummary,
)

DEFAULT_EXCHANGE = "NSE"

_QUARTER_LABEL = re.compile(r"^(\d)Q(\d{4})$")


def parse_quarter_label(label: str) -> Tuple[int, int]:
    """
    Parse `<digit>Q<year>` into a sortable (year, quarter) tuple.
    Unrecognised labels rank lowest as (0, 0).
    """
    match = _QUARTER_LABEL.match(label or "")
    if not match:
        return (0, 0)
    return (int(match.group(2)), int(match.group(1)))


def latest_quarter(entries: Sequence[QuarterlyEarnings]) -> Optional[QuarterlyEarnings]:
    """
    Most recent quarterly entry by (year, quarter).
    On ties the earliest entry in the input wins.
    """
    if not entries:
        return None
    return max(entries, key=lambda e: parse_quarter_label(e.period))


def select_latest_earnings(quote: Optional[QuoteResult]) -> LatestEarnings:
    """
    Per-share EPS takes precedence over quarterly totals.
    """
    if quote is None:
        return LatestEarnings()

    if quote.eps:
        return LatestEarnings(
            amount=quote.eps,
            period=quote.eps_period,
            type=EarningsType.PER_SHARE,
        )

    latest = latest_quarter(quote.quarterly_earnings)
    if latest is not None:
        return LatestEarnings(
            amount=latest.amount,
            period=latest.period,
            type=EarningsType.TOTAL,
        )

    return LatestEarnings()


def _percentage(part: float, whole: float) -> float:
    if whole == 0:
        return 0.0
    return (part / whole) * 100


def _enrich(
    holding: HoldingStatic,
    outcome: Optional[QuoteOutcome],
    default_exchange: str = DEFAULT_EXCHANGE,
) -> EnrichedHolding:
    quote = outcome if isinstance(outcome, QuoteResult) else None
    quote_error = None
    if isinstance(outcome, QuoteFailure):
        quote_error = outcome.reason
    elif outcome is None:
        quote_error = "No quote available"

    current_price = quote.current_price if quote and quote.current_price else 0.0
    investment = holding.purchase_price * holding.quantity
    present_value = current_price * holding.quantity
    gain_loss = present_value - investment

    return EnrichedHolding(
        id=holding.id,
        name=holding.name,
        sector=holding.sector,
        purchase_price=holding.purchase_price,
        quantity=holding.quantity,
        symbol=(quote.symbol if quote and quote.symbol else holding.name),
        exchange=(quote.exchange if quote and quote.exchange else default_exchange),
        current_price=current_price,
        pe_ratio=(quote.pe_ratio if quote and quote.pe_ratio else 0.0),
        latest_earnings=select_latest_earnings(quote),
        investment=investment,
        present_value=present_value,
        gain_loss=gain_loss,
        gain_loss_percentage=_percentage(gain_loss, investment),
        quote_error=quote_error,
    )


def _with_portfolio_percentage(holding: EnrichedHolding, total_present_value: float) -> EnrichedHolding:
    return replace(
        holding,
        portfolio_percentage=_percentage(holding.present_value, total_present_value),
    )


def calculate_sector_summaries(holdings: Iterable[EnrichedHolding]) -> List[SectorSummary]:
    """Group holdings by exact sector name, in order of first appearance."""
    sectors: Dict[str, List[EnrichedHolding]] = {}
    for holding in holdings:
        sectors.setdefault(holding.sector, []).append(holding)

    summaries = []
    for name, members in sectors.items():
        total_investment = sum(h.investment for h in members)
        total_present_value = sum(h.present_value for h in members)
        total_gain_loss = total_present_value - total_investment
        summaries.append(
            SectorSummary(
                name=name,
                total_investment=total_investment,
                total_present_value=total_present_value,
                total_gain_loss=total_gain_loss,
                gain_loss_percentage=_percentage(total_gain_loss, total_investment),
                holdings=members,
            )
        )
    return summaries


def calculate_portfolio_summary(
    holdings: Sequence[EnrichedHolding],
    now: Optional[datetime] = None,
) -> PortfolioSummary:
    total_investment = sum(h.investment for h in holdings)
    total_present_value = sum(h.present_value for h in holdings)
    total_gain_loss = total_present_value - total_investment
    return PortfolioSummary(
        total_investment=total_investment,
        total_present_value=total_present_value,
        total_gain_loss=total_gain_loss,
        gain_loss_percentage=_percentage(total_gain_loss, total_investment),
        last_updated=now or datetime.now(timezone.utc),
    )


def aggregate(
    static_holdings: Sequence[HoldingStatic],
    quotes: Mapping[str, QuoteOutcome],
    now: Optional[datetime] = None,
    default_exchange: str = DEFAULT_EXCHANGE,
) -> PortfolioSnapshot:
    """
    Value every configured holding against its quote.

    Missing or failed quotes value a holding at zero; the holding is
    still returned. Holdings without a reported exchange fall back to
    `default_exchange`. Portfolio percentages are derived only after
    the total present value of all holdings is known.
    """
    now = now or datetime.now(timezone.utc)

    enriched = [_enrich(h, quotes.get(h.name), default_exchange) for h in static_holdings]
    total_present_value = sum(h.present_value for h in enriched)
    holdings = [_with_portfolio_percentage(h, total_present_value) for h in enriched]

    return PortfolioSnapshot(
        holdings=holdings,
        sector_summaries=calculate_sector_summaries(holdings),
        portfolio_summary=calculate_portfolio_summary(holdings, now),
        last_updated=now,
    )


def build_static_snapshot(
    static_holdings: Sequence[HoldingStatic],
    now: Optional[datetime] = None,
    default_exchange: str = DEFAULT_EXCHANGE,
) -> PortfolioSnapshot:
    """
    Configured holdings valued without market data.
    Investment is known; everything price-derived is zero.
    """
    snapshot = aggregate(static_holdings, {}, now, default_exchange)
    holdings = [replace(h, quote_error=None) for h in snapshot.holdings]
    return PortfolioSnapshot(
        holdings=holdings,
        sector_summaries=calculate_sector_summaries(holdings),
        portfolio_summary=snapshot.portfolio_summary,
        last_updated=snapshot.last_updated,
    )
