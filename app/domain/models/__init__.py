"""
Domain Models Package
Export all domain entities
"""

from .holding import (
    # Enums
    EarningsType,

    # Inputs
    HoldingStatic,
    LatestEarnings,
    QuarterlyEarnings,
    QuoteFailure,
    QuoteOutcome,
    QuoteResult,
)
from .portfolio import (
    EnrichedHolding,
    PortfolioSnapshot,
    PortfolioSummary,
    SectorSummary,
)

__all__ = [
    # Enums
    "EarningsType",

    # Inputs
    "HoldingStatic",
    "LatestEarnings",
    "QuarterlyEarnings",
    "QuoteFailure",
    "QuoteOutcome",
    "QuoteResult",

    # Outputs
    "EnrichedHolding",
    "PortfolioSnapshot",
    "PortfolioSummary",
    "SectorSummary",
]
