"""Domain models describing the data exchanged between pipeline services."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

QUARTERLY = "quarterly"
ANNUAL = "annual"


@dataclass(frozen=True)
class PricePoint:
    """Daily closing price (or FX rate) for one trading day."""

    date: date
    close: float


@dataclass
class FinancialStatement:
    """Represents a normalized financial statement for a single period."""

    date: date
    period_type: str  # QUARTERLY or ANNUAL
    fields: Dict[str, float] = field(default_factory=dict)

    def get(self, name: str) -> Optional[float]:
        return self.fields.get(name)


@dataclass
class TrailingSnapshot:
    """Trailing-twelve-month figures derived from four quarterly statements."""

    date: date
    close: Optional[float]
    shares_outstanding: float
    market_cap: float
    net_income: float
    free_cash_flow: float
    eps: float
    pe: float
    fcf_yield: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "close": self.close,
            "sharesOutstanding": self.shares_outstanding,
            "marketCap": self.market_cap,
            "netIncome": self.net_income,
            "freeCashFlow": self.free_cash_flow,
            "eps": self.eps,
            "pe": self.pe,
            "fcfYield": self.fcf_yield,
        }


@dataclass
class GrowthResult:
    """Compound per-period growth of revenue and earnings."""

    revenue: Optional[float] = None
    earnings: Optional[float] = None


@dataclass
class QuoteSummary:
    """Typed view over the provider's quote-summary modules.

    Every field is optional: non-equities routinely lack ``financialData`` and
    ``calendarEvents.earnings``.

    Only the next earnings date is carried. The last one would need the
    separate quote endpoint (``earningsTimestamp``), which is not called.
    """

    symbol: str
    name: Optional[str] = None
    quote_type: Optional[str] = None
    market_cap: Optional[float] = None
    price_currency: Optional[str] = None
    statement_currency: Optional[str] = None
    market_price: Optional[float] = None
    beta: Optional[float] = None
    gross_margins: Optional[float] = None
    operating_margins: Optional[float] = None
    profit_margins: Optional[float] = None
    shares_outstanding: Optional[float] = None
    trailing_eps: Optional[float] = None
    forward_eps: Optional[float] = None
    trailing_pe: Optional[float] = None
    forward_pe: Optional[float] = None
    price_to_book: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    next_earnings_date: Optional[date] = None

    @property
    def is_equity(self) -> bool:
        return (self.quote_type or "").upper() == "EQUITY"

    @property
    def fifty_two_week_ratio(self) -> Optional[float]:
        """Position of the market price inside the 52-week range (0 = low, 1 = high)."""
        price = self.market_price
        low = self.fifty_two_week_low
        high = self.fifty_two_week_high
        if price is None or low is None or high is None or high == low:
            return None
        return (price - low) / (high - low)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "quoteType": self.quote_type,
            "marketCap": self.market_cap,
            "priceCurrency": self.price_currency,
            "statementCurrency": self.statement_currency,
            "marketPrice": self.market_price,
            "beta": self.beta,
            "grossMargins": self.gross_margins,
            "operatingMargins": self.operating_margins,
            "profitMargins": self.profit_margins,
            "sharesOutstanding": self.shares_outstanding,
            "trailingEps": self.trailing_eps,
            "forwardEps": self.forward_eps,
            "trailingPE": self.trailing_pe,
            "forwardPE": self.forward_pe,
            "priceToBook": self.price_to_book,
            "nextEarningsDate": _iso(self.next_earnings_date),
            "fiftyTwoWeekRatio": self.fifty_two_week_ratio,
        }


@dataclass
class PeriodGrowth:
    """A growth metric computed on both reporting cadences."""

    annual: Optional[float] = None
    quarterly: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"annual": self.annual, "quarterly": self.quarterly}


@dataclass
class SymbolReport:
    """Terminal output of the pipeline for one symbol."""

    summary: QuoteSummary
    this_quarter: Optional[TrailingSnapshot] = None
    previous_quarter: Optional[TrailingSnapshot] = None
    revenue_growth: PeriodGrowth = field(default_factory=PeriodGrowth)
    earnings_growth: PeriodGrowth = field(default_factory=PeriodGrowth)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "thisQuarter": self.this_quarter.to_dict() if self.this_quarter else None,
            "previousQuarter": self.previous_quarter.to_dict() if self.previous_quarter else None,
            "revenueGrowth": self.revenue_growth.to_dict(),
            "earningsGrowth": self.earnings_growth.to_dict(),
        }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None
