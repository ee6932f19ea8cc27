"""Convert raw provider payloads into typed domain entities."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from equity_ratios.domain.models.financials import FinancialStatement, QuoteSummary

logger = logging.getLogger(__name__)

ALL_TYPE = "ALL"
_RECORD_TAGS = {"TYPE", "date", "periodType"}


def statements_from_records(records: Iterable[Mapping[str, Any]], period_type: str) -> List[FinancialStatement]:
    """Keep ``TYPE == "ALL"`` records and map them to statements sorted by date."""
    statements: List[FinancialStatement] = []
    for record in records:
        if record.get("TYPE") != ALL_TYPE:
            continue
        period = _safe_date(record.get("date"))
        if period is None:
            logger.warning("[Normalize] skip statement without date: %s", record.get("date"))
            continue
        fields: Dict[str, float] = {}
        for key, value in record.items():
            if key in _RECORD_TAGS:
                continue
            number = _raw_number(value)
            if number is not None:
                fields[key] = number
        statements.append(FinancialStatement(date=period, period_type=period_type, fields=fields))
    return sorted(statements, key=lambda s: s.date)


def quote_summary_from_result(symbol: str, result: Mapping[str, Any]) -> QuoteSummary:
    """Flatten the quote-summary modules into a ``QuoteSummary``."""
    price = result.get("price") or {}
    detail = result.get("summaryDetail") or {}
    stats = result.get("defaultKeyStatistics") or {}
    financial = result.get("financialData") or {}
    earnings = (result.get("calendarEvents") or {}).get("earnings") or {}

    earnings_dates = [d for d in (_safe_date(v) for v in earnings.get("earningsDate") or []) if d is not None]

    return QuoteSummary(
        symbol=price.get("symbol") or symbol,
        name=price.get("shortName") or price.get("longName"),
        quote_type=price.get("quoteType"),
        market_cap=_first_number(price.get("marketCap"), detail.get("marketCap")),
        price_currency=price.get("currency") or detail.get("currency"),
        statement_currency=financial.get("financialCurrency"),
        market_price=_first_number(price.get("regularMarketPrice"), financial.get("currentPrice")),
        beta=_first_number(detail.get("beta"), stats.get("beta")),
        gross_margins=_raw_number(financial.get("grossMargins")),
        operating_margins=_raw_number(financial.get("operatingMargins")),
        profit_margins=_first_number(financial.get("profitMargins"), stats.get("profitMargins")),
        shares_outstanding=_raw_number(stats.get("sharesOutstanding")),
        trailing_eps=_first_number(stats.get("trailingEps"), detail.get("trailingEps")),
        forward_eps=_first_number(stats.get("forwardEps"), detail.get("forwardEps")),
        trailing_pe=_raw_number(detail.get("trailingPE")),
        forward_pe=_first_number(detail.get("forwardPE"), stats.get("forwardPE")),
        price_to_book=_first_number(stats.get("priceToBook"), detail.get("priceToBook")),
        fifty_two_week_low=_raw_number(detail.get("fiftyTwoWeekLow")),
        fifty_two_week_high=_raw_number(detail.get("fiftyTwoWeekHigh")),
        next_earnings_date=earnings_dates[0] if earnings_dates else None,
    )


def _raw_number(value: Any) -> Optional[float]:
    """Accept both ``{"raw": 1.0, "fmt": "1.00"}`` and plain numbers."""
    if isinstance(value, Mapping):
        value = value.get("raw")
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first_number(*values: Any) -> Optional[float]:
    for value in values:
        number = _raw_number(value)
        if number is not None:
            return number
    return None


def _safe_date(value: Any) -> Optional[date]:
    if isinstance(value, Mapping):
        value = value.get("raw", value.get("fmt"))
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).date()
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
