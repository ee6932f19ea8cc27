"""Currency normalization of financial statements."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, FrozenSet, List, Optional, Sequence

from equity_ratios.domain.errors import DateOutOfRangeError
from equity_ratios.domain.models.financials import FinancialStatement
from equity_ratios.domain.services.prices import PriceSeriesCache, price_on, years_before

logger = logging.getLogger(__name__)

DEFAULT_FX_LOOKBACK_YEARS = 5
# Rate series start this far before the earliest needed date.
FX_WINDOW_PADDING = timedelta(days=7)

# Everything not listed here is a currency amount and gets converted.
NON_MONETARY_FIELDS: FrozenSet[str] = frozenset(
    {
        # tags
        "date",
        "TYPE",
        "periodType",
        # share counts
        "basicAverageShares",
        "dilutedAverageShares",
        "ordinarySharesNumber",
        "shareIssued",
        "treasurySharesNumber",
        "preferredSharesNumber",
        "sharesOutstanding",
        # rates
        "taxRateForCalcs",
    }
)


def is_monetary(field_name: str) -> bool:
    return field_name not in NON_MONETARY_FIELDS


def fx_pair_symbol(from_currency: str, to_currency: str) -> str:
    return f"{from_currency}{to_currency}=X"


class CurrencyConverter:
    """Convert statement amounts from the reporting into the trading currency."""

    def __init__(
        self,
        price_cache: PriceSeriesCache,
        *,
        lookback_years: int = DEFAULT_FX_LOOKBACK_YEARS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._price_cache = price_cache
        self._lookback_years = lookback_years
        self._today = today

    async def convert(
        self,
        statements: Sequence[FinancialStatement],
        from_currency: str,
        to_currency: str,
    ) -> List[FinancialStatement]:
        """Return converted copies of ``statements``.

        Callers skip this when both currencies match. Every rate is resolved
        before any statement is built, so a lookup failure aborts the batch.
        """
        if not statements:
            return []

        pair = fx_pair_symbol(from_currency, to_currency)
        from_date = years_before(self._today(), self._lookback_years)
        earliest_statement = min(s.date for s in statements)
        if earliest_statement < from_date:
            from_date = earliest_statement
        from_date -= FX_WINDOW_PADDING
        rates = await self._price_cache.get_prices(pair, from_date)

        resolved: List[float] = []
        for statement in statements:
            rate: Optional[float] = price_on(statement.date, rates, symbol=pair)
            if rate is None:
                raise DateOutOfRangeError(statement.date, rates[0].date if rates else None, pair)
            resolved.append(rate)

        logger.info(
            "[FX] converted %d statements %s -> %s via %s", len(statements), from_currency, to_currency, pair
        )
        return [_apply_rate(s, r) for s, r in zip(statements, resolved)]


def _apply_rate(statement: FinancialStatement, rate: float) -> FinancialStatement:
    fields = {
        name: (value * rate if is_monetary(name) and value is not None else value)
        for name, value in statement.fields.items()
    }
    return replace(statement, fields=fields)
