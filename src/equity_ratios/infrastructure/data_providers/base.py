"""Interface the pipeline expects from a market data provider."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence

from equity_ratios.domain.models.financials import PricePoint

SUMMARY_MODULES = (
    "price",
    "summaryDetail",
    "defaultKeyStatistics",
    "financialData",
    "calendarEvents",
)


class MarketDataProvider(Protocol):
    """Read-only lookups by symbol. Implementations raise ``UpstreamFetchError``."""

    async def get_quote_summary(self, symbol: str, modules: Sequence[str] = SUMMARY_MODULES) -> Dict[str, Any]:
        ...

    async def get_price_history(self, symbol: str, from_date: date, to_date: date) -> List[PricePoint]:
        ...

    async def get_fundamentals_time_series(
        self,
        symbol: str,
        from_date: date,
        to_date: Optional[date] = None,
        *,
        periodicity: str = "quarterly",
        module: str = "all",
    ) -> List[Dict[str, Any]]:
        ...
