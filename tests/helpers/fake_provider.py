"""In-memory market data provider and builders shared by tests."""
from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from equity_ratios.domain.models.financials import QUARTERLY, FinancialStatement, PricePoint
from equity_ratios.infrastructure.data_providers.base import SUMMARY_MODULES

TODAY = date(2024, 6, 28)


def today() -> date:
    return TODAY


def daily_prices(start: date, end: date, close: float = 1.0) -> List[PricePoint]:
    days = (end - start).days
    return [PricePoint(date=start + timedelta(days=i), close=close) for i in range(days + 1)]


def weekday_prices(start: date, end: date, close: float = 1.0) -> List[PricePoint]:
    return [p for p in daily_prices(start, end, close) if p.date.weekday() < 5]


def make_statement(day: date, period_type: str = QUARTERLY, **fields: float) -> FinancialStatement:
    return FinancialStatement(date=day, period_type=period_type, fields=dict(fields))


class FakeProvider:
    """Serves canned payloads and records every call."""

    def __init__(
        self,
        *,
        summary: Optional[Dict[str, Any]] = None,
        prices: Optional[Dict[str, List[PricePoint]]] = None,
        statements: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.summary = summary or {}
        self.prices = prices or {}
        self.statements = statements or {}
        self.failures = failures or {}
        self.calls: List[tuple] = []

    async def get_quote_summary(self, symbol: str, modules: Sequence[str] = SUMMARY_MODULES) -> Dict[str, Any]:
        self.calls.append(("summary", symbol))
        self._maybe_fail("summary")
        return self.summary

    async def get_price_history(self, symbol: str, from_date: date, to_date: date) -> List[PricePoint]:
        self.calls.append(("prices", symbol, from_date, to_date))
        # Yield so concurrent callers can interleave.
        await asyncio.sleep(0)
        self._maybe_fail("prices")
        return [p for p in self.prices.get(symbol, []) if from_date <= p.date <= to_date]

    async def get_fundamentals_time_series(
        self,
        symbol: str,
        from_date: date,
        to_date: Optional[date] = None,
        *,
        periodicity: str = "quarterly",
        module: str = "all",
    ) -> List[Dict[str, Any]]:
        self.calls.append(("fundamentals", symbol, periodicity, from_date))
        await asyncio.sleep(0)
        self._maybe_fail("fundamentals")
        return [dict(r) for r in self.statements.get(periodicity, [])]

    def count(self, kind: str, symbol: Optional[str] = None) -> int:
        return sum(1 for call in self.calls if call[0] == kind and (symbol is None or call[1] == symbol))

    def _maybe_fail(self, kind: str) -> None:
        if kind in self.failures:
            raise self.failures[kind]
