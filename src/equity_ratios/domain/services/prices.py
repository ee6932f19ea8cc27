"""Price-as-of lookups and the per-run price series cache."""
from __future__ import annotations

import asyncio
import bisect
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd

from equity_ratios.domain.errors import DateOutOfRangeError
from equity_ratios.domain.models.financials import PricePoint
from equity_ratios.infrastructure.data_providers.base import MarketDataProvider

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_YEARS = 2


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier (Feb 29 rolls back to Feb 28)."""
    return (pd.Timestamp(day) - pd.DateOffset(years=years)).date()


def price_on(target: date, prices: Sequence[PricePoint], *, symbol: Optional[str] = None) -> Optional[float]:
    """Close of the latest trading day on or before ``target``.

    Raises ``DateOutOfRangeError`` when ``target`` precedes the first point
    (or the series is empty) so a stale period's price is never used.
    """
    if not prices:
        raise DateOutOfRangeError(target, None, symbol)

    ordered = sorted(prices, key=lambda p: p.date)
    earliest = ordered[0].date
    if target < earliest:
        raise DateOutOfRangeError(target, earliest, symbol)

    dates = [p.date for p in ordered]
    idx = bisect.bisect_right(dates, target)
    if idx == 0:
        return None
    return ordered[idx - 1].close


@dataclass
class _CachedSeries:
    covers_from: date
    prices: List[PricePoint]


class PriceSeriesCache:
    """In-memory, per-symbol cache of daily price series for one run.

    A cached series is reused when its window starts on or before the
    requested ``from_date``; otherwise it is re-fetched in full and replaced.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        *,
        default_lookback_years: int = DEFAULT_LOOKBACK_YEARS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._provider = provider
        self._default_lookback_years = default_lookback_years
        self._today = today
        self._entries: Dict[str, _CachedSeries] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get_prices(self, symbol: str, from_date: Optional[date] = None) -> List[PricePoint]:
        today = self._today()
        if from_date is None:
            from_date = years_before(today, self._default_lookback_years)

        lock = self._locks.setdefault(symbol, asyncio.Lock())
        async with lock:
            cached = self._entries.get(symbol)
            if cached is not None and cached.covers_from <= from_date:
                logger.debug("[PriceCache] hit %s from %s", symbol, from_date)
                return cached.prices

            logger.debug("[PriceCache] fetch %s %s..%s", symbol, from_date, today)
            prices = await self._provider.get_price_history(symbol, from_date, today)
            prices = sorted(prices, key=lambda p: p.date)
            if not prices:
                logger.warning("[PriceCache] no price data for %s", symbol)
            self._entries[symbol] = _CachedSeries(covers_from=from_date, prices=prices)
            return prices

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._entries
