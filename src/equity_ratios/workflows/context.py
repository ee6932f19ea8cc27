"""Pipeline dependency container."""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Callable, Optional

from equity_ratios.config import Config
from equity_ratios.domain.services.calculations import GrowthCalculator, TrailingStatisticsCalculator
from equity_ratios.domain.services.currency import CurrencyConverter
from equity_ratios.domain.services.prices import PriceSeriesCache
from equity_ratios.infrastructure.data_providers.base import MarketDataProvider
from equity_ratios.infrastructure.data_providers.yahoo_client import YahooFinanceClient


@dataclass
class ProcessorContext:
    """Holds the per-run dependencies shared by pipeline steps."""

    config: Config
    provider: MarketDataProvider
    price_cache: PriceSeriesCache
    currency_converter: CurrencyConverter
    trailing_calculator: TrailingStatisticsCalculator
    growth_calculator: GrowthCalculator
    today: Callable[[], date] = date.today


def build_context(
    config: Config,
    provider: MarketDataProvider,
    *,
    today: Callable[[], date] = date.today,
) -> ProcessorContext:
    """Wire a fresh cache and calculators around ``provider``."""
    price_cache = PriceSeriesCache(
        provider,
        default_lookback_years=config.price_lookback_years,
        today=today,
    )
    return ProcessorContext(
        config=config,
        provider=provider,
        price_cache=price_cache,
        currency_converter=CurrencyConverter(price_cache, lookback_years=config.fx_lookback_years, today=today),
        trailing_calculator=TrailingStatisticsCalculator(),
        growth_calculator=GrowthCalculator(),
        today=today,
    )


@asynccontextmanager
async def open_context(
    config: Config,
    provider: Optional[MarketDataProvider] = None,
) -> AsyncIterator[ProcessorContext]:
    """Yield a context backed by Yahoo Finance unless ``provider`` is given."""
    if provider is not None:
        yield build_context(config, provider)
        return

    client = YahooFinanceClient(
        user_agent=config.user_agent,
        proxy_url=config.proxy_url,
        timeout=config.http_timeout_seconds,
    )
    async with client:
        yield build_context(config, client)
