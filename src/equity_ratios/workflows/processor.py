"""Per-symbol orchestration: fetch, normalize currency, derive ratios."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional, Tuple

from equity_ratios.domain.models.financials import (
    ANNUAL,
    QUARTERLY,
    FinancialStatement,
    GrowthResult,
    PeriodGrowth,
    PricePoint,
    QuoteSummary,
    SymbolReport,
)
from equity_ratios.domain.services.prices import years_before
from equity_ratios.infrastructure.data_providers.base import SUMMARY_MODULES
from equity_ratios.infrastructure.data_providers.normalize import (
    quote_summary_from_result,
    statements_from_records,
)
from equity_ratios.workflows.context import ProcessorContext

logger = logging.getLogger(__name__)


class SymbolProcessor:
    """Run the full pipeline for one symbol.

    Steps run in a fixed order: quote summary, then (equities only) prices
    and statements fetched concurrently, currency normalization, trailing
    snapshots for this and the previous quarter, and growth. Any failure
    aborts the whole symbol; there is no partial report.
    """

    def __init__(self, context: ProcessorContext) -> None:
        self._context = context

    async def process(self, symbol: str) -> SymbolReport:
        ctx = self._context
        logger.info("[%s] fetching quote summary", symbol)
        raw_summary = await ctx.provider.get_quote_summary(symbol, SUMMARY_MODULES)
        summary = quote_summary_from_result(symbol, raw_summary)

        prices: List[PricePoint] = []
        annual: List[FinancialStatement] = []
        quarterly: List[FinancialStatement] = []
        if summary.is_equity:
            prices, annual, quarterly = await _gather_all(
                ctx.price_cache.get_prices(symbol),
                self._fetch_statements(symbol, ANNUAL, ctx.config.annual_lookback_years),
                self._fetch_statements(symbol, QUARTERLY, ctx.config.quarterly_lookback_years),
            )
        else:
            logger.info("[%s] %s is not an equity; skipping prices and statements", symbol, summary.quote_type)

        annual, quarterly = await self._normalize_currency(summary, annual, quarterly)

        calc = ctx.trailing_calculator
        this_quarter = calc.compute(quarterly, prices)
        previous_quarter = calc.compute_previous(quarterly, prices)

        annual_growth = ctx.growth_calculator.compute(annual)
        quarterly_growth = ctx.growth_calculator.compute(quarterly)

        return SymbolReport(
            summary=summary,
            this_quarter=this_quarter,
            previous_quarter=previous_quarter,
            revenue_growth=PeriodGrowth(
                annual=_metric(annual_growth, "revenue"),
                quarterly=_metric(quarterly_growth, "revenue"),
            ),
            earnings_growth=PeriodGrowth(
                annual=_metric(annual_growth, "earnings"),
                quarterly=_metric(quarterly_growth, "earnings"),
            ),
        )

    async def _fetch_statements(self, symbol: str, period_type: str, lookback_years: int) -> List[FinancialStatement]:
        ctx = self._context
        today = ctx.today()
        records = await ctx.provider.get_fundamentals_time_series(
            symbol,
            years_before(today, lookback_years),
            today,
            periodicity=period_type,
            module="all",
        )
        statements = statements_from_records(records, period_type)
        logger.debug("[%s] %d %s statements", symbol, len(statements), period_type)
        return statements

    async def _normalize_currency(
        self,
        summary: QuoteSummary,
        annual: List[FinancialStatement],
        quarterly: List[FinancialStatement],
    ) -> Tuple[List[FinancialStatement], List[FinancialStatement]]:
        source = summary.statement_currency
        target = summary.price_currency
        if not source or not target or source == target:
            return annual, quarterly

        logger.info("[%s] statements reported in %s, trading in %s", summary.symbol, source, target)
        converter = self._context.currency_converter
        converted_annual, converted_quarterly = await _gather_all(
            converter.convert(annual, source, target),
            converter.convert(quarterly, source, target),
        )
        return converted_annual, converted_quarterly


async def _gather_all(*aws: Awaitable[Any]) -> List[Any]:
    """Await every awaitable, then re-raise the first failure in argument order."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


def _metric(growth: Optional[GrowthResult], name: str) -> Optional[float]:
    if growth is None:
        return None
    return getattr(growth, name)
