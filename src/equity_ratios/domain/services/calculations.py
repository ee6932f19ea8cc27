"""Domain service layer providing trailing statistics and growth rates.

This module implements:
- Trailing-twelve-month snapshots (EPS, P/E, FCF yield, market cap) from the
  latest four quarterly statements and a price series
- Compound revenue/earnings growth across the latest four statements

Ratio divisions are unguarded: a zero or negative trailing net
income produces an infinite or negative P/E rather than an error. Growth
rates, by contrast, are reported as ``None`` when the compound rate is
undefined.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from equity_ratios.domain.errors import MissingRequiredFieldError
from equity_ratios.domain.models.financials import (
    FinancialStatement,
    GrowthResult,
    PricePoint,
    TrailingSnapshot,
)
from equity_ratios.domain.services.prices import price_on

TTM_WINDOW = 4
GROWTH_WINDOW = 4

TOTAL_REVENUE = "totalRevenue"
NET_INCOME = "netIncome"
FREE_CASH_FLOW = "freeCashFlow"
BASIC_AVERAGE_SHARES = "basicAverageShares"
ORDINARY_SHARES_NUMBER = "ordinarySharesNumber"

SHARE_COUNT_FIELDS = (BASIC_AVERAGE_SHARES, ORDINARY_SHARES_NUMBER)


class TrailingStatisticsCalculator:
    """Reduce the latest four quarterly statements into one TTM snapshot."""

    def compute(
        self,
        statements: Sequence[FinancialStatement],
        prices: Sequence[PricePoint],
    ) -> Optional[TrailingSnapshot]:
        if len(statements) < TTM_WINDOW:
            return None

        df = _frame_from_statements(
            statements,
            keys=[NET_INCOME, FREE_CASH_FLOW, *SHARE_COUNT_FIELDS],
        )
        window = df.sort_values("period", kind="stable").tail(TTM_WINDOW)
        latest = window.iloc[-1]
        period = latest["period"].date()

        shares = _first_present(latest, SHARE_COUNT_FIELDS)
        if shares is None:
            raise MissingRequiredFieldError(SHARE_COUNT_FIELDS, period)

        # A gap in any quarter leaves the TTM sum undefined.
        net_income = float(window[NET_INCOME].sum(skipna=False))
        free_cash_flow = float(window[FREE_CASH_FLOW].sum(skipna=False))

        close = price_on(period, prices)
        market_cap = (close if close is not None else float("nan")) * shares

        return TrailingSnapshot(
            date=period,
            close=close,
            shares_outstanding=shares,
            market_cap=market_cap,
            net_income=net_income,
            free_cash_flow=free_cash_flow,
            eps=_ratio(net_income, shares),
            pe=_ratio(market_cap, net_income),
            fcf_yield=_ratio(free_cash_flow, market_cap),
        )

    def compute_previous(
        self,
        statements: Sequence[FinancialStatement],
        prices: Sequence[PricePoint],
    ) -> Optional[TrailingSnapshot]:
        """Snapshot one quarter back: drop the most recent statement, then re-window."""
        if not statements:
            return None
        ordered = sorted(statements, key=lambda s: s.date)
        return self.compute(ordered[:-1], prices)


class GrowthCalculator:
    """Compound growth between the oldest and newest of the latest four statements."""

    def compute(self, statements: Sequence[FinancialStatement]) -> Optional[GrowthResult]:
        if len(statements) < GROWTH_WINDOW:
            return None

        df = _frame_from_statements(statements, keys=[TOTAL_REVENUE, NET_INCOME])
        window = df.sort_values("period", kind="stable").tail(GROWTH_WINDOW)
        intervals = GROWTH_WINDOW - 1
        return GrowthResult(
            revenue=_compound_rate(window[TOTAL_REVENUE].iloc[0], window[TOTAL_REVENUE].iloc[-1], intervals),
            earnings=_compound_rate(window[NET_INCOME].iloc[0], window[NET_INCOME].iloc[-1], intervals),
        )


def _compound_rate(start: float, end: float, intervals: int) -> Optional[float]:
    # Undefined through zero or across a sign change.
    if pd.isna(start) or pd.isna(end) or start <= 0 or end <= 0:
        return None
    return float((end / start) ** (1.0 / intervals) - 1.0)


def _ratio(numerator: float, denominator: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(np.float64(numerator), np.float64(denominator)))


def _to_float(value: Optional[float]) -> float:
    try:
        return float(value) if value is not None else float("nan")
    except (TypeError, ValueError):
        return float("nan")


def _first_present(row: pd.Series, candidates: Iterable[str]) -> Optional[float]:
    for key in candidates:
        if key in row and pd.notna(row[key]):
            return float(row[key])
    return None


def _frame_from_statements(statements: Iterable[FinancialStatement], keys: List[str]) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for s in statements:
        row: Dict[str, object] = {k: _to_float(s.fields.get(k)) for k in keys}
        row["period"] = s.date
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["period", *keys])
    df = pd.DataFrame(rows)
    df["period"] = pd.to_datetime(df["period"])
    return df
