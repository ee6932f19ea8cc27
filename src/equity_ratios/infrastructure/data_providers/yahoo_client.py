"""Async Yahoo Finance client covering quote summary, chart and fundamentals."""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from equity_ratios.domain.errors import UpstreamFetchError
from equity_ratios.domain.models.financials import PricePoint
from equity_ratios.infrastructure.data_providers.base import SUMMARY_MODULES

logger = logging.getLogger(__name__)

QUERY1_URL = "https://query1.finance.yahoo.com"
QUERY2_URL = "https://query2.finance.yahoo.com"
COOKIE_URL = "https://fc.yahoo.com"

PERIODICITIES = ("quarterly", "annual")

FINANCIALS_KEYS = (
    "totalRevenue",
    "operatingRevenue",
    "costOfRevenue",
    "grossProfit",
    "operatingExpense",
    "sellingGeneralAndAdministration",
    "researchAndDevelopment",
    "operatingIncome",
    "interestIncome",
    "interestExpense",
    "netInterestIncome",
    "pretaxIncome",
    "taxProvision",
    "taxRateForCalcs",
    "netIncome",
    "netIncomeCommonStockholders",
    "dilutedNIAvailtoComStockholders",
    "normalizedIncome",
    "basicEPS",
    "dilutedEPS",
    "basicAverageShares",
    "dilutedAverageShares",
    "EBIT",
    "EBITDA",
    "normalizedEBITDA",
    "reconciledDepreciation",
    "totalExpenses",
)

BALANCE_SHEET_KEYS = (
    "totalAssets",
    "currentAssets",
    "cashAndCashEquivalents",
    "cashCashEquivalentsAndShortTermInvestments",
    "accountsReceivable",
    "inventory",
    "totalNonCurrentAssets",
    "netPPE",
    "goodwill",
    "totalLiabilitiesNetMinorityInterest",
    "currentLiabilities",
    "accountsPayable",
    "currentDebt",
    "longTermDebt",
    "totalDebt",
    "netDebt",
    "stockholdersEquity",
    "commonStockEquity",
    "tangibleBookValue",
    "workingCapital",
    "investedCapital",
    "shareIssued",
    "ordinarySharesNumber",
    "treasurySharesNumber",
    "preferredSharesNumber",
)

CASH_FLOW_KEYS = (
    "operatingCashFlow",
    "investingCashFlow",
    "financingCashFlow",
    "capitalExpenditure",
    "freeCashFlow",
    "depreciationAndAmortization",
    "stockBasedCompensation",
    "changeInWorkingCapital",
    "repurchaseOfCapitalStock",
    "cashDividendsPaid",
    "endCashPosition",
)

# module -> (TYPE tag, line items)
MODULES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "financials": ("FINANCIALS", FINANCIALS_KEYS),
    "balance-sheet": ("BALANCE_SHEET", BALANCE_SHEET_KEYS),
    "cash-flow": ("CASH_FLOW", CASH_FLOW_KEYS),
    "all": ("ALL", FINANCIALS_KEYS + BALANCE_SHEET_KEYS + CASH_FLOW_KEYS),
}


class YahooFinanceClient:
    """Thin async wrapper around the public Yahoo Finance endpoints.

    Errors of any kind (transport, HTTP status, provider error payloads) are
    raised as ``UpstreamFetchError``. Nothing is retried here.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        proxy_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        client_kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(timeout, connect=10.0),
            "headers": {"User-Agent": user_agent, "Accept": "application/json,text/plain,*/*"},
            "follow_redirects": True,
        }
        if proxy_url:
            client_kwargs["proxy"] = proxy_url
        if transport is not None:
            client_kwargs["transport"] = transport
        self._http = httpx.AsyncClient(**client_kwargs)
        self._crumb: Optional[str] = None
        self._crumb_lock: Optional[asyncio.Lock] = None

    async def __aenter__(self) -> "YahooFinanceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the underlying HTTP session."""
        await self._http.aclose()

    # ------------------
    # Public API helpers
    # ------------------
    async def get_quote_summary(self, symbol: str, modules: Sequence[str] = SUMMARY_MODULES) -> Dict[str, Any]:
        """Return the merged ``quoteSummary`` result object for ``symbol``."""
        crumb = await self._ensure_crumb()
        status, payload = await self._get(
            f"{QUERY2_URL}/v10/finance/quoteSummary/{symbol}",
            symbol,
            params={
                "modules": ",".join(modules),
                "formatted": "false",
                "crumb": crumb,
                "lang": "en-US",
                "region": "US",
            },
        )
        body = (payload or {}).get("quoteSummary") or {}
        _raise_for_error(symbol, body.get("error"))
        _raise_for_status(symbol, status, "quote summary")
        results = body.get("result") or []
        if not results:
            raise UpstreamFetchError(symbol, "quote summary returned no result")
        return results[0]

    async def get_price_history(self, symbol: str, from_date: date, to_date: date) -> List[PricePoint]:
        """Daily closes between ``from_date`` and ``to_date`` inclusive, ascending."""
        status, payload = await self._get(
            f"{QUERY2_URL}/v8/finance/chart/{symbol}",
            symbol,
            params={
                "period1": _epoch(from_date),
                "period2": _epoch(to_date + timedelta(days=1)),
                "interval": "1d",
                "includePrePost": "false",
                "events": "div,split",
            },
        )
        chart = (payload or {}).get("chart") or {}
        error = chart.get("error")
        if error and error.get("code") == "Not Found":
            logger.warning("[Yahoo] no chart for %s: %s", symbol, error.get("description"))
            return []
        _raise_for_error(symbol, error)
        _raise_for_status(symbol, status, "chart")

        results = chart.get("result") or []
        if not results:
            return []
        result = results[0]
        offset = (result.get("meta") or {}).get("gmtoffset") or 0
        timestamps = result.get("timestamp") or []
        quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
        closes = quotes.get("close") or []

        by_day: Dict[date, PricePoint] = {}
        for stamp, close in zip(timestamps, closes):
            if close is None:
                continue
            day = datetime.fromtimestamp(stamp + offset, tz=timezone.utc).date()
            if from_date <= day <= to_date:
                by_day[day] = PricePoint(date=day, close=float(close))
        logger.debug("[Yahoo] %s: %d daily closes", symbol, len(by_day))
        return [by_day[d] for d in sorted(by_day)]

    async def get_fundamentals_time_series(
        self,
        symbol: str,
        from_date: date,
        to_date: Optional[date] = None,
        *,
        periodicity: str = "quarterly",
        module: str = "all",
    ) -> List[Dict[str, Any]]:
        """Statement records (one per period end) tagged with ``TYPE``."""
        if periodicity not in PERIODICITIES:
            raise ValueError(f"periodicity must be one of {PERIODICITIES}, got {periodicity!r}")
        if module not in MODULES:
            raise ValueError(f"module must be one of {tuple(MODULES)}, got {module!r}")
        to_date = to_date or date.today()
        tag, keys = MODULES[module]
        type_to_key = {f"{periodicity}{key[0].upper()}{key[1:]}": key for key in keys}

        status, payload = await self._get(
            f"{QUERY2_URL}/ws/fundamentals-timeseries/v1/finance/timeseries/{symbol}",
            symbol,
            params={
                "symbol": symbol,
                "type": ",".join(type_to_key),
                "period1": _epoch(from_date),
                "period2": _epoch(to_date + timedelta(days=1)),
                "merge": "false",
                "padTimeSeries": "true",
                "lang": "en-US",
                "region": "US",
            },
        )
        series = (payload or {}).get("timeseries") or {}
        _raise_for_error(symbol, series.get("error"))
        _raise_for_status(symbol, status, "fundamentals time series")

        records: Dict[str, Dict[str, Any]] = {}
        for item in series.get("result") or []:
            types = (item.get("meta") or {}).get("type") or []
            if not types or types[0] not in type_to_key:
                continue
            type_name = types[0]
            for entry in item.get(type_name) or []:
                if not entry or not entry.get("asOfDate"):
                    continue
                record = records.setdefault(
                    entry["asOfDate"],
                    {"date": entry["asOfDate"], "TYPE": tag, "periodType": entry.get("periodType")},
                )
                value = (entry.get("reportedValue") or {}).get("raw")
                if value is not None:
                    record[type_to_key[type_name]] = value
        logger.debug("[Yahoo] %s: %d %s statements", symbol, len(records), periodicity)
        return [records[key] for key in sorted(records)]

    # -----------------
    # Internal helpers
    # -----------------
    async def _ensure_crumb(self) -> str:
        if self._crumb is not None:
            return self._crumb
        if self._crumb_lock is None:
            self._crumb_lock = asyncio.Lock()
        async with self._crumb_lock:
            if self._crumb is None:
                try:
                    # Sets the session cookie; the page itself answers 404.
                    await self._http.get(COOKIE_URL)
                    response = await self._http.get(f"{QUERY1_URL}/v1/test/getcrumb")
                except httpx.HTTPError as exc:
                    raise UpstreamFetchError("crumb", f"request failed: {exc}") from exc
                crumb = response.text.strip()
                if response.is_error or not crumb or "<" in crumb:
                    raise UpstreamFetchError("crumb", f"could not obtain crumb (HTTP {response.status_code})")
                self._crumb = crumb
        return self._crumb

    async def _get(self, url: str, symbol: str, *, params: Dict[str, Any]) -> Tuple[int, Any]:
        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(symbol, f"request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if payload is None and not response.is_error:
            raise UpstreamFetchError(symbol, f"non-JSON response from {response.request.url.path}")
        return response.status_code, payload


def _raise_for_error(symbol: str, error: Optional[Dict[str, Any]]) -> None:
    if error:
        raise UpstreamFetchError(symbol, error.get("description") or error.get("code") or str(error))


def _raise_for_status(symbol: str, status: int, what: str) -> None:
    if status >= 400:
        raise UpstreamFetchError(symbol, f"{what} request failed with HTTP {status}")


def _epoch(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())
