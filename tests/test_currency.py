from __future__ import annotations

import asyncio
from datetime import date

import pytest

from equity_ratios.domain.errors import DateOutOfRangeError
from equity_ratios.domain.models.financials import PricePoint
from equity_ratios.domain.services.currency import (
    NON_MONETARY_FIELDS,
    CurrencyConverter,
    fx_pair_symbol,
    is_monetary,
)
from equity_ratios.domain.services.prices import PriceSeriesCache
from helpers.fake_provider import TODAY, FakeProvider, daily_prices, make_statement, today, weekday_prices


def _converter(provider: FakeProvider) -> CurrencyConverter:
    return CurrencyConverter(PriceSeriesCache(provider, today=today), today=today)


def test_share_counts_and_tags_are_not_monetary():
    for name in (
        "basicAverageShares",
        "dilutedAverageShares",
        "ordinarySharesNumber",
        "shareIssued",
        "treasurySharesNumber",
        "sharesOutstanding",
        "taxRateForCalcs",
        "date",
        "TYPE",
    ):
        assert name in NON_MONETARY_FIELDS
        assert not is_monetary(name)


def test_amounts_and_per_share_amounts_are_monetary():
    for name in ("totalRevenue", "netIncome", "freeCashFlow", "totalDebt", "basicEPS", "dilutedEPS"):
        assert is_monetary(name)


def test_fx_pair_symbol_format():
    assert fx_pair_symbol("EUR", "USD") == "EURUSD=X"


def test_convert_multiplies_monetary_fields_by_rate_at_statement_date():
    rates = [
        PricePoint(date(2019, 6, 1), 1.0),
        PricePoint(date(2023, 3, 31), 1.10),
        PricePoint(date(2023, 6, 30), 1.20),
    ]
    provider = FakeProvider(prices={"EURUSD=X": rates})
    statements = [
        make_statement(date(2023, 3, 31), totalRevenue=100.0, netIncome=10.0, basicAverageShares=50.0),
        # Saturday: uses Friday's rate
        make_statement(date(2023, 7, 1), totalRevenue=200.0, netIncome=-20.0, taxRateForCalcs=0.21),
    ]

    converted = asyncio.run(_converter(provider).convert(statements, "EUR", "USD"))

    first, second = converted
    assert abs(first.fields["totalRevenue"] - 110.0) < 1e-9
    assert abs(first.fields["netIncome"] - 11.0) < 1e-9
    assert first.fields["basicAverageShares"] == 50.0
    assert abs(second.fields["totalRevenue"] - 240.0) < 1e-9
    assert abs(second.fields["netIncome"] + 24.0) < 1e-9
    assert second.fields["taxRateForCalcs"] == 0.21
    assert first.date == statements[0].date
    assert first.period_type == statements[0].period_type


def test_convert_does_not_mutate_input():
    provider = FakeProvider(prices={"GBPUSD=X": daily_prices(date(2019, 1, 1), TODAY, 1.25)})
    statement = make_statement(date(2024, 3, 31), freeCashFlow=8.0)

    converted = asyncio.run(_converter(provider).convert([statement], "GBP", "USD"))

    assert converted[0].fields["freeCashFlow"] == 10.0
    assert statement.fields["freeCashFlow"] == 8.0


def test_convert_uses_five_year_lookback_floor():
    provider = FakeProvider(prices={"EURUSD=X": daily_prices(date(2010, 1, 1), TODAY, 1.0)})
    asyncio.run(_converter(provider).convert([make_statement(date(2023, 12, 31), netIncome=1.0)], "EUR", "USD"))
    assert provider.calls == [("prices", "EURUSD=X", date(2019, 6, 21), TODAY)]


def test_convert_extends_lookback_for_older_statements():
    provider = FakeProvider(prices={"EURUSD=X": daily_prices(date(2010, 1, 1), TODAY, 1.0)})
    old = make_statement(date(2018, 12, 31), netIncome=1.0)
    asyncio.run(_converter(provider).convert([old], "EUR", "USD"))
    assert provider.calls[0][2] == date(2018, 12, 24)


def test_convert_aborts_whole_batch_when_rate_history_too_short():
    provider = FakeProvider(prices={"JPYUSD=X": daily_prices(date(2023, 1, 1), TODAY, 0.007)})
    statements = [
        make_statement(date(2023, 12, 31), netIncome=1000.0),
        make_statement(date(2022, 12, 31), netIncome=900.0),
    ]
    with pytest.raises(DateOutOfRangeError) as excinfo:
        asyncio.run(_converter(provider).convert(statements, "JPY", "USD"))
    assert excinfo.value.symbol == "JPYUSD=X"
    assert excinfo.value.target == date(2022, 12, 31)


def test_convert_unknown_pair_fails():
    provider = FakeProvider()
    with pytest.raises(DateOutOfRangeError):
        asyncio.run(_converter(provider).convert([make_statement(date(2024, 3, 31), netIncome=1.0)], "XXX", "USD"))


def test_convert_empty_batch_skips_fetch():
    provider = FakeProvider()
    assert asyncio.run(_converter(provider).convert([], "EUR", "USD")) == []
    assert provider.calls == []


def test_weekend_statement_at_window_start_uses_prior_trading_day():
    rates = weekday_prices(date(2010, 1, 1), TODAY, 1.0)
    rates = [PricePoint(p.date, 1.5 if p.date == date(2017, 12, 29) else p.close) for p in rates]
    provider = FakeProvider(prices={"EURUSD=X": rates})
    # Sunday; the window would otherwise open on it.
    statement = make_statement(date(2017, 12, 31), netIncome=10.0)

    converted = asyncio.run(_converter(provider).convert([statement], "EUR", "USD"))

    assert converted[0].fields["netIncome"] == 15.0
    assert provider.calls[0][2] == date(2017, 12, 24)


def test_weekend_floor_date_still_covers_first_statement():
    # The five-year floor lands on Saturday 2019-06-29.
    def saturday_today() -> date:
        return date(2024, 6, 29)

    provider = FakeProvider(prices={"EURUSD=X": weekday_prices(date(2010, 1, 1), date(2024, 6, 28), 2.0)})
    converter = CurrencyConverter(PriceSeriesCache(provider, today=saturday_today), today=saturday_today)

    converted = asyncio.run(converter.convert([make_statement(date(2019, 6, 30), netIncome=1.0)], "EUR", "USD"))

    assert converted[0].fields["netIncome"] == 2.0
