"""Exceptions raised by the ratio pipeline."""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Tuple


class EquityRatiosError(Exception):
    """Base class for every failure surfaced by the pipeline."""


class DateOutOfRangeError(EquityRatiosError, LookupError):
    """A price-as-of lookup asked for a date before the series starts."""

    def __init__(self, target: date, earliest: Optional[date], symbol: Optional[str] = None) -> None:
        self.target = target
        self.earliest = earliest
        self.symbol = symbol
        label = f" for {symbol}" if symbol else ""
        if earliest is None:
            message = f"No price data{label} to look up {target.isoformat()}"
        else:
            message = (
                f"Date {target.isoformat()} is before the first available price"
                f"{label} ({earliest.isoformat()})"
            )
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0])


class MissingRequiredFieldError(EquityRatiosError, KeyError):
    """None of the accepted statement fields were present."""

    def __init__(self, fields: Iterable[str], statement_date: Optional[date] = None) -> None:
        self.fields: Tuple[str, ...] = tuple(fields)
        self.statement_date = statement_date
        where = f" on statement dated {statement_date.isoformat()}" if statement_date else ""
        super().__init__(f"Missing required field (one of {', '.join(self.fields)}){where}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class UpstreamFetchError(EquityRatiosError):
    """The market data provider could not serve a request."""

    def __init__(self, symbol: str, message: str) -> None:
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")
