"""Logging helpers for CLI and pipeline diagnostics."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from rich.logging import RichHandler
from rich.text import Text

_LOGGER_CONFIGURED = False


def format_log_time(moment: datetime) -> Text:
    """Render ``YYYY-MM-DD HH:MM:SS.mmm`` (millisecond precision)."""
    return Text(f"{moment:%Y-%m-%d %H:%M:%S}.{moment.microsecond // 1000:03d}")


def configure_logging(debug: bool = False, *, level: Optional[int] = None) -> None:
    """Configure process-wide logging with Rich handler."""
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    resolved_level = level or (logging.DEBUG if debug else logging.INFO)
    # No datefmt: it would override log_time_format.
    logging.basicConfig(
        level=resolved_level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, log_time_format=format_log_time)],
    )
    # httpx logs every request at INFO; keep it for --debug runs only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    _LOGGER_CONFIGURED = True
