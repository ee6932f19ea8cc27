"""CLI command definitions for the trailing ratio report."""
from __future__ import annotations

import asyncio
import json
import math
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from equity_ratios.config import Config
from equity_ratios.domain.errors import EquityRatiosError
from equity_ratios.domain.models.financials import SymbolReport, TrailingSnapshot
from equity_ratios.utils.logging import configure_logging
from equity_ratios.workflows.context import open_context
from equity_ratios.workflows.processor import SymbolProcessor

console = Console()
app = typer.Typer(help="Currency-normalized trailing ratios and growth for a ticker, from Yahoo Finance.")

DEFAULT_WATCHLIST = (
    "SPY",
    "QQQ",
    "EUNL",
    "NVDA",
    "AAPL",
    "MSFT",
    "AMZN",
    "GOOGL",
    "AVGO",
    "META",
    "NFLX",
    "ASML",
    "COST",
)


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration and logging wiring."""
    config = Config.from_env()
    if debug_override is not None:
        config.debug = debug_override
    configure_logging(debug=config.debug)
    return AppContext(config=config)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the application context to Typer."""
    ctx.obj = _init_context(debug_override=debug)


@app.command()
def report(
    ctx: typer.Context,
    symbol: Optional[str] = typer.Argument(None, help="Ticker symbol, e.g. AAPL. Random watch-list pick if omitted."),
    emit_json: bool = typer.Option(False, "--json", help="Also write the result record to a JSON file."),
    json_path: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="JSON target path. Defaults to OUTPUT_DIR/<SYMBOL>.json.",
    ),
) -> None:
    """Fetch data for one symbol and print its trailing ratios and growth."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj

    resolved = (symbol or "").strip() or random.choice(DEFAULT_WATCHLIST)
    console.rule(f"Processing {resolved}")

    try:
        with console.status("[bold cyan]Fetching market data..."):
            result = asyncio.run(_run(context.config, resolved))
    except EquityRatiosError as exc:
        console.print(f"[bold red]Failed to process {resolved}:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_report(result)
    record = _json_safe(result.to_dict())
    console.print_json(data=record)

    if emit_json or json_path is not None:
        if json_path is None:
            context.config.ensure_directories()
            json_path = context.config.output_dir / f"{resolved}.json"
        _write_json(record, json_path)
        console.print(f"Result saved to {json_path}")


@app.command()
def watchlist() -> None:
    """List the symbols picked from when no symbol is given."""
    table = Table(title="Default watch list")
    table.add_column("#", style="cyan")
    table.add_column("Symbol")
    for idx, item in enumerate(DEFAULT_WATCHLIST, start=1):
        table.add_row(str(idx), item)
    console.print(table)


async def _run(config: Config, symbol: str) -> SymbolReport:
    async with open_context(config) as pipeline:
        return await SymbolProcessor(pipeline).process(symbol)


def _write_json(record: Dict[str, Any], target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(record, indent=4, allow_nan=False), encoding="utf-8")


def _json_safe(value: Any) -> Any:
    """Replace non-finite floats with ``None``; strict JSON has no inf/NaN."""
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_json_safe(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _print_report(result: SymbolReport) -> None:
    """Pretty-print the summary, trailing snapshots and growth for operators."""
    summary = result.summary
    table = Table(show_header=True, header_style="bold magenta", title=summary.symbol)
    table.add_column("Key")
    table.add_column("Value")
    table.add_row("Name", summary.name or "N/A")
    table.add_row("Type", summary.quote_type or "N/A")
    table.add_row("Price", _fmt(summary.market_price, summary.price_currency))
    table.add_row("Market Cap", _fmt(summary.market_cap, summary.price_currency))
    table.add_row("Statement Currency", summary.statement_currency or "N/A")
    table.add_row("Trailing P/E", _fmt(summary.trailing_pe))
    table.add_row("52w Range Position", _pct(summary.fifty_two_week_ratio))
    table.add_row("Next Earnings", summary.next_earnings_date.isoformat() if summary.next_earnings_date else "N/A")
    console.print(table)

    ttm = Table(show_header=True, header_style="bold magenta", title="Trailing twelve months")
    ttm.add_column("Metric")
    ttm.add_column("This quarter")
    ttm.add_column("Previous quarter")
    for label, attr in (
        ("Period end", "date"),
        ("Close", "close"),
        ("Net income", "net_income"),
        ("Free cash flow", "free_cash_flow"),
        ("EPS", "eps"),
        ("P/E", "pe"),
        ("FCF yield", "fcf_yield"),
    ):
        ttm.add_row(label, _snapshot_cell(result.this_quarter, attr), _snapshot_cell(result.previous_quarter, attr))
    console.print(ttm)

    growth = Table(show_header=True, header_style="bold magenta", title="Compound growth per period")
    growth.add_column("Metric")
    growth.add_column("Annual")
    growth.add_column("Quarterly")
    growth.add_row("Revenue", _pct(result.revenue_growth.annual), _pct(result.revenue_growth.quarterly))
    growth.add_row("Earnings", _pct(result.earnings_growth.annual), _pct(result.earnings_growth.quarterly))
    console.print(growth)


def _snapshot_cell(snapshot: Optional[TrailingSnapshot], attr: str) -> str:
    if snapshot is None:
        return "N/A"
    value = getattr(snapshot, attr)
    if attr == "fcf_yield":
        return _pct(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return _fmt(value)


def _fmt(value: Optional[float], unit: Optional[str] = None) -> str:
    if value is None:
        return "N/A"
    text = f"{value:,.2f}"
    return f"{text} {unit}" if unit else text


def _pct(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.2%}"
