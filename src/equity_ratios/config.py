"""Application-wide configuration defaults and helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Base directory for resolving relative paths.
BASE_DIR = Path(__file__).resolve().parents[2]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    """Safely parse an integer env var, returning the default on failure."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _to_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    proxy_url: Optional[str] = None
    http_timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    price_lookback_years: int = 2
    annual_lookback_years: int = 5
    quarterly_lookback_years: int = 2
    fx_lookback_years: int = 5
    output_dir: Path = BASE_DIR / "reports"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration instance using environment overrides."""
        return cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            proxy_url=os.getenv("PROXY_URL") or None,
            http_timeout_seconds=_to_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 30.0),
            user_agent=os.getenv("YAHOO_USER_AGENT") or DEFAULT_USER_AGENT,
            price_lookback_years=_to_int(os.getenv("PRICE_LOOKBACK_YEARS"), 2),
            annual_lookback_years=_to_int(os.getenv("ANNUAL_LOOKBACK_YEARS"), 5),
            quarterly_lookback_years=_to_int(os.getenv("QUARTERLY_LOOKBACK_YEARS"), 2),
            fx_lookback_years=_to_int(os.getenv("FX_LOOKBACK_YEARS"), 5),
            output_dir=Path(os.getenv("OUTPUT_DIR", BASE_DIR / "reports")),
        )

    def ensure_directories(self) -> None:
        """Create directories needed for runtime artifacts."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
