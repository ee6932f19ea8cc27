"""Environment-driven configuration."""
from __future__ import annotations

from pathlib import Path

from equity_ratios.config import DEFAULT_USER_AGENT, Config

ENV_KEYS = (
    "APP_DEBUG",
    "PROXY_URL",
    "HTTP_TIMEOUT_SECONDS",
    "YAHOO_USER_AGENT",
    "PRICE_LOOKBACK_YEARS",
    "ANNUAL_LOOKBACK_YEARS",
    "QUARTERLY_LOOKBACK_YEARS",
    "FX_LOOKBACK_YEARS",
    "OUTPUT_DIR",
)


def _clear_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_config_defaults(monkeypatch):
    _clear_env(monkeypatch)
    cfg = Config.from_env()

    assert cfg.debug is False
    assert cfg.proxy_url is None
    assert cfg.http_timeout_seconds == 30.0
    assert cfg.user_agent == DEFAULT_USER_AGENT
    assert cfg.price_lookback_years == 2
    assert cfg.annual_lookback_years == 5
    assert cfg.quarterly_lookback_years == 2
    assert cfg.fx_lookback_years == 5
    assert cfg.output_dir.name == "reports"


def test_config_env_overrides(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("APP_DEBUG", "yes")
    monkeypatch.setenv("PROXY_URL", "http://127.0.0.1:7890")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("ANNUAL_LOOKBACK_YEARS", "8")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))

    cfg = Config.from_env()
    assert cfg.debug is True
    assert cfg.proxy_url == "http://127.0.0.1:7890"
    assert cfg.http_timeout_seconds == 12.5
    assert cfg.annual_lookback_years == 8
    assert cfg.output_dir == Path(tmp_path / "out")

    cfg.ensure_directories()
    assert cfg.output_dir.is_dir()


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("PRICE_LOOKBACK_YEARS", "two")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "")
    monkeypatch.setenv("PROXY_URL", "")

    cfg = Config.from_env()
    assert cfg.price_lookback_years == 2
    assert cfg.http_timeout_seconds == 30.0
    assert cfg.proxy_url is None
