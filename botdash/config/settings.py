from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_ENV_FILE = "~/.botdash.env"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = int(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = float(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    api_url: str
    log_level: str
    dashboard_enabled: bool
    dashboard_host: str
    dashboard_port: int
    poll_interval_sec: float
    http_timeout_sec: float
    default_mode: str
    default_symbol: str
    default_interval: str
    train_window_hours: float
    initial_balance: float
    risk_pct: float
    candle_limit: int
    trade_limit: int
    snapshot_limit: int


def load_settings(env_file: str | None = DEFAULT_ENV_FILE) -> Settings:
    if env_file:
        load_dotenv(os.path.expanduser(env_file))
    mode = os.environ.get("DEFAULT_MODE", "TRAIN").strip().upper()
    if mode not in {"TRAIN", "LIVE"}:
        raise ValueError(f"DEFAULT_MODE must be TRAIN or LIVE, got {mode!r}")
    return Settings(
        api_url=os.environ.get("BOT_API_URL", "http://localhost:8080").strip().rstrip("/"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        dashboard_enabled=_env_bool("DASHBOARD_ENABLED", True),
        dashboard_host=os.environ.get("DASHBOARD_HOST", "0.0.0.0").strip(),
        dashboard_port=_env_int("DASHBOARD_PORT", 8081, min_value=1),
        poll_interval_sec=_env_float("POLL_INTERVAL_SEC", 4.0, min_value=0.5),
        http_timeout_sec=_env_float("HTTP_TIMEOUT_SEC", 8.0, min_value=0.5),
        default_mode=mode,
        default_symbol=os.environ.get("DEFAULT_SYMBOL", "BTCUSDT").strip().upper(),
        default_interval=os.environ.get("DEFAULT_INTERVAL", "1m").strip(),
        train_window_hours=_env_float("TRAIN_WINDOW_HOURS", 24.0, min_value=0.0),
        initial_balance=_env_float("INITIAL_BALANCE", 10000.0, min_value=0.0),
        risk_pct=_env_float("RISK_PCT", 0.1, min_value=0.0),
        candle_limit=_env_int("CANDLE_LIMIT", 500, min_value=1),
        trade_limit=_env_int("TRADE_LIMIT", 300, min_value=1),
        snapshot_limit=_env_int("SNAPSHOT_LIMIT", 2000, min_value=1),
    )
