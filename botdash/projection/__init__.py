from .fields import first_present, parse_timestamp_ms, to_number
from .normalize import (
    normalize_candle,
    normalize_candles,
    normalize_snapshot,
    normalize_snapshots,
    normalize_trade,
    normalize_trades,
)
from .views import (
    axis_range,
    axis_range_for,
    build_dashboard_view,
    equity_curve,
    latest_summary,
    price_series,
    trade_markers,
    trade_table,
)

__all__ = [
    "first_present",
    "parse_timestamp_ms",
    "to_number",
    "normalize_candle",
    "normalize_candles",
    "normalize_snapshot",
    "normalize_snapshots",
    "normalize_trade",
    "normalize_trades",
    "axis_range",
    "axis_range_for",
    "build_dashboard_view",
    "equity_curve",
    "latest_summary",
    "price_series",
    "trade_markers",
    "trade_table",
]
