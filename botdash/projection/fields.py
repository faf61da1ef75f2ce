"""Tolerant field lookup over the inconsistent record shapes the bot backend emits.

Each logical field is described by an ordered tuple of accessors. The first
accessor that yields a present (non-``None``) value wins, even when that value
later fails to parse.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

Accessor = Callable[[Mapping[str, Any]], Any]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def field(name: str) -> Accessor:
    return lambda record: record.get(name)


def fields(*names: str) -> tuple[Accessor, ...]:
    return tuple(field(name) for name in names)


TRADE_TIME = fields("executedAt", "purchased_at", "ts")
SNAPSHOT_TIME = fields(
    "ts",
    "snapshotTime",
    "snapshot_time",
    "time",
    "createdAt",
    "created_at",
    "executedAt",
    "purchased_at",
)
CANDLE_TIME = fields("openTime")
SNAPSHOT_TOTAL = fields("totalValue", "total")
SNAPSHOT_CASH = fields("cashBalance", "cash")
SNAPSHOT_POS = fields("positionValue", "pos")


def first_present(record: Mapping[str, Any], candidates: Sequence[Accessor]) -> Any:
    for get in candidates:
        value = get(record)
        if value is not None:
            return value
    return None


def to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return out if math.isfinite(out) else 0.0


def parse_timestamp_ms(value: Any) -> float | None:
    """Epoch milliseconds for a number or an ISO-8601 string, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            out = float(value)
        except OverflowError:
            return None
        return out if math.isfinite(out) else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return float((dt - _EPOCH) // _ONE_MS)


def format_display_time(ms: float | None) -> str:
    if ms is None:
        return ""
    try:
        return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).strftime(DISPLAY_FORMAT)
    except (OverflowError, OSError, ValueError):
        return ""


def resolve_time(value: Any, index: int) -> tuple[float, str]:
    # unparseable -> batch position; not comparable across cycles
    ms = parse_timestamp_ms(value)
    if ms is None:
        return float(index), ""
    return ms, format_display_time(ms)
