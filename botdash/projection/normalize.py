from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from botdash.domain import CandleRow, SnapshotRow, TradeRow
from botdash.projection.fields import (
    CANDLE_TIME,
    SNAPSHOT_CASH,
    SNAPSHOT_POS,
    SNAPSHOT_TIME,
    SNAPSHOT_TOTAL,
    TRADE_TIME,
    first_present,
    resolve_time,
    to_number,
)

_EMPTY: Mapping[str, Any] = {}


def as_records(payload: Any) -> list[Any]:
    return list(payload) if isinstance(payload, list) else []


def _record(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else _EMPTY


def normalize_candle(raw: Any, index: int) -> CandleRow:
    rec = _record(raw)
    t, display = resolve_time(first_present(rec, CANDLE_TIME), index)
    return CandleRow(t=t, close=to_number(rec.get("close")), display_time=display)


def normalize_trade(raw: Any, index: int) -> TradeRow:
    rec = _record(raw)
    when = first_present(rec, TRADE_TIME)
    t, display = resolve_time(when, index)
    return TradeRow(
        id=rec.get("id"),
        side=rec.get("side"),
        quantity=to_number(rec.get("quantity")),
        price=to_number(rec.get("price")),
        fee=to_number(rec.get("fee")),
        realized_pnl=to_number(rec.get("realizedPnl")),
        t=t,
        display_time=display,
        raw_time=when,
    )


def normalize_snapshot(raw: Any, index: int) -> SnapshotRow:
    rec = _record(raw)
    t, _ = resolve_time(first_present(rec, SNAPSHOT_TIME), index)
    return SnapshotRow(
        t=t,
        total=to_number(first_present(rec, SNAPSHOT_TOTAL)),
        cash=to_number(first_present(rec, SNAPSHOT_CASH)),
        pos=to_number(first_present(rec, SNAPSHOT_POS)),
    )


def normalize_candles(payload: Any) -> tuple[CandleRow, ...]:
    return tuple(normalize_candle(raw, i) for i, raw in enumerate(as_records(payload)))


def normalize_trades(payload: Any) -> tuple[TradeRow, ...]:
    return tuple(normalize_trade(raw, i) for i, raw in enumerate(as_records(payload)))


def normalize_snapshots(payload: Any) -> tuple[SnapshotRow, ...]:
    return tuple(normalize_snapshot(raw, i) for i, raw in enumerate(as_records(payload)))
