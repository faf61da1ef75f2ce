from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from typing import Any

from botdash.domain import (
    CandleRow,
    DashboardParams,
    DashboardState,
    EquityPoint,
    PricePoint,
    SnapshotRow,
    TradeMarker,
    TradeRow,
    TradeTableRow,
)

AXIS_PAD = 200.0
AXIS_STEP = 100.0


def equity_curve(snapshots: Iterable[SnapshotRow]) -> list[EquityPoint]:
    points = [EquityPoint(t=s.t, total=s.total, cash=s.cash, pos=s.pos) for s in snapshots]
    # sorted() is stable: equal timestamps keep backend order
    return sorted(points, key=lambda p: p.t)


def trade_markers(trades: Iterable[TradeRow]) -> list[TradeMarker]:
    return [TradeMarker(display_time=t.display_time, price=t.price, side=t.side) for t in trades]


def price_series(candles: Iterable[CandleRow]) -> list[PricePoint]:
    return [PricePoint(display_time=c.display_time, close=c.close) for c in candles]


def latest_summary(curve: Sequence[EquityPoint]) -> EquityPoint | None:
    return curve[-1] if curve else None


def axis_range(
    data_min: float,
    data_max: float,
    *,
    pad: float = AXIS_PAD,
    step: float = AXIS_STEP,
) -> tuple[int, int]:
    lo = math.floor((data_min - pad) / step) * step
    hi = math.ceil((data_max + pad) / step) * step
    return int(lo), int(hi)


def axis_range_for(values: Iterable[float]) -> tuple[int, int] | None:
    vals = list(values)
    if not vals:
        return None
    return axis_range(min(vals), max(vals))


def _row_key(t: TradeRow) -> str:
    if t.id is not None:
        return str(t.id)
    when = "" if t.raw_time is None else t.raw_time
    return f"{t.side}-{when}-{t.price:g}"


def trade_table(trades: Iterable[TradeRow]) -> list[TradeTableRow]:
    return [
        TradeTableRow(
            key=_row_key(t),
            date=t.display_time,
            side="" if t.side is None else str(t.side),
            quantity=f"{t.quantity:.6f}",
            price=f"{t.price:.2f}",
            fee=f"{t.fee:.4f}",
            realized_pnl=f"{t.realized_pnl:.2f}",
        )
        for t in trades
    ]


def build_dashboard_view(state: DashboardState, params: DashboardParams) -> dict[str, Any]:
    """JSON-ready projection of one applied cycle for the dashboard page."""
    curve = equity_curve(state.snapshots)
    prices = price_series(state.candles)
    latest = latest_summary(curve)
    status = state.status if isinstance(state.status, dict) else None
    return {
        "mode": params.mode,
        "symbol": params.symbol,
        "interval": params.interval,
        "running": None if status is None else status.get("running"),
        "status": status,
        "error": state.error,
        "cycle": state.cycle,
        "summary": None
        if latest is None
        else {
            "total": f"{latest.total:.2f}",
            "cash": f"{latest.cash:.2f}",
            "pos": f"{latest.pos:.2f}",
        },
        "equity": [asdict(p) for p in curve],
        "equity_axis": axis_range_for(p.total for p in curve),
        "prices": [asdict(p) for p in prices],
        "price_axis": axis_range_for(p.close for p in prices),
        "markers": [asdict(m) for m in trade_markers(state.trades)],
        "trades": [asdict(r) for r in trade_table(state.trades)],
    }
