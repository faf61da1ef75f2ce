from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MODES = ("TRAIN", "LIVE")


@dataclass(frozen=True)
class CandleRow:
    t: float
    close: float
    display_time: str


@dataclass(frozen=True)
class TradeRow:
    id: Any
    side: Any
    quantity: float
    price: float
    fee: float
    realized_pnl: float
    t: float
    display_time: str
    raw_time: Any = None


@dataclass(frozen=True)
class SnapshotRow:
    t: float
    total: float
    cash: float
    pos: float


@dataclass(frozen=True)
class EquityPoint:
    t: float
    total: float
    cash: float
    pos: float


@dataclass(frozen=True)
class TradeMarker:
    display_time: str
    price: float
    side: Any


@dataclass(frozen=True)
class PricePoint:
    display_time: str
    close: float


@dataclass(frozen=True)
class TradeTableRow:
    key: str
    date: str
    side: str
    quantity: str
    price: str
    fee: str
    realized_pnl: str


@dataclass(frozen=True)
class DashboardParams:
    mode: str = "TRAIN"
    symbol: str = "BTCUSDT"
    interval: str = "1m"


@dataclass(frozen=True)
class StartRequest:
    mode: str
    symbol: str
    interval: str
    from_iso: str | None
    to_iso: str | None
    initial_balance: float
    risk_pct: float

    def to_payload(self) -> dict[str, Any]:
        train = self.mode == "TRAIN"
        return {
            "mode": self.mode,
            "symbol": self.symbol,
            "interval": self.interval,
            "fromIso": self.from_iso if train else None,
            "toIso": self.to_iso if train else None,
            "initialBalance": self.initial_balance,
            "riskPct": self.risk_pct,
        }


@dataclass(frozen=True)
class DashboardState:
    """One consistent view of the last applied refresh cycle."""

    status: dict[str, Any] | None = None
    candles: tuple[CandleRow, ...] = field(default_factory=tuple)
    trades: tuple[TradeRow, ...] = field(default_factory=tuple)
    snapshots: tuple[SnapshotRow, ...] = field(default_factory=tuple)
    error: str = ""
    cycle: int = 0
