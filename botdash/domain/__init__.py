from .models import (
    MODES,
    CandleRow,
    DashboardParams,
    DashboardState,
    EquityPoint,
    PricePoint,
    SnapshotRow,
    StartRequest,
    TradeMarker,
    TradeRow,
    TradeTableRow,
)

__all__ = [
    "MODES",
    "CandleRow",
    "DashboardParams",
    "DashboardState",
    "EquityPoint",
    "PricePoint",
    "SnapshotRow",
    "StartRequest",
    "TradeMarker",
    "TradeRow",
    "TradeTableRow",
]
