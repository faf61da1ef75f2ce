from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from botdash.domain import MODES, DashboardParams, DashboardState, StartRequest
from botdash.projection import normalize_candles, normalize_snapshots, normalize_trades, parse_timestamp_ms


def iso_ms(dt: datetime) -> str:
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class DashboardController:
    """Owns the refresh lifecycle and the only mutable dashboard state.

    A parameter change is one transition: cancel the armed cadence, run one
    refresh with the new parameters, arm a new cadence. Cadence ticks, commands
    and transitions share one lock, so an in-flight cycle always runs to
    completion before the cadence is replaced. Every refresh cycle
    gets an increasing id and is tagged with the parameter generation it
    started under; results from a cycle older than the last applied one, or
    from a superseded generation, are dropped.
    """

    def __init__(
        self,
        client,
        log,
        *,
        poll_interval_sec: float = 4.0,
        params: DashboardParams | None = None,
        candle_limit: int = 500,
        trade_limit: int = 300,
        snapshot_limit: int = 2000,
        train_window_hours: float = 24.0,
        initial_balance: float = 10000.0,
        risk_pct: float = 0.1,
        now: datetime | None = None,
    ):
        self.client = client
        self.log = log
        self.poll_interval_sec = max(0.0, float(poll_interval_sec))
        self.params = params or DashboardParams()
        self.candle_limit = int(candle_limit)
        self.trade_limit = int(trade_limit)
        self.snapshot_limit = int(snapshot_limit)

        now = now or datetime.now(timezone.utc)
        self.from_iso = iso_ms(now - timedelta(hours=train_window_hours))
        self.to_iso = iso_ms(now)
        self.initial_balance = float(initial_balance)
        self.risk_pct = float(risk_pct)

        self.state = DashboardState()
        self._cadence: asyncio.Task | None = None
        self._cadences: set[asyncio.Task] = set()
        self._transition = asyncio.Lock()
        self._next_cycle = 0
        self._applied_cycle = 0
        self._generation = 0
        self._closed = False

    @property
    def transition_lock(self) -> asyncio.Lock:
        return self._transition

    @property
    def armed_cadences(self) -> int:
        return sum(1 for task in self._cadences if not task.done())

    async def start(self) -> None:
        async with self._transition:
            await self._cancel_cadence()
            await self.refresh()
            self._arm()

    async def set_params(
        self,
        *,
        mode: str | None = None,
        symbol: str | None = None,
        interval: str | None = None,
    ) -> DashboardParams:
        async with self._transition:
            new = self._validated(mode=mode, symbol=symbol, interval=interval)
            await self._cancel_cadence()
            if new != self.params:
                self.log.info(
                    "params changed mode=%s symbol=%s interval=%s",
                    new.mode,
                    new.symbol,
                    new.interval,
                )
            self.params = new
            self._generation += 1
            await self.refresh()
            self._arm()
        return new

    def set_train_window(
        self,
        *,
        from_iso: str | None = None,
        to_iso: str | None = None,
        initial_balance: float | None = None,
        risk_pct: float | None = None,
    ) -> None:
        for name, value in (("fromIso", from_iso), ("toIso", to_iso)):
            if value is not None and (not isinstance(value, str) or parse_timestamp_ms(value) is None):
                raise ValueError(f"invalid {name}: {value!r} (expected e.g. 2026-01-01T00:00:00Z)")
        if initial_balance is not None and not float(initial_balance) > 0:
            raise ValueError("initialBalance must be positive")
        if risk_pct is not None and not 0 < float(risk_pct) <= 1:
            raise ValueError("riskPct must be in (0, 1]")

        if from_iso is not None:
            self.from_iso = from_iso
        if to_iso is not None:
            self.to_iso = to_iso
        if initial_balance is not None:
            self.initial_balance = float(initial_balance)
        if risk_pct is not None:
            self.risk_pct = float(risk_pct)

    def start_request(self) -> StartRequest:
        train = self.params.mode == "TRAIN"
        return StartRequest(
            mode=self.params.mode,
            symbol=self.params.symbol,
            interval=self.params.interval,
            from_iso=self.from_iso if train else None,
            to_iso=self.to_iso if train else None,
            initial_balance=self.initial_balance,
            risk_pct=self.risk_pct,
        )

    def set_error(self, message: str) -> None:
        self.state = replace(self.state, error=message)

    def clear_error(self) -> None:
        self.set_error("")

    async def refresh(self, *, clear_error: bool = True) -> bool:
        self._next_cycle += 1
        cycle = self._next_cycle
        generation = self._generation
        params = self.params
        if clear_error:
            self.clear_error()

        try:
            status, candles, trades, snapshots = await asyncio.gather(
                self.client.get_status(),
                self.client.get_candles(params.symbol, params.interval, self.candle_limit),
                self.client.get_trades(params.mode, params.symbol, self.trade_limit),
                self.client.get_snapshots(params.mode, params.symbol, self.snapshot_limit),
            )
        except Exception as exc:
            self.log.warning("refresh cycle %s failed: %s", cycle, error_message(exc))
            if self._is_current(cycle, generation):
                self.set_error(error_message(exc))
            return False

        if not self._is_current(cycle, generation):
            self.log.debug("dropping stale refresh cycle %s", cycle)
            return False

        try:
            rows = (normalize_candles(candles), normalize_trades(trades), normalize_snapshots(snapshots))
        except Exception as exc:
            self.log.warning("refresh cycle %s payload rejected: %s", cycle, error_message(exc))
            self.set_error(error_message(exc))
            return False

        self._applied_cycle = cycle
        self.state = DashboardState(
            status=status,
            candles=rows[0],
            trades=rows[1],
            snapshots=rows[2],
            error=self.state.error,
            cycle=cycle,
        )
        return True

    async def close(self) -> None:
        self._closed = True
        async with self._transition:
            await self._cancel_cadence()

    def _is_current(self, cycle: int, generation: int) -> bool:
        return cycle > self._applied_cycle and generation == self._generation

    def _validated(self, *, mode: str | None, symbol: str | None, interval: str | None) -> DashboardParams:
        out = self.params
        if mode is not None:
            mode = str(mode).strip().upper()
            if mode not in MODES:
                raise ValueError(f"mode must be one of {', '.join(MODES)}")
            out = replace(out, mode=mode)
        if symbol is not None:
            symbol = str(symbol).strip().upper()
            if not symbol:
                raise ValueError("symbol must not be empty")
            out = replace(out, symbol=symbol)
        if interval is not None:
            interval = str(interval).strip()
            if not interval:
                raise ValueError("interval must not be empty")
            out = replace(out, interval=interval)
        return out

    def _arm(self) -> None:
        if self._closed:
            return
        task = asyncio.create_task(self._cadence_loop(), name="botdash-cadence")
        self._cadence = task
        self._cadences.add(task)
        task.add_done_callback(self._cadences.discard)

    async def _cancel_cadence(self) -> None:
        task, self._cadence = self._cadence, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait([task])

    async def _cadence_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_sec)
            try:
                # cancellation only happens while sleeping or waiting for the lock
                async with self._transition:
                    await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.log.warning("cadence refresh error: %s", exc)
