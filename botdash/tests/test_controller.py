import asyncio
import logging
from datetime import datetime, timezone

from botdash.data import ApiError
from botdash.runtime.controller import DashboardController, iso_ms

from .fakes import FakeClient

LOG = logging.getLogger("botdash-test")
NOW = datetime(2026, 1, 2, 12, 0, 0, 123000, tzinfo=timezone.utc)


async def _settle() -> None:
    # let gathered reads start and park on the gate
    for _ in range(5):
        await asyncio.sleep(0)


def _controller(client: FakeClient, **kwargs) -> DashboardController:
    kwargs.setdefault("poll_interval_sec", 60.0)
    return DashboardController(client, LOG, now=NOW, **kwargs)


def test_initial_state() -> None:
    ctl = _controller(FakeClient())
    assert (ctl.params.mode, ctl.params.symbol, ctl.params.interval) == ("TRAIN", "BTCUSDT", "1m")
    assert ctl.from_iso == "2026-01-01T12:00:00.123Z"
    assert ctl.to_iso == "2026-01-02T12:00:00.123Z"
    assert ctl.state.candles == () and ctl.state.error == "" and ctl.state.status is None
    assert ctl.armed_cadences == 0


def test_iso_ms_format() -> None:
    assert iso_ms(datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)) == "2026-03-04T05:06:07.000Z"


def test_refresh_applies_all_collections() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        ok = await ctl.refresh()
        return ctl, ok

    ctl, ok = asyncio.run(run())
    assert ok
    assert ctl.state.status == {"running": False, "mode": "TRAIN"}
    assert len(ctl.state.candles) == 2
    assert len(ctl.state.trades) == 1
    assert len(ctl.state.snapshots) == 2
    assert ctl.state.cycle == 1
    assert client.reads("candles") == [("candles", "BTCUSDT", "1m", 500)]
    assert client.reads("trades") == [("trades", "TRAIN", "BTCUSDT", 300)]
    assert client.reads("snapshots") == [("snapshots", "TRAIN", "BTCUSDT", 2000)]


def test_failed_read_keeps_previous_data_and_sets_error() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        await ctl.refresh()
        before = ctl.state
        client.status = {"running": True}
        client.candles = []
        client.snapshots = []
        client.fail["trades"] = ApiError("trades failed", status=500)
        ok = await ctl.refresh()
        return ctl, before, ok

    ctl, before, ok = asyncio.run(run())
    assert not ok
    assert ctl.state.error == "trades failed"
    assert ctl.state.status == before.status
    assert ctl.state.candles == before.candles
    assert ctl.state.trades == before.trades
    assert ctl.state.snapshots == before.snapshots


def test_successful_refresh_clears_previous_error() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        client.fail["status"] = RuntimeError("boom")
        await ctl.refresh()
        first = ctl.state.error
        client.fail.clear()
        await ctl.refresh()
        return first, ctl.state.error

    first, second = asyncio.run(run())
    assert first == "boom"
    assert second == ""


def test_error_without_message_uses_exception_name() -> None:
    client = FakeClient()
    client.fail["candles"] = asyncio.TimeoutError()

    async def run():
        ctl = _controller(client)
        await ctl.refresh()
        return ctl.state.error

    assert asyncio.run(run()) == "TimeoutError"


def test_param_change_replaces_cadence() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        await ctl.start()
        first = ctl._cadence
        armed_after_start = ctl.armed_cadences
        await ctl.set_params(symbol="ETHUSDT")
        second = ctl._cadence
        armed_after_change = ctl.armed_cadences
        await ctl.close()
        return first, second, armed_after_start, armed_after_change, ctl.armed_cadences, ctl

    first, second, n_start, n_change, n_closed, ctl = asyncio.run(run())
    assert n_start == 1
    assert n_change == 1
    assert first is not second
    assert first.cancelled()
    assert second.cancelled()
    assert n_closed == 0
    assert ctl.params.symbol == "ETHUSDT"
    assert client.reads("candles")[-1] == ("candles", "ETHUSDT", "1m", 500)
    assert len(client.reads("status")) == 2


def test_cadence_refreshes_repeatedly() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client, poll_interval_sec=0.01)
        await ctl.start()
        await asyncio.sleep(0.1)
        await ctl.close()
        return ctl

    ctl = asyncio.run(run())
    assert len(client.reads("status")) >= 3
    assert ctl.armed_cadences == 0


def test_set_params_validates_mode() -> None:
    async def run():
        ctl = _controller(FakeClient())
        try:
            await ctl.set_params(mode="PAPER")
        except ValueError as exc:
            return ctl, str(exc)
        return ctl, ""

    ctl, message = asyncio.run(run())
    assert "TRAIN" in message
    assert ctl.params.mode == "TRAIN"
    assert ctl.armed_cadences == 0


def test_set_params_normalizes_values() -> None:
    async def run():
        ctl = _controller(FakeClient())
        out = await ctl.set_params(mode="live", symbol=" ethusdt ", interval="5m")
        await ctl.close()
        return out

    out = asyncio.run(run())
    assert (out.mode, out.symbol, out.interval) == ("LIVE", "ETHUSDT", "5m")


def test_stale_cycle_does_not_overwrite_newer_state() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        gate = asyncio.Event()
        client.gate = gate
        slow = asyncio.create_task(ctl.refresh())
        await _settle()
        client.gate = None
        client.status = {"running": True}
        await ctl.refresh()
        newer = ctl.state
        gate.set()
        applied = await slow
        return ctl, newer, applied

    ctl, newer, applied = asyncio.run(run())
    assert applied is False
    assert ctl.state is newer
    assert ctl.state.cycle == 2


def test_stale_cycle_failure_does_not_set_error() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        gate = asyncio.Event()
        client.gate = gate
        client.fail["snapshots"] = RuntimeError("late failure")
        slow = asyncio.create_task(ctl.refresh())
        await _settle()
        client.gate = None
        client.fail.clear()
        await ctl.refresh()
        client.fail["snapshots"] = RuntimeError("late failure")
        gate.set()
        await slow
        return ctl

    ctl = asyncio.run(run())
    assert ctl.state.error == ""
    assert ctl.state.cycle == 2


def test_cycle_from_previous_params_is_dropped() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        gate = asyncio.Event()
        client.gate = gate
        slow = asyncio.create_task(ctl.refresh())
        await _settle()
        client.gate = None
        ctl._generation += 1
        gate.set()
        return await slow, ctl

    applied, ctl = asyncio.run(run())
    assert applied is False
    assert ctl.state.cycle == 0


def test_start_request_depends_on_mode() -> None:
    async def run():
        ctl = _controller(FakeClient())
        train = ctl.start_request().to_payload()
        await ctl.set_params(mode="LIVE")
        live = ctl.start_request().to_payload()
        await ctl.close()
        return train, live

    train, live = asyncio.run(run())
    assert train["fromIso"] == "2026-01-01T12:00:00.123Z"
    assert train["toIso"] == "2026-01-02T12:00:00.123Z"
    assert live["fromIso"] is None and live["toIso"] is None
    assert live["initialBalance"] == 10000.0 and live["riskPct"] == 0.1


def test_set_train_window_validation() -> None:
    ctl = _controller(FakeClient())
    ctl.set_train_window(from_iso="2026-01-01T00:00:00Z", risk_pct=0.5)
    assert ctl.from_iso == "2026-01-01T00:00:00Z"
    assert ctl.risk_pct == 0.5
    for kwargs in ({"to_iso": "soon"}, {"from_iso": 123}, {"to_iso": 1767225600000}, {"risk_pct": 0}, {"risk_pct": 1.5}, {"initial_balance": -1}):
        try:
            ctl.set_train_window(**kwargs)
        except ValueError:
            continue
        raise AssertionError(f"accepted {kwargs}")
    assert ctl.risk_pct == 0.5


class _ExplodingList(list):
    def __iter__(self):
        raise RuntimeError("bad payload")


def test_unreadable_payload_keeps_previous_data() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client)
        await ctl.refresh()
        before = ctl.state
        client.snapshots = _ExplodingList()
        ok = await ctl.refresh()
        return ctl, before, ok

    ctl, before, ok = asyncio.run(run())
    assert not ok
    assert ctl.state.error == "bad payload"
    assert ctl.state.snapshots == before.snapshots
    assert ctl.state.cycle == before.cycle


def test_cadence_survives_oversized_timestamp() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client, poll_interval_sec=0.01)
        await ctl.start()
        good = client.snapshots
        client.snapshots = [{"totalValue": 1, "ts": 10**400}]
        await asyncio.sleep(0.03)
        client.snapshots = good
        reads = len(client.reads("status"))
        await asyncio.sleep(0.05)
        armed = ctl.armed_cadences
        later = len(client.reads("status"))
        await ctl.close()
        return armed, reads, later

    armed, reads, later = asyncio.run(run())
    assert armed == 1
    assert later > reads


class _FailingController(DashboardController):
    failures = 0

    async def refresh(self, *, clear_error: bool = True) -> bool:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("unexpected")
        return await super().refresh(clear_error=clear_error)


def test_cadence_keeps_running_after_refresh_error() -> None:
    client = FakeClient()

    async def run():
        ctl = _FailingController(client, LOG, poll_interval_sec=0.01, now=NOW)
        await ctl.start()
        ctl.failures = 2
        await asyncio.sleep(0.1)
        armed = ctl.armed_cadences
        await ctl.close()
        return ctl, armed

    ctl, armed = asyncio.run(run())
    assert armed == 1
    assert ctl.failures == 0
    assert len(client.reads("status")) >= 3


def test_param_change_waits_for_in_flight_cadence_cycle() -> None:
    client = FakeClient()

    async def run():
        ctl = _controller(client, poll_interval_sec=0.01)
        await ctl.start()
        gate = asyncio.Event()
        client.gated = {"status"}
        client.gate = gate
        await asyncio.sleep(0.05)
        change = asyncio.create_task(ctl.set_params(symbol="ETHUSDT"))
        await asyncio.sleep(0.02)
        waiting = not change.done()
        gate.set()
        await change
        await ctl.close()
        return ctl, waiting

    ctl, waiting = asyncio.run(run())
    assert waiting
    assert client.completed.count("status") == len(client.reads("status"))
    assert ctl.params.symbol == "ETHUSDT"
    assert ctl.armed_cadences == 0
