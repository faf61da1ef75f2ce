import asyncio
import logging

from aiohttp import test_utils

from botdash.dashboard.server import build_app
from botdash.runtime.commands import CommandDispatcher
from botdash.runtime.controller import DashboardController

from .fakes import FakeClient

LOG = logging.getLogger("botdash-test")


async def _with_http(fn):
    fake = FakeClient()
    ctl = DashboardController(fake, LOG, poll_interval_sec=60.0)
    app = build_app(ctl, CommandDispatcher(fake, ctl, LOG), LOG)
    http = test_utils.TestClient(test_utils.TestServer(app))
    await http.start_server()
    try:
        return await fn(http, ctl, fake)
    finally:
        await http.close()
        await ctl.close()


def test_view_after_refresh() -> None:
    async def fn(http, ctl, _fake):
        await ctl.refresh()
        r = await http.get("/api/view")
        return r.status, await r.json()

    status, body = asyncio.run(_with_http(fn))
    assert status == 200
    assert body["symbol"] == "BTCUSDT"
    assert body["summary"]["total"] == "10050.00"
    assert [p["total"] for p in body["equity"]] == [10000.0, 10050.0]


def test_params_change_and_validation() -> None:
    async def fn(http, ctl, fake):
        ok = await http.post("/api/params", json={"symbol": "ETHUSDT"})
        bad = await http.post("/api/params", json={"mode": "PAPER"})
        return ok.status, (await ok.json())["symbol"], bad.status, ctl.armed_cadences, fake

    ok_status, symbol, bad_status, armed, fake = asyncio.run(_with_http(fn))
    assert ok_status == 200
    assert symbol == "ETHUSDT"
    assert bad_status == 400
    assert armed == 1
    assert fake.reads("candles")[-1][1] == "ETHUSDT"


def test_command_endpoint() -> None:
    async def fn(http, _ctl, fake):
        fake.fail["pause"] = RuntimeError("pause failed")
        r = await http.post("/api/command/pause")
        unknown = await http.post("/api/command/explode")
        return await r.json(), unknown.status

    body, unknown_status = asyncio.run(_with_http(fn))
    assert body["ok"] is False
    assert body["error"] == "pause failed"
    assert unknown_status == 400


def test_train_window_endpoint() -> None:
    async def fn(http, _ctl, _fake):
        ok = await http.post("/api/train-window", json={"fromIso": "2026-01-01T00:00:00Z", "riskPct": 0.2})
        bad = await http.post("/api/train-window", json={"riskPct": 3})
        return await ok.json(), bad.status

    body, bad_status = asyncio.run(_with_http(fn))
    assert body["fromIso"] == "2026-01-01T00:00:00Z"
    assert body["riskPct"] == 0.2
    assert bad_status == 400
