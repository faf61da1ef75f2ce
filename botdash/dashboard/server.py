from __future__ import annotations

import asyncio
import json

from aiohttp import web

from botdash.projection import build_dashboard_view
from botdash.runtime.commands import CommandDispatcher
from botdash.runtime.controller import DashboardController


HTML = """<!doctype html><html><head><meta charset='utf-8'><title>Trading Bot Dashboard</title></head>
<body style='font-family:system-ui;background:#060b16;color:#dbe4ff;padding:16px'>
<h2>Trading Bot Dashboard</h2>
<div>
<button onclick="cmd('start')">Start</button>
<button onclick="cmd('pause')">Pause</button>
<button onclick="cmd('reset')">Reset</button>
</div>
<pre id='err' style='color:#ff6b6b'></pre>
<pre id='out'>loading...</pre>
<script>
async function cmd(name){
  await fetch('/api/command/'+name,{method:'POST'});
  tick();
}
async function tick(){
  try{
    const r=await fetch('/api/view',{cache:'no-store'});
    const j=await r.json();
    document.getElementById('err').textContent=j.error||'';
    document.getElementById('out').textContent=JSON.stringify(j,null,2);
  }catch(e){document.getElementById('out').textContent='dashboard error: '+e;}
}
setInterval(tick,2000);tick();
</script>
</body></html>"""

_NO_STORE = {"Cache-Control": "no-store"}


def _bad_request(message: str) -> web.Response:
    return web.json_response({"ok": False, "message": message}, status=400, headers=_NO_STORE)


async def _json_body(req: web.Request) -> dict:
    if not req.can_read_body:
        return {}
    try:
        body = await req.json()
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON body: {exc}") from exc
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


def build_app(controller: DashboardController, dispatcher: CommandDispatcher, log) -> web.Application:
    def view() -> dict:
        return build_dashboard_view(controller.state, controller.params)

    async def handle_html(_req: web.Request) -> web.Response:
        return web.Response(text=HTML, content_type="text/html")

    async def handle_view(_req: web.Request) -> web.Response:
        return web.json_response(view(), headers=_NO_STORE)

    async def handle_params(req: web.Request) -> web.Response:
        try:
            body = await _json_body(req)
            await controller.set_params(
                mode=body.get("mode"),
                symbol=body.get("symbol"),
                interval=body.get("interval"),
            )
        except ValueError as exc:
            return _bad_request(str(exc))
        return web.json_response(view(), headers=_NO_STORE)

    async def handle_train_window(req: web.Request) -> web.Response:
        try:
            body = await _json_body(req)
            controller.set_train_window(
                from_iso=body.get("fromIso"),
                to_iso=body.get("toIso"),
                initial_balance=body.get("initialBalance"),
                risk_pct=body.get("riskPct"),
            )
        except (TypeError, ValueError) as exc:
            return _bad_request(str(exc))
        return web.json_response({"ok": True, **controller.start_request().to_payload()}, headers=_NO_STORE)

    async def handle_command(req: web.Request) -> web.Response:
        name = req.match_info["name"]
        try:
            ok = await dispatcher.run(name)
        except ValueError as exc:
            return _bad_request(str(exc))
        log.debug("command %s ok=%s", name, ok)
        return web.json_response({"ok": ok, **view()}, headers=_NO_STORE)

    app = web.Application()
    app.router.add_get("/", handle_html)
    app.router.add_get("/api/view", handle_view)
    app.router.add_post("/api/params", handle_params)
    app.router.add_post("/api/train-window", handle_train_window)
    app.router.add_post("/api/command/{name}", handle_command)
    return app


async def run_dashboard(
    controller: DashboardController,
    dispatcher: CommandDispatcher,
    log,
    *,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> None:
    runner = web.AppRunner(build_app(controller, dispatcher, log))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("dashboard running on %s:%s", host, port)

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
