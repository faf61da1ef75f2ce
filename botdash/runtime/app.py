from __future__ import annotations

import asyncio

from botdash.config import Settings
from botdash.dashboard import run_dashboard
from botdash.data import BotApiClient
from botdash.domain import DashboardParams
from botdash.infra import get_logger
from botdash.runtime.commands import CommandDispatcher
from botdash.runtime.controller import DashboardController


class App:
    """Top-level orchestrator: API client, poller, command dispatcher and web surface."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("botdash", settings.log_level)

    def build(self, client: BotApiClient) -> tuple[DashboardController, CommandDispatcher]:
        s = self.settings
        controller = DashboardController(
            client,
            self.log,
            poll_interval_sec=s.poll_interval_sec,
            params=DashboardParams(mode=s.default_mode, symbol=s.default_symbol, interval=s.default_interval),
            candle_limit=s.candle_limit,
            trade_limit=s.trade_limit,
            snapshot_limit=s.snapshot_limit,
            train_window_hours=s.train_window_hours,
            initial_balance=s.initial_balance,
            risk_pct=s.risk_pct,
        )
        return controller, CommandDispatcher(client, controller, self.log)

    async def run(self) -> None:
        s = self.settings
        self.log.info(
            "starting botdash api=%s mode=%s symbol=%s interval=%s poll=%.1fs",
            s.api_url,
            s.default_mode,
            s.default_symbol,
            s.default_interval,
            s.poll_interval_sec,
        )
        client = BotApiClient(s.api_url, timeout=s.http_timeout_sec)
        controller, dispatcher = self.build(client)
        try:
            await controller.start()
            if controller.state.error:
                self.log.warning("initial refresh failed: %s", controller.state.error)
            if s.dashboard_enabled:
                await run_dashboard(
                    controller,
                    dispatcher,
                    self.log,
                    host=s.dashboard_host,
                    port=s.dashboard_port,
                )
            else:
                while True:
                    await asyncio.sleep(3600)
        finally:
            await controller.close()
            await client.close()


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())
