from __future__ import annotations

from collections.abc import Awaitable, Callable

from botdash.runtime.controller import DashboardController, error_message


class CommandDispatcher:
    """Forwards start/pause/reset to the bot service, then refreshes once."""

    def __init__(self, client, controller: DashboardController, log):
        self.client = client
        self.controller = controller
        self.log = log

    async def start(self) -> bool:
        payload = self.controller.start_request().to_payload()
        return await self._dispatch("start", lambda: self.client.start_bot(payload))

    async def pause(self) -> bool:
        return await self._dispatch("pause", self.client.pause_bot)

    async def reset(self) -> bool:
        params = self.controller.params
        return await self._dispatch("reset", lambda: self.client.reset_bot(params.mode, params.symbol))

    async def run(self, name: str) -> bool:
        handler = {"start": self.start, "pause": self.pause, "reset": self.reset}.get(name)
        if handler is None:
            raise ValueError(f"unknown command: {name}")
        return await handler()

    async def _dispatch(self, name: str, call: Callable[[], Awaitable[None]]) -> bool:
        async with self.controller.transition_lock:
            self.controller.clear_error()
            ok = True
            try:
                await call()
                self.log.info("command %s sent", name)
            except Exception as exc:
                ok = False
                self.controller.set_error(error_message(exc))
                self.log.warning("command %s failed: %s", name, exc)
            # a failed command keeps its message unless the refresh fails too
            await self.controller.refresh(clear_error=ok)
        return ok
