from __future__ import annotations

from typing import Any

import aiohttp


class ApiError(RuntimeError):
    """Non-success HTTP status from the bot service."""

    def __init__(self, message: str, *, status: int = 0):
        super().__init__(message)
        self.status = status


class BotApiClient:
    """Thin async client for the bot service's read and command endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 8.0,
        conn_limit: int = 8,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = max(0.5, float(timeout))
        self._conn_limit = max(1, int(conn_limit))
        self._session = session
        self._owns_session = session is None

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        connector = aiohttp.TCPConnector(limit=self._conn_limit, enable_cleanup_closed=True)
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": "botdash/1.0"},
        )
        self._owns_session = True
        return self._session

    async def _get_json(self, path: str, *, params: dict | None, fail_message: str) -> Any:
        session = await self._ensure_session()
        async with session.get(
            self.base_url + path,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as r:
            if not 200 <= r.status < 300:
                raise ApiError(fail_message, status=r.status)
            return await r.json(content_type=None)

    async def _post(
        self,
        path: str,
        *,
        params: dict | None = None,
        json_body: Any = None,
        fail_message: str | None = None,
    ) -> None:
        session = await self._ensure_session()
        async with session.post(
            self.base_url + path,
            params=params,
            json=json_body,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as r:
            if not 200 <= r.status < 300:
                message = fail_message if fail_message is not None else await r.text()
                raise ApiError(message, status=r.status)

    async def get_status(self) -> Any:
        return await self._get_json("/api/bot/status", params=None, fail_message="status failed")

    async def get_candles(self, symbol: str, interval: str, limit: int = 500) -> Any:
        return await self._get_json(
            "/api/market/candles",
            params={"symbol": symbol, "interval": interval, "limit": int(limit)},
            fail_message="candles failed",
        )

    async def get_trades(self, mode: str, symbol: str, limit: int = 200) -> Any:
        return await self._get_json(
            "/api/trades",
            params={"mode": mode, "symbol": symbol, "limit": int(limit)},
            fail_message="trades failed",
        )

    async def get_snapshots(self, mode: str, symbol: str, limit: int = 1000) -> Any:
        return await self._get_json(
            "/api/portfolio/snapshots",
            params={"mode": mode, "symbol": symbol, "limit": int(limit)},
            fail_message="snapshots failed",
        )

    async def start_bot(self, payload: dict[str, Any]) -> None:
        # start surfaces the service's own error text
        await self._post("/api/bot/start", json_body=payload)

    async def pause_bot(self) -> None:
        await self._post("/api/bot/pause", fail_message="pause failed")

    async def reset_bot(self, mode: str, symbol: str) -> None:
        await self._post(
            "/api/bot/reset",
            params={"mode": mode, "symbol": symbol},
            fail_message="reset failed",
        )
