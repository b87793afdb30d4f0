"""
webapi/observers.py - WebSocket-backed dashboard observers.
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

from whatsrelay.core.hub import Observer

__all__ = ["WebSocketObserver"]


class WebSocketObserver(Observer):
    """Pushes each event as ``{"event": <name>, "data": <payload>}``."""

    def __init__(self, ws: web.WebSocketResponse, observer_id: str | None = None) -> None:
        super().__init__(observer_id)
        self.ws = ws

    async def send(self, event_name: str, payload: dict[str, Any]) -> None:
        if self.ws.closed:
            raise ConnectionResetError("websocket is closed")
        await self.ws.send_json({"event": event_name, "data": payload})

    async def close(self) -> None:
        if not self.ws.closed:
            await self.ws.close()
