"""
webapi/app.py - HTTP request surface and websocket observer endpoint.

    GET  /api/status        -> {ready, state, timestamp}
    POST /api/send-message  -> {success, messageId} | {error}
    GET  /api/contacts      -> [{id, name, isGroup, unreadCount}, ...]
    GET  /ws                -> websocket; every relay event as {event, data}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import WSMsgType, web

from whatsrelay.core.events import StatusChanged
from whatsrelay.core.exceptions import InputError, NotReadyError, TransportFailure
from whatsrelay.core.normalizer import DISCONNECTED_MESSAGE, READY_MESSAGE
from whatsrelay.core.relay import SessionRelay
from whatsrelay.webapi.observers import WebSocketObserver

logger = logging.getLogger(__name__)

RELAY_KEY = web.AppKey("relay", SessionRelay)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return _error("Something went wrong!", 500)


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    response = await handler(request)
    if not isinstance(response, web.WebSocketResponse):
        response.headers.update(CORS_HEADERS)
    return response


async def status(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    return web.json_response(relay.status_snapshot())


async def _read_body(request: web.Request) -> dict[str, Any]:
    if request.content_type == "application/json":
        try:
            data = await request.json()
        except json.JSONDecodeError:
            raise InputError("request body is not valid JSON") from None
        if not isinstance(data, dict):
            raise InputError("request body must be a JSON object")
        return data
    return dict(await request.post())


async def send_message(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    try:
        data = await _read_body(request)
        phone = data.get("phoneNumber")
        message = data.get("message")
        if not phone or not message:
            raise InputError("phoneNumber and message are required")
        sent = await relay.gateway.send_message(str(phone), str(message))
    except (NotReadyError, InputError) as exc:
        return _error(exc.detail, exc.status)
    except TransportFailure:
        return _error("Failed to send message", 500)
    return web.json_response({"success": True, "messageId": sent.message_id})


async def contacts(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    try:
        raw_limit = request.query.get("limit")
        if raw_limit is not None and not raw_limit.isdigit():
            raise InputError("limit must be a positive integer")
        chats = await relay.gateway.list_contacts(int(raw_limit) if raw_limit else None)
    except (NotReadyError, InputError) as exc:
        return _error(exc.detail, exc.status)
    except TransportFailure:
        return _error("Failed to fetch contacts", 500)
    return web.json_response([chat.to_dict() for chat in chats])


async def observer_socket(request: web.Request) -> web.WebSocketResponse:
    relay = request.app[RELAY_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    # Current status first; later events come through the hub.
    ready = relay.status_snapshot()["ready"]
    status = StatusChanged(ready=ready, message=READY_MESSAGE if ready else DISCONNECTED_MESSAGE)
    await ws.send_json({"event": status.event_name, "data": status.to_payload()})

    observer = WebSocketObserver(ws)
    relay.hub.on_observer_joined(observer)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.warning("Observer %r connection error: %s", observer, ws.exception())
    finally:
        relay.hub.on_observer_left(observer)
    return ws


def create_app(relay: SessionRelay) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[RELAY_KEY] = relay
    app.router.add_get("/api/status", status)
    app.router.add_post("/api/send-message", send_message)
    app.router.add_get("/api/contacts", contacts)
    app.router.add_get("/ws", observer_socket)
    return app


async def start_web(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Web interface listening on http://%s:%s", host, port)
    return runner
