"""
HTTP and WebSocket handlers for the workshop server
"""
import hashlib
import json
import logging

from aiohttp import WSMsgType, web

from .hub import Hub

logger = logging.getLogger("workshop_sync")

HUB_KEY = web.AppKey("hub", Hub)

# ============================================================
# WEBSOCKET: ONE CONNECTION PER PARTICIPANT
# ============================================================

async def ws_session(request: web.Request) -> web.WebSocketResponse:
    """WebSocket endpoint: snapshot on connect, actions in, snapshots out"""
    hub = request.app[HUB_KEY]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    await hub.on_connect(ws)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await hub.on_message(ws, msg.data)
            elif msg.type == WSMsgType.BINARY:
                await hub.on_message(ws, msg.data.decode("utf-8", errors="replace"))
            elif msg.type == WSMsgType.ERROR:
                logger.error(f"WebSocket error: {ws.exception()}")
    finally:
        await hub.on_disconnect(ws)

    return ws

# ============================================================
# READ-ONLY STATE
# ============================================================

async def api_state(request: web.Request) -> web.Response:
    """Current shared state with ETag caching"""
    snapshot = request.app[HUB_KEY].snapshot()

    content = json.dumps(snapshot, sort_keys=True)
    etag = hashlib.md5(content.encode()).hexdigest()

    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    response = web.json_response(snapshot)
    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = "no-cache"
    return response


async def api_health(request: web.Request) -> web.Response:
    hub = request.app[HUB_KEY]
    return web.json_response({"ok": True, "participants": len(hub.registry)})
