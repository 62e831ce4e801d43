"""
HTTP and WebSocket handlers for Streamy
"""
import asyncio
import contextlib
import logging
from pathlib import Path

from aiohttp import web

from .messages import EVENT_CONNECTED, Disconnect, MalformedMessage, decode, encode
from .signaling import Dispatcher
from .state import Session, SignalingState

logger = logging.getLogger("streamy")

STATE_KEY = web.AppKey("state", SignalingState)
DISPATCHER_KEY = web.AppKey("dispatcher", Dispatcher)
STATIC_DIR_KEY = web.AppKey("static_dir", Path)

WS_HEARTBEAT = 20.0

# ============================================================
# SIGNALING WEBSOCKET
# ============================================================

async def pump_outbox(ws: web.WebSocketResponse, session: Session) -> None:
    """Drain a session's queued frames onto its socket"""
    while True:
        frame = await session.outbox.get()
        try:
            await ws.send_str(frame)
        except Exception as e:
            logger.debug(f"Failed to send to {session.id}: {e}")
            return


async def ws_signaling(request: web.Request) -> web.WebSocketResponse:
    """One signaling connection: decode frames in, pump frames out"""
    ws = web.WebSocketResponse(heartbeat=WS_HEARTBEAT)
    await ws.prepare(request)

    state = request.app[STATE_KEY]
    dispatcher = request.app[DISPATCHER_KEY]

    session = state.connect()
    session.deliver(encode(EVENT_CONNECTED, session.id))
    writer = asyncio.create_task(pump_outbox(ws, session))
    logger.info("📡 Session connected: %s (total: %d)", session.id, len(state.sessions))

    try:
        async for msg in ws:
            if msg.type == web.WSMsgType.TEXT:
                try:
                    message = decode(msg.data)
                except MalformedMessage as e:
                    logger.warning("Malformed frame from %s: %s", session.id, e)
                    continue
                dispatcher.submit(session, message)
            elif msg.type == web.WSMsgType.ERROR:
                logger.debug(f"WebSocket error for {session.id}: {ws.exception()}")
    finally:
        dispatcher.submit(session, Disconnect())
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer

    return ws

# ============================================================
# ROOMS
# ============================================================

async def api_room(request: web.Request) -> web.Response:
    """Snapshot of a room's membership"""
    room_id = request.match_info["room_id"]
    state = request.app[STATE_KEY]
    room = state.room(room_id)

    if room is None:
        return web.json_response(
            {"ok": False, "error": "unknown room"},
            status=404
        )

    return web.json_response({
        "ok": True,
        "room_id": room_id,
        "members": [
            {"id": s.id, "role": s.role} for s in state.members(room_id)
        ],
        "history_size": len(room.history),
    })

# ============================================================
# CLIENT PAGES
# ============================================================

async def index(request: web.Request) -> web.FileResponse:
    """Single-page client: every unmatched path serves index.html"""
    page = request.app[STATIC_DIR_KEY] / "index.html"
    if not page.is_file():
        raise web.HTTPNotFound()
    return web.FileResponse(page)
