#!/usr/bin/env python3
"""
Streamy - Entry Point
Signaling WebSocket + room snapshots + single-page client
"""
import logging
import os
from pathlib import Path
from typing import Optional

from aiohttp import web

from streamy.api import (
    DISPATCHER_KEY, STATE_KEY, STATIC_DIR_KEY,
    api_room, index, ws_signaling,
)
from streamy.history import DEFAULT_HISTORY_LIMIT
from streamy.signaling import Dispatcher
from streamy.state import SignalingState

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("streamy")

STATIC_DIR = Path(os.getenv('STREAMY_STATIC_DIR', './public'))
HISTORY_LIMIT = int(os.getenv('STREAMY_HISTORY_LIMIT', DEFAULT_HISTORY_LIMIT))


async def start_dispatcher(app: web.Application) -> None:
    app[DISPATCHER_KEY].start()


async def stop_dispatcher(app: web.Application) -> None:
    await app[DISPATCHER_KEY].stop()


def create_app(state: Optional[SignalingState] = None,
               static_dir: Path = STATIC_DIR) -> web.Application:
    """Create and configure the aiohttp application"""
    app = web.Application()

    state = state if state is not None else SignalingState(HISTORY_LIMIT)
    app[STATE_KEY] = state
    app[DISPATCHER_KEY] = Dispatcher(state)
    app[STATIC_DIR_KEY] = static_dir

    # Signaling + API routes
    app.router.add_get("/ws", ws_signaling)
    app.router.add_get("/rooms/{room_id}", api_room)

    # Static files
    if static_dir.is_dir():
        app.router.add_static('/static', static_dir, name='static')

    # Everything else is the client app
    app.router.add_get("/{tail:.*}", index)

    app.on_startup.append(start_dispatcher)
    app.on_cleanup.append(stop_dispatcher)

    logger.info("🎬 Streamy signaling ready • history cap %d", state.history_limit)
    return app


def main():
    app = create_app()
    port = int(os.environ.get("PORT", 4000))
    host = os.environ.get("SERVER_HOST", "0.0.0.0")

    logger.info(f"🚀 Starting server on {host}:{port}")

    web.run_app(app, host=host, port=port)


if __name__ == "__main__":
    main()
