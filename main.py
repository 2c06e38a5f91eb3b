#!/usr/bin/env python3
"""
Workshop Sync - Server Entry Point
One shared state, broadcast to every connected participant
"""
import logging
import socket
from typing import Optional

from aiohttp import web

from workshop_sync.api import HUB_KEY, api_health, api_state, ws_session
from workshop_sync.config import Settings, load_settings
from workshop_sync.hub import Hub

logger = logging.getLogger("workshop_sync")


def create_app(settings: Optional[Settings] = None) -> web.Application:
    """Create and configure the aiohttp application"""
    settings = settings or Settings()
    app = web.Application()
    app[HUB_KEY] = Hub(
        strict_payloads=settings.strict_payloads,
        enforce_lock=settings.enforce_lock,
        send_timeout=settings.send_timeout,
    )

    # WebSocket for participants (bare URL works, as the CLI client expects)
    app.router.add_get("/", ws_session)
    app.router.add_get("/ws", ws_session)

    # Read-only API
    app.router.add_get("/state", api_state)
    app.router.add_get("/health", api_health)

    return app


def get_local_ip() -> str:
    """Get local WiFi IP address"""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "localhost"


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    app = create_app(settings)
    local_ip = get_local_ip()

    logger.info("━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━")
    logger.info("  Workshop Sync Server")
    logger.info(f"  Listening on ws://{local_ip}:{settings.port}")
    logger.info(f"  strict payloads={settings.strict_payloads} enforce lock={settings.enforce_lock}")
    logger.info("━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━")

    web.run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
