"""
WebSocket client for the workshop server
Hides the socket behind connect/on_connection/on_state and action methods
"""
import json
import logging
import re
from typing import Callable, List, Optional

import aiohttp

from .messages import done_message, hello_message, lock_message, reset_message, select_message

logger = logging.getLogger("workshop_sync.realtime")


def normalize_url(url: str) -> str:
    """http(s):// -> ws(s)://, so a tunnel URL can be pasted as-is"""
    return re.sub(r"^http", "ws", url.strip())


class RealtimeClient:
    def __init__(self, url: str, user: str, session: Optional[aiohttp.ClientSession] = None):
        self.url = normalize_url(url)
        self.user = user
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._connection_callbacks: List[Callable[[bool], None]] = []
        self._state_callbacks: List[Callable[[dict], None]] = []

    # ============ Listeners ============

    def on_connection(self, cb: Callable[[bool], None]) -> Callable[[], None]:
        self._connection_callbacks.append(cb)
        return lambda: self._connection_callbacks.remove(cb)

    def on_state(self, cb: Callable[[dict], None]) -> Callable[[], None]:
        self._state_callbacks.append(cb)
        return lambda: self._state_callbacks.remove(cb)

    def _notify_connection(self, connected: bool) -> None:
        for cb in list(self._connection_callbacks):
            cb(connected)

    # ============ Connection ============

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self.url)
        await self._ws.send_str(hello_message(self.user))
        self._notify_connection(True)

    async def listen(self) -> None:
        """Dispatch snapshots until the socket closes"""
        if self._ws is None:
            raise RuntimeError("connect() must be called before listen()")
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_snapshot(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"[realtime] WebSocket error: {self._ws.exception()}")
                    break
        finally:
            self._notify_connection(False)

    def _handle_snapshot(self, data: str) -> None:
        try:
            state = json.loads(data)
        except ValueError as e:
            logger.error(f"[realtime] Failed to parse state: {e}")
            return
        for cb in list(self._state_callbacks):
            cb(state)

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        if self._owns_session and self._session is not None:
            await self._session.close()

    # ============ Actions ============

    async def _send(self, message: str) -> None:
        if self.is_open:
            await self._ws.send_str(message)

    async def select(self, option: str) -> None:
        await self._send(select_message(option))

    async def done(self) -> None:
        await self._send(done_message(self.user))

    async def lock(self) -> None:
        await self._send(lock_message())

    async def reset(self) -> None:
        await self._send(reset_message())
