"""
Session registry and broadcaster
Tracks connected participants and pushes full state snapshots to them
"""
import asyncio
import logging
from typing import Dict, Iterator

from .messages import (
    Done, Hello, Lock, MalformedMessage, Reset, Select, Unknown, decode_message
)
from .state import StateStore

logger = logging.getLogger("workshop_sync")

UNKNOWN_NAME = "unknown"


class SessionRegistry:
    """Connection handle -> display name, one entry per live connection"""

    def __init__(self):
        self._names: Dict[object, str] = {}

    def register(self, conn) -> None:
        self._names[conn] = UNKNOWN_NAME

    def rename(self, conn, name: str) -> None:
        if conn in self._names:
            self._names[conn] = name

    def name_of(self, conn) -> str:
        return self._names.get(conn, UNKNOWN_NAME)

    def unregister(self, conn) -> str:
        return self._names.pop(conn, UNKNOWN_NAME)

    def __contains__(self, conn) -> bool:
        return conn in self._names

    def __iter__(self) -> Iterator[object]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)


class Hub:
    """
    Owns the StateStore and the SessionRegistry

    Every connection event runs under one asyncio.Lock, so a mutation and the
    broadcast reflecting it finish before the next message is applied. Each
    send is bounded by send_timeout, so a peer that stops reading holds the
    lock for at most that long.
    """

    def __init__(self, strict_payloads: bool = True, enforce_lock: bool = False,
                 send_timeout: float = 5.0):
        self.store = StateStore()
        self.registry = SessionRegistry()
        self.strict_payloads = strict_payloads
        self.enforce_lock = enforce_lock
        self.send_timeout = send_timeout
        self._lock = asyncio.Lock()

    def snapshot(self) -> dict:
        return self.store.snapshot()

    async def on_connect(self, conn) -> None:
        async with self._lock:
            self.registry.register(conn)
            logger.info(f"📡 Client connected ({len(self.registry)} total)")
            await self._send(conn, self.store.serialize())

    async def on_message(self, conn, raw: str) -> None:
        async with self._lock:
            try:
                msg = decode_message(raw, strict=self.strict_payloads)
            except MalformedMessage as e:
                logger.warning(f"Error parsing message: {e}")
                return

            if isinstance(msg, Hello):
                self.apply_hello(conn, msg.name)
                return

            if isinstance(msg, Unknown):
                logger.debug(f"Ignoring unknown action {msg.action!r}")
                return

            actor = self.registry.name_of(conn)
            if not self._apply(msg, actor):
                return

            await self.broadcast_all()

    async def on_disconnect(self, conn) -> None:
        async with self._lock:
            name = self.registry.unregister(conn)
            logger.info(f"📡 Client disconnected ({len(self.registry)} remaining) ({name})")

    def apply_hello(self, conn, name: str) -> None:
        """Name the participant behind conn; SharedState is untouched"""
        self.registry.rename(conn, name)
        logger.info(f"  ← hello ({name})")

    def _apply(self, msg, actor: str) -> bool:
        """Apply one accepted message to the store; False means it was dropped"""
        if isinstance(msg, Select):
            if self.enforce_lock and self.store.locked:
                logger.info(f"🔒 Dropping select {msg.option} from {actor}: session is locked")
                return False
            logger.info(f"  ← select ({actor}) {msg.option}")
            self.store.apply_select(msg.option, actor)
        elif isinstance(msg, Done):
            logger.info(f"  ← done ({actor}) {msg.name}")
            self.store.apply_done(msg.name, actor)
        elif isinstance(msg, Lock):
            logger.info(f"  ← lock ({actor})")
            self.store.apply_lock(actor)
        elif isinstance(msg, Reset):
            logger.info(f"  ← reset ({actor})")
            self.store.apply_reset(actor)
        return True

    async def broadcast_all(self) -> None:
        """Send the same serialized snapshot to every open connection"""
        message = self.store.serialize()
        targets = [conn for conn in self.registry if not conn.closed]
        await asyncio.gather(*(self._send(conn, message) for conn in targets))

    async def _send(self, conn, message: str) -> None:
        # A failed or timed-out send leaves the connection registered; cleanup happens on disconnect
        try:
            await asyncio.wait_for(conn.send_str(message), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Send timed out after {self.send_timeout}s, skipping peer")
        except Exception as e:
            logger.debug(f"Failed to send to WebSocket: {e}")
