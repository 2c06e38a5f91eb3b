from __future__ import annotations

import asyncio

import pytest


class FakeConnection:
    """Stands in for an aiohttp WebSocketResponse in hub tests"""

    def __init__(self, *, closed: bool = False, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.closed = closed
        self.fail = fail

    async def send_str(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(message)


@pytest.fixture
def make_conn():
    return FakeConnection


class StalledConnection(FakeConnection):
    """A peer that stopped reading: send_str never completes"""

    async def send_str(self, message: str) -> None:
        await asyncio.Event().wait()


@pytest.fixture
def make_stalled_conn():
    return StalledConnection
