import asyncio

from aiohttp import test_utils

from main import create_app
from workshop_sync.config import Settings
from workshop_sync.messages import done_message, hello_message, lock_message, reset_message, select_message

INITIAL = {"locked": False, "selectedOption": None, "doneBy": [], "lastAction": None, "lastBy": None}
TIMEOUT = 5


def _run(scenario, settings=None):
    async def wrapper():
        async with test_utils.TestClient(test_utils.TestServer(create_app(settings))) as client:
            return await scenario(client)

    return asyncio.run(wrapper())


def test_fresh_connection_gets_initial_snapshot() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        first = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return first

    assert _run(scenario) == INITIAL


def test_hello_then_select_broadcasts_named_selection() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(hello_message("alice"))
        await ws.send_str(select_message("A"))
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    assert _run(scenario) == {
        "locked": False,
        "selectedOption": "A",
        "doneBy": [],
        "lastAction": "select A",
        "lastBy": "alice",
    }


def test_repeated_done_lists_name_once() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(hello_message("alice"))
        await ws.send_str(done_message("alice"))
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(done_message("alice"))
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    assert _run(scenario)["doneBy"] == ["alice"]


def test_select_after_lock_is_still_applied() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(hello_message("alice"))
        await ws.send_str(lock_message())
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(select_message("B"))
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    update = _run(scenario)
    assert update["locked"] is True
    assert update["selectedOption"] == "B"


def test_late_joiner_sees_post_reset_snapshot() -> None:
    async def scenario(client):
        alice = await client.ws_connect("/ws")
        await alice.receive_json(timeout=TIMEOUT)
        await alice.send_str(hello_message("alice"))
        await alice.send_str(select_message("A"))
        await alice.receive_json(timeout=TIMEOUT)
        await alice.send_str(reset_message())
        await alice.receive_json(timeout=TIMEOUT)

        bob = await client.ws_connect("/ws")
        first = await bob.receive_json(timeout=TIMEOUT)
        await alice.close()
        await bob.close()
        return first

    assert _run(scenario) == {**INITIAL, "lastAction": "reset", "lastBy": "alice"}


def test_every_participant_receives_same_broadcast() -> None:
    async def scenario(client):
        alice = await client.ws_connect("/ws")
        bob = await client.ws_connect("/ws")
        await alice.receive_str(timeout=TIMEOUT)
        await bob.receive_str(timeout=TIMEOUT)
        await alice.send_str(hello_message("alice"))
        await alice.send_str(lock_message())
        received = (await alice.receive_str(timeout=TIMEOUT), await bob.receive_str(timeout=TIMEOUT))
        await alice.close()
        await bob.close()
        return received

    mine, theirs = _run(scenario)
    assert mine == theirs


def test_malformed_message_keeps_connection_open() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str("definitely not json")
        await ws.send_str(lock_message())
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    update = _run(scenario)
    assert update["locked"] is True
    assert update["lastBy"] == "unknown"


def test_enforced_lock_drops_select_over_socket() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(lock_message())
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_str(select_message("A"))
        await ws.send_str(done_message("alice"))
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    update = _run(scenario, Settings(enforce_lock=True))
    assert update["selectedOption"] is None
    assert update["doneBy"] == ["alice"]


def test_state_endpoint_supports_etag() -> None:
    async def scenario(client):
        resp = await client.get("/state")
        body = await resp.json()
        etag = resp.headers["ETag"]
        cached = await client.get("/state", headers={"If-None-Match": etag})
        return resp.status, body, cached.status

    status, body, cached_status = _run(scenario)
    assert status == 200
    assert body == INITIAL
    assert cached_status == 304


def test_health_counts_participants() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        resp = await client.get("/health")
        body = await resp.json()
        await ws.close()
        return body

    assert _run(scenario) == {"ok": True, "participants": 1}


async def _participants(client) -> int:
    resp = await client.get("/health")
    return (await resp.json())["participants"]


def test_closed_socket_is_unregistered_without_broadcast() -> None:
    async def scenario(client):
        alice = await client.ws_connect("/ws")
        bob = await client.ws_connect("/ws")
        await alice.receive_json(timeout=TIMEOUT)
        await bob.receive_json(timeout=TIMEOUT)
        before = await _participants(client)

        await bob.close()
        for _ in range(100):
            if await _participants(client) == 1:
                break
            await asyncio.sleep(0.02)
        after = await _participants(client)

        # the next frame alice sees is her own lock, not a disconnect notice
        await alice.send_str(hello_message("alice"))
        await alice.send_str(lock_message())
        update = await alice.receive_json(timeout=TIMEOUT)
        await alice.close()
        return before, after, update

    before, after, update = _run(scenario)
    assert (before, after) == (2, 1)
    assert update["lastAction"] == "locked"
    assert update["lastBy"] == "alice"


def test_unknown_action_produces_no_frame() -> None:
    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=TIMEOUT)
        await ws.send_json({"action": "dance"})
        await ws.send_str(done_message("alice"))
        update = await ws.receive_json(timeout=TIMEOUT)
        await ws.close()
        return update

    update = _run(scenario)
    assert update["lastAction"] == "done"
    assert update["doneBy"] == ["alice"]
