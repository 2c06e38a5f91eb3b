"""
Upstream message envelope: {"action": ..., "payload": ...}
Decoded once at the boundary into a closed set of message kinds
"""
import json
from dataclasses import dataclass
from typing import Any, Union

from .state import OPTIONS


class WorkshopError(Exception):
    pass


class MalformedMessage(WorkshopError):
    """Raised when raw text is not a usable action envelope"""


@dataclass(frozen=True)
class Hello:
    name: str


@dataclass(frozen=True)
class Select:
    option: Any


@dataclass(frozen=True)
class Done:
    name: Any


@dataclass(frozen=True)
class Lock:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Unknown:
    action: str


Message = Union[Hello, Select, Done, Lock, Reset, Unknown]


def decode_message(raw: str, strict: bool = True) -> Message:
    """
    Parse one upstream text frame

    Args:
        raw: Text frame as received from the socket
        strict: Reject select/done/hello payloads of the wrong shape

    Returns:
        One of Hello, Select, Done, Lock, Reset or Unknown

    Raises:
        MalformedMessage: not JSON, not an object, or (strict) a bad payload
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage("envelope must be a JSON object")

    action = data.get("action")
    if not isinstance(action, str):
        raise MalformedMessage("envelope has no action name")

    payload = data.get("payload")

    if action == "hello":
        name = payload.get("name") if isinstance(payload, dict) else None
        if not name:
            # Nothing to register; falls through as a no-op
            return Unknown(action)
        if strict and not isinstance(name, str):
            raise MalformedMessage(f"hello name must be a string, got {name!r}")
        return Hello(str(name))

    if action == "select":
        if strict and payload not in OPTIONS:
            raise MalformedMessage(f"select option must be one of {OPTIONS}, got {payload!r}")
        return Select(payload)

    if action == "done":
        if strict and not (isinstance(payload, str) and payload):
            raise MalformedMessage(f"done payload must be a name, got {payload!r}")
        return Done(payload)

    if action == "lock":
        return Lock()

    if action == "reset":
        return Reset()

    return Unknown(action)


def _envelope(action: str, payload: Any = None) -> str:
    return json.dumps({"action": action, "payload": payload})


def hello_message(name: str) -> str:
    return _envelope("hello", {"name": name})


def select_message(option: str) -> str:
    return _envelope("select", option)


def done_message(name: str) -> str:
    return _envelope("done", name)


def lock_message() -> str:
    return _envelope("lock")


def reset_message() -> str:
    return _envelope("reset")
