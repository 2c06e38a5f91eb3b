"""
Client-side mirror of the shared state
A pure reducer plus a small store that notifies subscribers
"""
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

CONNECTION_CHANGED = "CONNECTION_CHANGED"
SNAPSHOT_RECEIVED = "SNAPSHOT_RECEIVED"
PARTICIPANT_DONE = "PARTICIPANT_DONE"


@dataclass(frozen=True)
class ClientState:
    locked: bool = False
    selected_option: Optional[str] = None
    done_by: tuple = field(default_factory=tuple)
    connected: bool = False
    last_action: Optional[str] = None
    last_by: Optional[str] = None


def reducer(state: ClientState, action: dict) -> ClientState:
    """(state, action) -> new state; never mutates its input"""
    kind = action.get("type")
    payload = action.get("payload") or {}

    if kind == CONNECTION_CHANGED:
        return replace(state, connected=bool(payload["connected"]))

    if kind == SNAPSHOT_RECEIVED:
        return replace(
            state,
            locked=bool(payload.get("locked", False)),
            selected_option=payload.get("selectedOption"),
            done_by=tuple(payload.get("doneBy") or ()),
            last_action=payload.get("lastAction"),
            last_by=payload.get("lastBy"),
        )

    if kind == PARTICIPANT_DONE:
        return replace(state, done_by=state.done_by + (payload["name"],))

    return state


class Store:
    def __init__(self, initial: Optional[ClientState] = None):
        self._state = initial or ClientState()
        self._listeners: List[Callable[[], None]] = []

    def get_state(self) -> ClientState:
        return self._state

    def dispatch(self, action: dict) -> None:
        self._state = reducer(self._state, action)
        for listener in list(self._listeners):
            listener()

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
