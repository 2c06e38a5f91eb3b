"""
In-memory shared state for the workshop session
Single record, mutated field-by-field, replaced wholesale only on reset
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional

OPTIONS = ("A", "B")


@dataclass
class SharedState:
    locked: bool = False
    selected_option: Optional[str] = None
    done_by: List[str] = field(default_factory=list)
    last_action: Optional[str] = None
    last_by: Optional[str] = None

    def to_dict(self) -> dict:
        """Wire representation (camelCase keys, as clients expect)"""
        return {
            "locked": self.locked,
            "selectedOption": self.selected_option,
            "doneBy": list(self.done_by),
            "lastAction": self.last_action,
            "lastBy": self.last_by,
        }


class StateStore:
    """Owns the one SharedState of the process and applies actions to it"""

    def __init__(self):
        self._state = SharedState()

    @property
    def locked(self) -> bool:
        return self._state.locked

    def apply_select(self, option, actor: str) -> None:
        self._state.selected_option = option
        self._state.last_action = f"select {option}"
        self._state.last_by = actor

    def apply_done(self, name, actor: str) -> None:
        if name not in self._state.done_by:
            self._state.done_by.append(name)
        self._state.last_action = "done"
        self._state.last_by = actor

    def apply_lock(self, actor: str) -> None:
        self._state.locked = True
        self._state.last_action = "locked"
        self._state.last_by = actor

    def apply_reset(self, actor: str) -> None:
        self._state = SharedState(last_action="reset", last_by=actor)

    def snapshot(self) -> dict:
        return self._state.to_dict()

    def serialize(self) -> str:
        return json.dumps(self.snapshot())
