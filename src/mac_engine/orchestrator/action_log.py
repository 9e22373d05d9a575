"""Append-only record of the actions executed for one top-level prompt."""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class ActionType(str, Enum):
    TOOL_REQUEST = "Tool-Request"
    RESOURCE_REQUEST = "Resource-Request"


@dataclass(frozen=True)
class ActionLogEntry:
    """A single executed (or attempted) action.

    Attributes:
        type: Tool or resource request
        name: Tool name, or the requested URI for resources
        arguments: Model-chosen tool arguments (None for resources)
        time_executed: Completion time in epoch milliseconds
        response: Result payload shown to the model on the next round
        is_error: True if the execution failed
    """

    type: ActionType
    name: str
    arguments: dict[str, Any] | None
    time_executed: int
    response: Any
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "timeExecuted": self.time_executed,
            "response": self.response,
            "isError": self.is_error,
        }
        if self.arguments is not None:
            data["arguments"] = self.arguments
        return data


def now_ms() -> int:
    return int(time.time() * 1000)


class ActionLog:
    """Ordered, append-only action record.

    Append is the only mutation besides a full clear at the start of a new
    prompt. List order is the authoritative causal order; timestamps are
    secondary.
    """

    def __init__(self) -> None:
        self._entries: list[ActionLogEntry] = []

    def append(self, entry: ActionLogEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries = []

    @property
    def entries(self) -> tuple[ActionLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ActionLogEntry]:
        return iter(tuple(self._entries))

    def to_prompt(self) -> list[str]:
        """Serialize every entry, in order, as a JSON string."""
        return [json.dumps(entry.to_dict(), default=str) for entry in self._entries]
