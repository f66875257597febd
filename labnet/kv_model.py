"""A key-value store model with get, put and append operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from labnet.model import Event, EventKind, Model, Operation


class KvOp(Enum):
    """The operations a key-value client can issue."""

    GET = "get"
    PUT = "put"
    APPEND = "append"


@dataclass(frozen=True)
class KvInput:
    """An operation on one key."""

    op: KvOp
    key: str
    value: str = ""


@dataclass(frozen=True)
class KvOutput:
    """The value an operation returned."""

    value: str = ""


class KvModel(Model[str, KvInput, KvOutput]):
    """Models a single key's value; histories are partitioned by key."""

    def partition(self, history: Sequence[Operation]) -> list[list[Operation]]:
        groups: dict[str, list[Operation]] = {}
        for op in history:
            groups.setdefault(op.input.key, []).append(op)
        return list(groups.values())

    def partition_event(self, history: Sequence[Event]) -> list[list[Event]]:
        groups: dict[str, list[Event]] = {}
        keys: dict[int, str] = {}
        for event in history:
            if event.kind is EventKind.CALL:
                key = event.value.key
                keys[event.id] = key
            else:
                try:
                    key = keys[event.id]
                except KeyError:
                    raise ValueError(f"return event {event.id} has no matching call") from None
            groups.setdefault(key, []).append(event)
        return list(groups.values())

    def init(self) -> str:
        return ""

    def step(self, state: str, input: KvInput, output: KvOutput) -> tuple[bool, str]:
        if input.op is KvOp.GET:
            return output.value == state, state
        if input.op is KvOp.PUT:
            return True, input.value
        return True, state + input.value