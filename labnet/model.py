"""Histories and the model interface used by the linearizability checker."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Sequence, TypeVar

I = TypeVar("I")
O = TypeVar("O")
S = TypeVar("S")


@dataclass
class Operation(Generic[I, O]):
    """A completed operation with invocation and response times."""

    input: I
    call: int
    output: O
    finish: int


class EventKind(Enum):
    """Whether an event is an invocation or a response."""

    CALL = "call"
    RETURN = "return"


@dataclass
class Event(Generic[I, O]):
    """An invocation (value is the input) or response (value is the output)."""

    kind: EventKind
    value: object
    id: int


class Model(ABC, Generic[S, I, O]):
    """A sequential specification of a system.

    ``partition`` and ``partition_event`` split a history so that it is
    linearizable exactly when every part is; by default nothing is split.
    """

    def partition(self, history: Sequence[Operation[I, O]]) -> list[list[Operation[I, O]]]:
        """Split an operation history into independent parts."""
        return [list(history)]

    def partition_event(self, history: Sequence[Event[I, O]]) -> list[list[Event[I, O]]]:
        """Split an event history into independent parts."""
        return [list(history)]

    @abstractmethod
    def init(self) -> S:
        """The initial state."""

    @abstractmethod
    def step(self, state: S, input: I, output: O) -> tuple[bool, S]:
        """Whether the step is legal from ``state``, and the resulting state.

        Must not mutate ``state``.
        """

    def equal(self, state1: S, state2: S) -> bool:
        """Whether two states are the same."""
        return state1 == state2