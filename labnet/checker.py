"""Linearizability checking of operation and event histories against a model.

Each partition the model produces is checked on its own worker thread by a
depth-first search over linearization points, memoising visited
(linearized-set, state) pairs.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from labnet.bitset import Bitset
from labnet.model import Event, EventKind, Model, Operation


@dataclass
class _Entry:
    is_call: bool
    value: Any
    id: int
    time: int


class _Node:
    __slots__ = ("value", "matched", "id", "next", "prev")

    def __init__(self, value: Any, id: int, matched: _Node | None = None) -> None:
        self.value = value
        self.matched = matched
        self.id = id
        self.next: _Node | None = None
        self.prev: _Node | None = None


def _make_entries(history: Sequence[Operation]) -> list[_Entry]:
    entries = []
    for op_id, op in enumerate(history):
        entries.append(_Entry(True, op.input, op_id, op.call))
        entries.append(_Entry(False, op.output, op_id, op.finish))
    entries.sort(key=lambda entry: entry.time)
    return entries


def _renumber(events: Sequence[Event]) -> list[Event]:
    ids: dict[int, int] = {}
    return [Event(event.kind, event.value, ids.setdefault(event.id, len(ids))) for event in events]


def _convert_events(events: Sequence[Event]) -> list[_Entry]:
    return [
        _Entry(event.kind is EventKind.CALL, event.value, event.id, -1)
        for event in _renumber(events)
    ]


def _link(entries: Sequence[_Entry]) -> _Node:
    """Build the doubly linked list behind a sentinel head node."""
    matches: dict[int, _Node] = {}
    first: _Node | None = None
    for entry in reversed(entries):
        if entry.is_call:
            node = _Node(entry.value, entry.id, matches.get(entry.id))
        else:
            node = _Node(entry.value, entry.id)
            matches[entry.id] = node
        node.next = first
        if first is not None:
            first.prev = node
        first = node
    head = _Node(None, -1)
    head.next = first
    if first is not None:
        first.prev = head
    return head


def _lift(entry: _Node) -> None:
    entry.prev.next = entry.next
    entry.next.prev = entry.prev
    matched = entry.matched
    matched.prev.next = matched.next
    if matched.next is not None:
        matched.next.prev = matched.prev


def _unlift(entry: _Node) -> None:
    matched = entry.matched
    matched.prev.next = matched
    if matched.next is not None:
        matched.next.prev = matched
    entry.prev.next = entry
    entry.next.prev = entry


def _check_single(model: Model, entries: Sequence[_Entry], kill: threading.Event) -> bool:
    linearized = Bitset(len(entries) // 2)
    cache: dict[int, list[tuple[Bitset, Any]]] = {}
    calls: list[tuple[_Node, Any]] = []

    def seen(bits: Bitset, candidate: Any) -> bool:
        return any(
            bits == other_bits and model.equal(candidate, other_state)
            for other_bits, other_state in cache.get(bits.hash(), ())
        )

    state = model.init()
    head = _link(entries)
    entry = head.next
    while head.next is not None:
        if kill.is_set():
            return False
        if entry.matched is not None:
            ok, new_state = model.step(state, entry.value, entry.matched.value)
            if ok:
                new_linearized = linearized.copy()
                new_linearized.set(entry.id)
                if not seen(new_linearized, new_state):
                    cache.setdefault(new_linearized.hash(), []).append((new_linearized, new_state))
                    calls.append((entry, state))
                    state = new_state
                    linearized.set(entry.id)
                    _lift(entry)
                    entry = head.next
                    continue
            entry = entry.next
        else:
            if not calls:
                return False
            entry, state = calls.pop()
            linearized.clear(entry.id)
            _unlift(entry)
            entry = entry.next
    return True


def _worker(
    model: Model,
    prepare: Callable[[Any], list[_Entry]],
    part: Any,
    kill: threading.Event,
    results: queue.Queue,
) -> None:
    try:
        results.put((_check_single(model, prepare(part), kill), None))
    except Exception as exc:  # re-raised on the calling thread
        results.put((False, exc))


def _run(model: Model, partitions: list, prepare: Callable, timeout: float) -> bool:
    if not partitions:
        return True
    results: queue.Queue = queue.Queue()
    kill = threading.Event()
    threads = [
        threading.Thread(target=_worker, args=(model, prepare, part, kill, results), daemon=True)
        for part in partitions
    ]
    for thread in threads:
        thread.start()

    wait = timeout if timeout and timeout > 0 else None
    ok = True
    error: Exception | None = None
    remaining = len(threads)
    try:
        while remaining:
            try:
                result, exc = results.get(timeout=wait)
            except queue.Empty:
                break
            if exc is not None:
                ok, error = False, exc
                break
            remaining -= 1
            if not result:
                ok = False
                break
    finally:
        kill.set()
        for thread in threads:
            thread.join()
    if error is not None:
        raise error
    return ok


def check_operations(model: Model, history: Sequence[Operation], timeout: float = 0.0) -> bool:
    """Whether the timed operation history is linearizable under ``model``.

    ``timeout`` is in seconds; 0 means wait indefinitely.  If waiting for a
    partition's result times out the answer may be a false positive.
    """
    return _run(model, model.partition(history), _make_entries, timeout)


def check_events(model: Model, history: Sequence[Event], timeout: float = 0.0) -> bool:
    """Whether the ordered event history is linearizable under ``model``.

    ``timeout`` is in seconds; 0 means wait indefinitely.  If waiting for a
    partition's result times out the answer may be a false positive.
    """
    return _run(model, model.partition_event(history), _convert_events, timeout)