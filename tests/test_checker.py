import time
from dataclasses import dataclass

import pytest

from labnet.checker import check_events, check_operations
from labnet.model import Event, EventKind, Model, Operation


@dataclass(frozen=True)
class RegIn:
    op: str
    value: int = 0
    key: str = "k"


class Register(Model):
    def init(self):
        return 0

    def step(self, state, input, output):
        if input.op == "write":
            return True, input.value
        return output == state, state


class KeyedRegister(Register):
    def partition(self, history):
        groups = {}
        for op in history:
            groups.setdefault(op.input.key, []).append(op)
        return list(groups.values())


class SlowRegister(Register):
    def __init__(self, delay):
        self.delay = delay

    def step(self, state, input, output):
        time.sleep(self.delay)
        return super().step(state, input, output)


class ExplodingRegister(Register):
    def step(self, state, input, output):
        raise RuntimeError("boom")


def write(value, call, finish, key="k"):
    return Operation(RegIn("write", value, key), call, None, finish)


def read(result, call, finish, key="k"):
    return Operation(RegIn("read", 0, key), call, result, finish)


def to_events(history):
    points = []
    for op_id, op in enumerate(history):
        points.append((op.call, 0, Event(EventKind.CALL, op.input, op_id)))
        points.append((op.finish, 1, Event(EventKind.RETURN, op.output, op_id)))
    points.sort(key=lambda p: (p[0], p[1]))
    return [event for _, _, event in points]


SEQUENTIAL_OK = [write(1, 0, 10), read(1, 20, 30)]
STALE_READ = [write(1, 0, 10), read(0, 20, 30)]


def test_sequential_history_is_linearizable():
    assert check_operations(Register(), SEQUENTIAL_OK) is True


def test_stale_read_is_not_linearizable():
    assert check_operations(Register(), STALE_READ) is False


@pytest.mark.parametrize("observed", [0, 1])
def test_concurrent_read_may_see_either_value(observed):
    history = [write(1, 0, 10), read(observed, 5, 15)]
    assert check_operations(Register(), history) == check_operations(
        Register(), [write(1, 0, 10), read(1, 20, 30)]
    )


@pytest.mark.parametrize(
    "history",
    [
        SEQUENTIAL_OK,
        STALE_READ,
        [write(1, 0, 10), read(0, 5, 15)],
        [write(1, 0, 100), write(2, 10, 50), read(2, 60, 70), read(1, 110, 120)],
        [write(1, 0, 100), write(2, 10, 50), read(1, 60, 70), read(2, 110, 120), read(1, 130, 140)],
    ],
)
def test_events_agree_with_operations(history):
    assert check_events(Register(), to_events(history)) == check_operations(Register(), history)


def test_event_ids_are_renumbered():
    dense = to_events(STALE_READ)
    sparse = [Event(e.kind, e.value, {0: 700, 1: 42}[e.id]) for e in dense]
    assert check_events(Register(), sparse) == check_events(Register(), dense)
    good_sparse = [Event(e.kind, e.value, e.id * 1000 + 5) for e in to_events(SEQUENTIAL_OK)]
    assert check_events(Register(), good_sparse) == check_events(Register(), to_events(SEQUENTIAL_OK))


def test_input_order_does_not_matter():
    history = [write(1, 0, 100), write(2, 10, 50), read(2, 60, 70), read(1, 110, 120)]
    assert check_operations(Register(), list(reversed(history))) == check_operations(Register(), history)


def test_empty_history_is_linearizable():
    assert check_operations(KeyedRegister(), []) is True
    assert check_events(Register(), []) == check_operations(Register(), [])


def test_partitions_must_all_pass():
    good_a = [write(1, 0, 10, "a"), read(1, 20, 30, "a")]
    bad_b = [write(2, 0, 10, "b"), read(0, 20, 30, "b")]
    model = KeyedRegister()
    assert check_operations(model, good_a + bad_b) == (
        check_operations(model, good_a) and check_operations(model, bad_b)
    )
    good_b = [write(2, 0, 10, "b"), read(2, 20, 30, "b")]
    assert check_operations(model, good_a + good_b) == check_operations(model, good_a)


def test_many_concurrent_writes():
    writes = [write(v, 0, 100) for v in range(1, 7)]
    assert check_operations(Register(), writes + [read(4, 200, 210)]) == check_operations(
        Register(), SEQUENTIAL_OK
    )
    assert check_operations(Register(), writes + [read(7, 200, 210)]) == check_operations(
        Register(), STALE_READ
    )


def test_model_errors_propagate():
    with pytest.raises(RuntimeError, match="boom"):
        check_operations(ExplodingRegister(), SEQUENTIAL_OK)


def test_timeout_may_give_false_positive():
    assert check_operations(SlowRegister(0.0), STALE_READ) == check_operations(Register(), STALE_READ)
    assert check_operations(SlowRegister(0.3), STALE_READ, timeout=0.01) is True