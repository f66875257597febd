import pytest

from labnet.bitset import Bitset


def test_set_and_clear_restore_equality():
    b = Bitset(100)
    b.set(3)
    b.set(70)
    assert b.popcount() == 2
    b.clear(3)
    b.clear(70)
    assert b == Bitset(100)
    assert b.popcount() == 0


def test_set_is_idempotent():
    b = Bitset(10)
    b.set(5)
    b.set(5)
    assert b.popcount() == 1


def test_clear_unset_bit_is_noop():
    b = Bitset(10)
    b.set(1)
    b.clear(2)
    assert b.popcount() == 1


def test_capacity_rounds_up_to_words():
    with pytest.raises(IndexError):
        Bitset(64).set(64)
    b = Bitset(65)
    b.set(64)
    assert b.popcount() == 1


def test_negative_position_rejected():
    with pytest.raises(IndexError):
        Bitset(64).set(-1)


def test_equal_contents_equal_hash():
    a = Bitset(128)
    b = Bitset(128)
    for pos in (0, 63, 64, 127):
        a.set(pos)
    for pos in (127, 64, 63, 0):
        b.set(pos)
    assert a == b
    assert a.hash() == b.hash()


def test_different_sizes_not_equal():
    assert Bitset(64) != Bitset(128)


def test_empty_hash_is_zero():
    assert Bitset(200).hash() == 0


def test_copy_is_independent():
    a = Bitset(64)
    a.set(2)
    c = a.copy()
    c.set(3)
    assert a.popcount() == 1
    assert c.popcount() == 2
    assert a != c


def test_full_word_popcount():
    b = Bitset(64)
    for pos in range(64):
        b.set(pos)
    assert b.popcount() == 64