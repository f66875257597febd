"""A fixed-size set of bit positions backed by 64-bit words."""

from __future__ import annotations

_WORD = 64
_MASK = (1 << _WORD) - 1


class Bitset:
    """A fixed-capacity bitset."""

    __hash__ = None  # mutable; use :meth:`hash` for a content hash

    def __init__(self, bits: int) -> None:
        self._words = [0] * -(-bits // _WORD)

    def _index(self, pos: int) -> tuple[int, int]:
        major, minor = divmod(pos, _WORD)
        if pos < 0 or major >= len(self._words):
            raise IndexError(f"bit position {pos} out of range")
        return major, minor

    def set(self, pos: int) -> None:
        """Set the bit at ``pos``."""
        major, minor = self._index(pos)
        self._words[major] |= 1 << minor

    def clear(self, pos: int) -> None:
        """Clear the bit at ``pos``."""
        major, minor = self._index(pos)
        self._words[major] &= ~(1 << minor) & _MASK

    def popcount(self) -> int:
        """The number of set bits."""
        return sum(word.bit_count() for word in self._words)

    def hash(self) -> int:
        """A 64-bit hash of the contents."""
        result = self.popcount()
        for word in self._words:
            result ^= word
        return result

    def copy(self) -> Bitset:
        """An independent copy."""
        clone = Bitset(0)
        clone._words = list(self._words)
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitset):
            return NotImplemented
        return self._words == other._words

    def __repr__(self) -> str:
        bits = [i for i in range(len(self._words) * _WORD) if self._words[i // _WORD] >> (i % _WORD) & 1]
        return f"Bitset({bits})"