"""A sample message with an enumeration, a number, a string and repeated bytes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from labnet.codec import Field, FieldKind, Message


class MsgType(IntEnum):
    """Kinds of request a :class:`Msg` can carry."""

    UNKNOWN = 0
    PUT = 1
    GET = 2
    DEL = 3

    @classmethod
    def is_valid(cls, value: int) -> bool:
        """Whether ``value`` names a member."""
        return value in cls._value2member_map_

    @classmethod
    def from_int(cls, value: int) -> MsgType | None:
        """The member for ``value``, or ``None`` if there is none."""
        return cls._value2member_map_.get(value)


@dataclass
class Msg(Message):
    """A simple protobuf message."""

    FIELDS = (
        Field(1, "type", FieldKind.ENUM),
        Field(2, "id", FieldKind.UINT64),
        Field(3, "name", FieldKind.STRING),
        Field(4, "payload", FieldKind.BYTES, repeated=True),
    )

    type: int = MsgType.UNKNOWN
    id: int = 0
    name: str = ""
    payload: list[bytes] = field(default_factory=list)

    def message_type(self) -> MsgType:
        """The enumeration member for ``type``, falling back to UNKNOWN."""
        return MsgType.from_int(self.type) or MsgType.UNKNOWN