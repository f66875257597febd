"""Protocol-buffer wire encoding for declaratively described messages.

A message is a class deriving from :class:`Message` whose ``FIELDS`` tuple
describes each field's tag, attribute name and scalar kind.  Encoding follows
proto3 rules: scalar fields equal to their default are omitted, repeated
numeric fields are written packed, and unknown fields are skipped on decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, TypeVar

_VARINT = 0
_FIXED64 = 1
_LEN = 2
_START_GROUP = 3
_END_GROUP = 4
_FIXED32 = 5

_U32 = (1 << 32) - 1
_U64 = (1 << 64) - 1
_MAX_TAG = (1 << 29) - 1

M = TypeVar("M", bound="Message")


class EncodeError(ValueError):
    """A message could not be encoded."""


class DecodeError(ValueError):
    """A buffer could not be decoded into a message."""


class FieldKind(Enum):
    """The scalar kinds a message field can hold."""

    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    BOOL = "bool"
    ENUM = "enum"
    STRING = "string"
    BYTES = "bytes"

    @property
    def wire_type(self) -> int:
        if self in (FieldKind.STRING, FieldKind.BYTES):
            return _LEN
        return _VARINT

    def default(self) -> Any:
        if self is FieldKind.STRING:
            return ""
        if self is FieldKind.BYTES:
            return b""
        if self is FieldKind.BOOL:
            return False
        return 0


_INT_RANGES = {
    FieldKind.INT32: (-(1 << 31), (1 << 31) - 1),
    FieldKind.ENUM: (-(1 << 31), (1 << 31) - 1),
    FieldKind.INT64: (-(1 << 63), (1 << 63) - 1),
    FieldKind.UINT32: (0, _U32),
    FieldKind.UINT64: (0, _U64),
}


@dataclass(frozen=True)
class Field:
    """Description of one message field."""

    tag: int
    name: str
    kind: FieldKind
    repeated: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.tag <= _MAX_TAG:
            raise ValueError(f"invalid field tag {self.tag}")

    def default(self) -> Any:
        """A fresh default value for this field."""
        return [] if self.repeated else self.kind.default()


class Message:
    """Base class for encodable messages.

    Subclasses set ``FIELDS`` and must be constructible with no arguments.
    """

    FIELDS: ClassVar[tuple[Field, ...]] = ()

    def encode(self) -> bytes:
        """Encode this message to bytes."""
        return encode(self)

    @classmethod
    def decode(cls: type[M], data: bytes) -> M:
        """Decode a message of this type from bytes."""
        return decode(cls, data)


# ---------------------------------------------------------------- encoding


def _varint(value: int) -> bytes:
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def _key(tag: int, wire_type: int) -> bytes:
    return _varint((tag << 3) | wire_type)


def _wire_int(field: Field, value: Any) -> int:
    if field.kind is FieldKind.BOOL:
        if not isinstance(value, bool):
            raise EncodeError(f"field {field.name}: expected bool, got {type(value).__name__}")
        return int(value)
    if not isinstance(value, int):
        raise EncodeError(f"field {field.name}: expected int, got {type(value).__name__}")
    low, high = _INT_RANGES[field.kind]
    if not low <= value <= high:
        raise EncodeError(f"field {field.name}: value {value} out of range for {field.kind.value}")
    return value & _U64


def _wire_bytes(field: Field, value: Any) -> bytes:
    if field.kind is FieldKind.STRING:
        if not isinstance(value, str):
            raise EncodeError(f"field {field.name}: expected str, got {type(value).__name__}")
        return value.encode("utf-8")
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise EncodeError(f"field {field.name}: expected bytes, got {type(value).__name__}")
    return bytes(value)


def _encode_field(field: Field, value: Any) -> bytes:
    out = bytearray()
    if field.repeated:
        values = list(value)
        if not values:
            return b""
        if field.kind.wire_type == _VARINT:
            payload = b"".join(_varint(_wire_int(field, v)) for v in values)
            out += _key(field.tag, _LEN) + _varint(len(payload)) + payload
        else:
            for item in values:
                raw = _wire_bytes(field, item)
                out += _key(field.tag, _LEN) + _varint(len(raw)) + raw
        return bytes(out)

    if field.kind.wire_type == _VARINT:
        number = _wire_int(field, value)
        if number == 0:
            return b""
        return _key(field.tag, _VARINT) + _varint(number)
    raw = _wire_bytes(field, value)
    if not raw:
        return b""
    return _key(field.tag, _LEN) + _varint(len(raw)) + raw


def encode(message: Message) -> bytes:
    """Encode ``message`` to its wire representation."""
    return b"".join(
        _encode_field(field, getattr(message, field.name)) for field in type(message).FIELDS
    )


# ---------------------------------------------------------------- decoding


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def varint(self) -> int:
        result = 0
        for shift in range(0, 70, 7):
            if self.at_end():
                raise DecodeError("buffer underflow")
            byte = self._data[self._pos]
            self._pos += 1
            if shift == 63 and byte > 1:
                raise DecodeError("invalid varint")
            result |= (byte & 0x7F) << shift
            if byte < 0x80:
                return result
        raise DecodeError("invalid varint")

    def take(self, n: int) -> bytes:
        if n > len(self._data) - self._pos:
            raise DecodeError("buffer underflow")
        chunk = bytes(self._data[self._pos : self._pos + n])
        self._pos += n
        return chunk

    def key(self) -> tuple[int, int]:
        key = self.varint()
        if key > _U32:
            raise DecodeError(f"invalid key value: {key}")
        wire_type = key & 0x07
        if wire_type > _FIXED32:
            raise DecodeError(f"invalid wire type value: {wire_type}")
        tag = key >> 3
        if tag == 0:
            raise DecodeError("invalid tag value: 0")
        return tag, wire_type


def _skip(reader: _Reader, tag: int, wire_type: int) -> None:
    if wire_type == _VARINT:
        reader.varint()
    elif wire_type == _FIXED64:
        reader.take(8)
    elif wire_type == _FIXED32:
        reader.take(4)
    elif wire_type == _LEN:
        reader.take(reader.varint())
    elif wire_type == _START_GROUP:
        while True:
            if reader.at_end():
                raise DecodeError("unexpected end of group")
            inner_tag, inner_wire = reader.key()
            if inner_wire == _END_GROUP:
                if inner_tag != tag:
                    raise DecodeError("unexpected end group tag")
                return
            _skip(reader, inner_tag, inner_wire)
    else:
        raise DecodeError("unexpected end group tag")


def _from_wire_int(kind: FieldKind, raw: int) -> Any:
    if kind is FieldKind.BOOL:
        return raw != 0
    if kind in (FieldKind.INT32, FieldKind.ENUM):
        raw &= _U32
        return raw - (1 << 32) if raw >> 31 else raw
    if kind is FieldKind.INT64:
        return raw - (1 << 64) if raw >> 63 else raw
    if kind is FieldKind.UINT32:
        return raw & _U32
    return raw


def _from_wire_bytes(kind: FieldKind, raw: bytes) -> Any:
    if kind is FieldKind.STRING:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError("invalid string value: data is not UTF-8 encoded") from None
    return raw


def _check_wire(field: Field, actual: int, expected: int) -> None:
    if actual != expected:
        raise DecodeError(f"invalid wire type: {actual} (expected {expected})")


def _merge(message: Message, field: Field, wire_type: int, reader: _Reader) -> None:
    kind = field.kind
    if kind.wire_type == _VARINT:
        if field.repeated and wire_type == _LEN:
            packed = _Reader(reader.take(reader.varint()))
            values = getattr(message, field.name)
            while not packed.at_end():
                values.append(_from_wire_int(kind, packed.varint()))
            return
        _check_wire(field, wire_type, _VARINT)
        value = _from_wire_int(kind, reader.varint())
    else:
        _check_wire(field, wire_type, _LEN)
        value = _from_wire_bytes(kind, reader.take(reader.varint()))
    if field.repeated:
        getattr(message, field.name).append(value)
    else:
        setattr(message, field.name, value)


def decode(message_type: type[M], data: bytes) -> M:
    """Decode ``data`` into a new instance of ``message_type``."""
    message = message_type()
    for field in message_type.FIELDS:
        setattr(message, field.name, field.default())
    by_tag = {field.tag: field for field in message_type.FIELDS}
    reader = _Reader(data)
    while not reader.at_end():
        tag, wire_type = reader.key()
        field = by_tag.get(tag)
        if field is None:
            _skip(reader, tag, wire_type)
            continue
        try:
            _merge(message, field, wire_type, reader)
        except DecodeError as exc:
            raise DecodeError(f"{message_type.__name__}.{field.name}: {exc}") from exc
    return message