"""Errors raised by remote procedure calls."""

from __future__ import annotations

from typing import Any

from labnet.codec import DecodeError, EncodeError


def _normalise(value: Any) -> Any:
    if isinstance(value, BaseException):
        return (type(value), tuple(_normalise(arg) for arg in value.args))
    return value


class RpcError(Exception):
    """Base class of every RPC failure.

    Errors compare equal when they are of the same class and carry the same
    details, so a caller can check for a specific outcome with ``==``.
    """

    def _identity(self) -> tuple:
        return (type(self), tuple(_normalise(arg) for arg in self.args))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RpcError):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())


class Unimplemented(RpcError):
    """The service or method named by a call is not registered."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"unimplemented: {self.message}"


class EncodeFailure(RpcError):
    """A request or reply could not be encoded."""

    def __init__(self, error: EncodeError) -> None:
        super().__init__(error)
        self.error = error
        self.__cause__ = error

    def __str__(self) -> str:
        return f"encode error: {self.error}"


class DecodeFailure(RpcError):
    """A request or reply could not be decoded."""

    def __init__(self, error: DecodeError) -> None:
        super().__init__(error)
        self.error = error
        self.__cause__ = error

    def __str__(self) -> str:
        return f"decode error: {self.error}"


class RecvError(RpcError):
    """The reply channel was dropped before a reply arrived."""

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return "reply channel closed"


class RpcTimeout(RpcError):
    """The call got no reply, as if it had timed out."""

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return "rpc timed out"


class Stopped(RpcError):
    """The network or the target server has stopped."""

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return "rpc stopped"


class OtherError(RpcError):
    """Any other failure, described by a message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message