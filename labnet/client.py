"""The calling side of an RPC: requests in flight, hooks and client end-points."""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from labnet.codec import DecodeError, EncodeError, Message, decode, encode
from labnet.errors import DecodeFailure, EncodeFailure, RecvError, RpcError, Stopped

R = TypeVar("R", bound=Message)


class RpcHooks:
    """Interceptors run around the dispatch of each request.

    The defaults let everything through unchanged.
    """

    def before_dispatch(self, fq_name: str, req: bytes) -> None:
        """Called before a request is dispatched; raise an RpcError to reject it."""

    def after_dispatch(self, fq_name: str, resp: bytes | RpcError) -> bytes:
        """Called with the reply bytes or the error a dispatch produced.

        Returns the reply to deliver, or raises the error to deliver.
        """
        if isinstance(resp, BaseException):
            raise resp
        return resp


def _no_hooks() -> Optional[RpcHooks]:
    return None


@dataclass(eq=False)
class Rpc:
    """A request travelling from a client to the network.

    ``resp`` is resolved with the reply bytes, failed with an RpcError, or
    cancelled when no reply will ever come.  ``current_hooks`` returns the
    hooks installed on the sending client at the time it is called.
    """

    client_name: str
    fq_name: str
    req: Optional[bytes]
    resp: Optional[Future] = field(default=None, repr=False)
    current_hooks: Callable[[], Optional[RpcHooks]] = field(default=_no_hooks, repr=False)

    def take_resp(self) -> Optional[Future]:
        """Remove and return the reply future; later calls return ``None``."""
        resp, self.resp = self.resp, None
        return resp


Sender = Callable[[Rpc], None]
"""Hands a request to the network; raises :class:`Stopped` if it is gone."""


def _failed(error: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


def _settle(future: Future, *, result: object = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class Client:
    """A named end-point that sends requests into a network."""

    def __init__(self, name: str, sender: Sender, worker: Executor) -> None:
        self.name = name
        self.worker = worker
        self._sender = sender
        self._hooks: Optional[RpcHooks] = None
        self._lock = threading.Lock()

    def call(self, fq_name: str, req: Message, reply_type: type[R]) -> Future:
        """Send ``req`` to ``fq_name`` and return a future of the decoded reply.

        The future fails with an :class:`RpcError` subclass on any failure.
        """
        try:
            buf = encode(req)
        except EncodeError as exc:
            return _failed(EncodeFailure(exc))

        resp: Future = Future()
        rpc = Rpc(self.name, fq_name, buf, resp, self.hooks)
        try:
            self._sender(rpc)
        except Stopped:
            return _failed(Stopped())

        out: Future = Future()

        def finish(done: Future) -> None:
            if done.cancelled():
                _settle(out, error=RecvError())
                return
            error = done.exception()
            if error is not None:
                _settle(out, error=error)
                return
            try:
                reply = decode(reply_type, done.result())
            except DecodeError as exc:
                _settle(out, error=DecodeFailure(exc))
            else:
                _settle(out, result=reply)

        resp.add_done_callback(finish)
        return out

    def set_hooks(self, hooks: RpcHooks) -> None:
        """Install hooks for requests sent from now on."""
        with self._lock:
            self._hooks = hooks

    def clear_hooks(self) -> None:
        """Remove any installed hooks."""
        with self._lock:
            self._hooks = None

    def hooks(self) -> Optional[RpcHooks]:
        """The hooks currently installed, if any."""
        with self._lock:
            return self._hooks

    def __repr__(self) -> str:
        return f"Client(name={self.name!r})"