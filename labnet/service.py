"""Declarative services: server-side registration and typed client stubs."""

from __future__ import annotations

import functools
from concurrent.futures import Future
from typing import Any, Callable, Mapping

from labnet.client import Client
from labnet.codec import DecodeError, EncodeError, Message, decode, encode
from labnet.errors import DecodeFailure, EncodeFailure, Unimplemented
from labnet.server import Handler, ServerBuilder


class ServiceDefinition:
    """A named service and its methods' request and reply message types.

    ``methods`` maps each method name to an ``(input_type, output_type)`` pair.
    """

    def __init__(self, name: str, methods: Mapping[str, tuple[type[Message], type[Message]]]) -> None:
        if not methods:
            raise ValueError("empty service is not allowed")
        self.name = name
        self.methods = dict(methods)

    def add_service(self, impl: Any, builder: ServerBuilder) -> None:
        """Register ``impl`` with ``builder`` under this service's name.

        ``impl`` must have a method for each of the service's methods, taking
        the decoded request and returning the reply message.
        """
        missing = [name for name in self.methods if not callable(getattr(impl, name, None))]
        if missing:
            raise TypeError(f"{type(impl).__name__} lacks methods {', '.join(missing)}")

        def factory(method_name: str) -> Handler:
            def handler(req: bytes) -> bytes:
                types = self.methods.get(method_name)
                if types is None:
                    raise Unimplemented(f"unknown {method_name} in {self.name}")
                input_type, _ = types
                try:
                    request = decode(input_type, req)
                except DecodeError as exc:
                    raise DecodeFailure(exc) from exc
                reply = getattr(impl, method_name)(request)
                try:
                    return encode(reply)
                except EncodeError as exc:
                    raise EncodeFailure(exc) from exc

            return handler

        builder.add_service(self.name, factory)

    def client(self, client: Client) -> ServiceClient:
        """A stub that calls this service through ``client``."""
        return ServiceClient(self, client)

    def __repr__(self) -> str:
        return f"ServiceDefinition({self.name!r}, {sorted(self.methods)})"


class ServiceClient:
    """Calls the methods of one service; methods are also reachable as attributes."""

    def __init__(self, definition: ServiceDefinition, client: Client) -> None:
        self.definition = definition
        self.client = client

    def call(self, method: str, args: Message) -> Future:
        """Call ``method`` with ``args``; returns a future of the reply."""
        types = self.definition.methods.get(method)
        if types is None:
            raise ValueError(f"unknown method {method} in {self.definition.name}")
        _, output_type = types
        return self.client.call(f"{self.definition.name}.{method}", args, output_type)

    def spawn(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Run ``fn(*args)`` on the client's worker pool."""
        return self.client.worker.submit(fn, *args)

    def __getattr__(self, name: str) -> Callable[[Message], Future]:
        if name.startswith("_") or name not in self.__dict__.get("definition").methods:
            raise AttributeError(name)
        return functools.partial(self.call, name)