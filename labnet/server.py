"""RPC servers: named collections of services dispatched by ``service.method``."""

from __future__ import annotations

import itertools
import threading
from typing import Callable

from labnet.errors import OtherError, Unimplemented

Handler = Callable[[bytes], bytes]
"""Handles an encoded request and returns the encoded reply, raising on failure."""

HandlerFactory = Callable[[str], Handler]
"""Returns the handler for a method name of a service."""

_ids = itertools.count()
_ids_lock = threading.Lock()


def _next_id() -> int:
    with _ids_lock:
        return next(_ids)


class ServerBuilder:
    """Collects services before a :class:`Server` is built."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._services: dict[str, HandlerFactory] = {}

    def add_service(self, service_name: str, factory: HandlerFactory) -> None:
        """Register ``factory`` under ``service_name``.

        Raises :class:`OtherError` if the name is already registered.
        """
        if service_name in self._services:
            raise OtherError(f"{service_name} has already registered")
        self._services[service_name] = factory

    def build(self) -> Server:
        """A server holding the registered services, with a fresh id."""
        return Server(self._name, dict(self._services))


class Server:
    """A named server that routes requests to its services."""

    def __init__(self, name: str, services: dict[str, HandlerFactory]) -> None:
        self._name = name
        self._services = services
        self._id = _next_id()
        self._count = 0
        self._lock = threading.Lock()

    def count(self) -> int:
        """How many requests have been dispatched to this server."""
        with self._lock:
            return self._count

    def name(self) -> str:
        """The server's name."""
        return self._name

    def id(self) -> int:
        """A process-wide unique identifier of this server instance."""
        return self._id

    def dispatch(self, fq_name: str, req: bytes) -> bytes:
        """Run the handler for ``fq_name`` (``service.method``) on ``req``.

        Raises :class:`Unimplemented` when the name cannot be routed; errors
        raised by the handler propagate unchanged.
        """
        with self._lock:
            self._count += 1
        parts = fq_name.split(".")
        if len(parts) < 2:
            raise Unimplemented(f"unknown {fq_name}")
        service_name, method_name = parts[0], parts[1]
        factory = self._services.get(service_name)
        if factory is None:
            raise Unimplemented(f"unknown {fq_name}")
        handler = factory(method_name)
        return handler(req)

    def __repr__(self) -> str:
        return f"Server(name={self._name!r}, id={self._id})"