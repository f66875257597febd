"""A simulated network that carries RPCs between named clients and servers.

The network can lose requests and replies, delay them, reorder replies, and
disconnect clients or kill servers, so that code built on top of it can be
exercised against an unreliable transport.
"""

from __future__ import annotations

import logging
import os
import random
import threading
import time
from concurrent.futures import Future, InvalidStateError, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

from labnet.client import Client, Rpc
from labnet.errors import OtherError, RpcError, RpcTimeout, Stopped
from labnet.server import Server

_log = logging.getLogger(__name__)

_DEAD_CHECK_INTERVAL = 0.1


def _deliver(resp: Optional[Future], *, result: Any = None, error: Optional[BaseException] = None) -> None:
    if resp is None:
        return
    try:
        if error is not None:
            resp.set_exception(error)
        else:
            resp.set_result(result)
    except InvalidStateError:
        _log.error("fail to send resp: reply future already settled")


class Network:
    """Routes requests from clients to servers with configurable faults."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled: dict[str, bool] = {}
        self._servers: dict[str, Optional[Server]] = {}
        self._connections: dict[str, Optional[str]] = {}
        self._reliable = True
        self._long_delays = False
        self._long_reordering = False
        self._count = 0
        self._closed = False
        self._rng = random.Random()
        self._worker = ThreadPoolExecutor(
            max_workers=os.cpu_count() or 4, thread_name_prefix="labnet-worker"
        )

    # ------------------------------------------------------------ topology

    def add_server(self, server: Server) -> None:
        """Make ``server`` reachable under its name, replacing any previous one."""
        with self._lock:
            self._servers[server.name()] = server

    def delete_server(self, name: str) -> None:
        """Kill the server called ``name``; calls in flight to it fail."""
        with self._lock:
            if name in self._servers:
                self._servers[name] = None

    def create_client(self, name: str) -> Client:
        """A new end-point, initially disabled and unconnected."""
        with self._lock:
            self._enabled[name] = False
            self._connections[name] = None
        return Client(name, self._send, self._worker)

    def connect(self, client_name: str, server_name: str) -> None:
        """Connect a client to a server."""
        with self._lock:
            self._connections[client_name] = server_name

    def enable(self, client_name: str, enabled: bool) -> None:
        """Enable or disable a client."""
        _log.debug("client %s is %s", client_name, "enabled" if enabled else "disabled")
        with self._lock:
            self._enabled[client_name] = enabled

    # ------------------------------------------------------------- faults

    def set_reliable(self, yes: bool) -> None:
        """When unreliable, requests and replies are sometimes lost or delayed."""
        with self._lock:
            self._reliable = yes

    def set_long_reordering(self, yes: bool) -> None:
        """When set, replies are sometimes held back for a long time."""
        with self._lock:
            self._long_reordering = yes

    def set_long_delays(self, yes: bool) -> None:
        """When set, calls on disabled connections wait much longer before timing out."""
        with self._lock:
            self._long_delays = yes

    # ---------------------------------------------------------- statistics

    def count(self, server_name: str) -> int:
        """How many requests the live server called ``server_name`` has received.

        Raises KeyError if there is no such live server.
        """
        with self._lock:
            server = self._servers[server_name]
        if server is None:
            raise KeyError(server_name)
        return server.count()

    def total_count(self) -> int:
        """How many requests the network has processed."""
        with self._lock:
            return self._count

    # ------------------------------------------------------------ running

    def spawn(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Run ``fn(*args)`` on the network's worker pool."""
        return self._worker.submit(fn, *args)

    def close(self) -> None:
        """Stop accepting requests; later calls fail with :class:`Stopped`."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._worker.shutdown(wait=False)

    def __enter__(self) -> Network:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        with self._lock:
            return f"Network(servers={sorted(self._servers)}, clients={sorted(self._enabled)})"

    # ----------------------------------------------------------- internals

    def _send(self, rpc: Rpc) -> None:
        with self._lock:
            if self._closed:
                raise Stopped()
        threading.Thread(target=self._serve, args=(rpc,), daemon=True).start()

    def _serve(self, rpc: Rpc) -> None:
        resp = rpc.take_resp()
        try:
            reply = self._process(rpc)
        except RpcError as exc:
            _deliver(resp, error=exc)
        else:
            _deliver(resp, result=reply)

    def _is_server_dead(self, client_name: str, server_name: str, server_id: int) -> bool:
        with self._lock:
            if not self._enabled.get(client_name, False):
                return True
            server = self._servers.get(server_name)
            return server is None or server.id() != server_id

    def _process(self, rpc: Rpc) -> bytes:
        with self._lock:
            self._count += 1
            enabled = self._enabled.get(rpc.client_name, False)
            server_name = self._connections.get(rpc.client_name)
            server = self._servers.get(server_name) if server_name is not None else None
            reliable = self._reliable
            long_reordering = self._long_reordering
            long_delays = self._long_delays
        rng = self._rng
        _log.debug("%r process enabled=%s reliable=%s server=%r", rpc, enabled, reliable, server)

        if not enabled or server is None:
            # Simulate no reply and an eventual timeout.
            ms = rng.randrange(7000) if long_delays else rng.randrange(100)
            _log.debug("%r delay %dms then timeout", rpc, ms)
            time.sleep(ms / 1000)
            raise RpcTimeout()

        short_delay = 0 if reliable else rng.randrange(27)
        if not reliable and rng.randrange(1000) < 100:
            # Drop the request, as if it timed out.
            time.sleep(short_delay / 1000)
            raise RpcTimeout()

        drop_reply = not reliable and rng.randrange(1000) < 100
        reorder_ms: Optional[int] = None
        if long_reordering and rng.randrange(900) < 600:
            upper_bound = 1 + rng.randrange(2000)
            reorder_ms = 200 + rng.randrange(upper_bound)

        if short_delay:
            time.sleep(short_delay / 1000)

        req, rpc.req = rpc.req, None
        req = req if req is not None else b""
        hooks = rpc.current_hooks()
        if hooks is not None:
            hooks.before_dispatch(rpc.fq_name, req)

        outcome = self._dispatch(rpc, server, req)
        hooks = rpc.current_hooks()
        if hooks is not None:
            reply = hooks.after_dispatch(rpc.fq_name, outcome)
        elif isinstance(outcome, RpcError):
            raise outcome
        else:
            reply = outcome

        if self._is_server_dead(rpc.client_name, server.name(), server.id()):
            raise Stopped()
        if drop_reply:
            raise RpcTimeout()
        if reorder_ms is not None:
            _log.debug("%r next long reordering %dms", rpc, reorder_ms)
            time.sleep(reorder_ms / 1000)
        return reply

    def _dispatch(self, rpc: Rpc, server: Server, req: bytes) -> bytes | RpcError:
        """Run the handler on its own thread, giving up if the server dies."""
        done: Future = Future()

        def run() -> None:
            try:
                done.set_result(server.dispatch(rpc.fq_name, req))
            except RpcError as exc:
                done.set_exception(exc)
            except Exception as exc:  # a handler bug becomes an RPC failure
                done.set_exception(OtherError(f"{type(exc).__name__}: {exc}"))

        threading.Thread(target=run, daemon=True).start()
        while not done.done():
            if self._is_server_dead(rpc.client_name, server.name(), server.id()):
                _log.debug("%r is dead", server.name())
                return Stopped()
            wait([done], timeout=_DEAD_CHECK_INTERVAL)
        error = done.exception()
        if error is not None:
            return error
        return done.result()