"""Simulated RPC network, protobuf-style message codec and linearizability checker."""

__version__ = "0.1.0"

__all__ = [
    "bitset",
    "checker",
    "client",
    "codec",
    "errors",
    "fixture",
    "kv_model",
    "model",
    "network",
    "server",
    "service",
]