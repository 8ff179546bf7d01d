"""Centralized exception hierarchy for the multilang protocol engine.

Clean end-of-stream is never an exception; reads report it as a return value.
"""
from __future__ import annotations


class StormWorkerError(Exception):
    """Base class for all worker protocol errors."""


class ProtocolViolation(StormWorkerError):
    """Operation invoked outside the state the protocol requires."""


class TransportFailure(StormWorkerError):
    """I/O failure on the host pipe, or EOF where a reply is mandatory."""


class DecodeFailure(StormWorkerError):
    """Payload is not JSON, or not the shape the protocol expects."""


class ConfigError(StormWorkerError):
    pass


__all__ = [
    "StormWorkerError",
    "ProtocolViolation",
    "TransportFailure",
    "DecodeFailure",
    "ConfigError",
]
