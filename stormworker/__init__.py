"""
stormworker

Run Python spouts and bolts inside a stream-processing topology by speaking
the host's JSON-framed multilang protocol over stdin/stdout.
"""

from .core.connection import (
    BoltConn,
    SpoutConn,
    new_bolt_conn,
    new_spout_conn,
)
from .core.errors import (
    StormWorkerError,
    ProtocolViolation,
    TransportFailure,
    DecodeFailure,
    ConfigError,
)
from .core.messages import HandshakeConfig, Record, ControlMessage
from .core.config_loader import WorkerSettings, load_settings
from .components import Bolt, BasicBolt, Spout

__version__ = "0.1.0"

__all__ = [
    "BoltConn",
    "SpoutConn",
    "new_bolt_conn",
    "new_spout_conn",
    "StormWorkerError",
    "ProtocolViolation",
    "TransportFailure",
    "DecodeFailure",
    "ConfigError",
    "HandshakeConfig",
    "Record",
    "ControlMessage",
    "WorkerSettings",
    "load_settings",
    "Bolt",
    "BasicBolt",
    "Spout",
]
