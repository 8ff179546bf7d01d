"""Core protocol engine for stormworker.

Modules:
  codec: Line framing (JSON payload line + ``end`` sentinel line).
  messages: Dataclasses for every wire message.
  handshake: Startup handshake and pid marker file.
  spout: Spout state machine (next/ack/fail -> emit* -> sync).
  bolt: Reactive bolt protocol with anchored and direct emission.
  connection: Role façades composing handshake + protocol.
  config_loader: WorkerSettings from YAML and environment.
  errors: Exception hierarchy.
  logging: stderr/file logger setup.
"""

from .connection import BoltConn, SpoutConn  # noqa: F401
