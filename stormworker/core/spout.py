"""Spout side of the multilang protocol.

The host drives a spout strictly request/response:

    host  -> {"command": "next"} | {"command": "ack", "id": ...} | {"command": "fail", "id": ...}
    spout -> zero or more {"command": "emit", ...} (each non-direct one answered by a task id list)
    spout -> {"command": "sync"}

The host will not accept an emission before it has sent a command, and will
not send the next command until it sees ``sync``.

State transitions:

    UNINITIALIZED    --handshake--> AWAITING_COMMAND
    AWAITING_COMMAND --command-->   READY_TO_EMIT
    READY_TO_EMIT    --command-->   READY_TO_EMIT
    AWAITING_COMMAND --sync-->      AWAITING_COMMAND
    READY_TO_EMIT    --sync-->      AWAITING_COMMAND
"""
from __future__ import annotations
from enum import Enum
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .codec import FrameCodec
from .errors import ProtocolViolation, TransportFailure
from .logging import core_logger
from .messages import (
    CMD_NEXT,
    CMD_SYNC,
    ControlMessage,
    HandshakeConfig,
    SpoutEmission,
    decode_task_ids,
)

IDLE_SYNC_PAUSE_S = 0.001


class SpoutState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    AWAITING_COMMAND = "AWAITING_COMMAND"
    READY_TO_EMIT = "READY_TO_EMIT"


EVENT_HANDSHAKE = "handshake"
EVENT_COMMAND = "command"
EVENT_SYNC = "sync"

TRANSITIONS: Dict[Tuple[SpoutState, str], SpoutState] = {
    (SpoutState.UNINITIALIZED, EVENT_HANDSHAKE): SpoutState.AWAITING_COMMAND,
    (SpoutState.AWAITING_COMMAND, EVENT_COMMAND): SpoutState.READY_TO_EMIT,
    (SpoutState.READY_TO_EMIT, EVENT_COMMAND): SpoutState.READY_TO_EMIT,
    (SpoutState.AWAITING_COMMAND, EVENT_SYNC): SpoutState.AWAITING_COMMAND,
    (SpoutState.READY_TO_EMIT, EVENT_SYNC): SpoutState.AWAITING_COMMAND,
}


class SpoutProtocol:
    def __init__(self, codec: FrameCodec, idle_sync_pause_s: float = IDLE_SYNC_PAUSE_S):
        self.codec = codec
        self.idle_sync_pause_s = idle_sync_pause_s
        self.state = SpoutState.UNINITIALIZED
        # whether anything was emitted since the last "next"
        self.emitted = False
        self.config: Optional[HandshakeConfig] = None

    def _transition(self, event: str) -> None:
        try:
            new_state = TRANSITIONS[(self.state, event)]
        except KeyError:
            raise ProtocolViolation(f"event {event!r} not allowed in state {self.state.value}") from None
        if new_state is not self.state:
            core_logger.debug(f"spout {self.state.value} -> {new_state.value} on {event}")
        self.state = new_state

    def bind(self, config: HandshakeConfig) -> None:
        self._transition(EVENT_HANDSHAKE)
        self.config = config

    def _require_initialized(self, action: str) -> None:
        if self.state is SpoutState.UNINITIALIZED:
            raise ProtocolViolation(f"{action} before initialize")

    def _require_ready(self) -> None:
        self._require_initialized("emit")
        if self.state is not SpoutState.READY_TO_EMIT:
            raise ProtocolViolation("spout not ready to send: no command received since last sync")

    def read_control(self) -> Tuple[Optional[ControlMessage], bool]:
        self._require_initialized("read")
        payload, eof = self.codec.read_frame()
        if payload is None:
            return None, eof
        msg = ControlMessage.from_dict(payload)
        self._transition(EVENT_COMMAND)
        if msg.command == CMD_NEXT:
            self.emitted = False
        return msg, eof

    def emit(self, values: Sequence[Any], id: Any = None, stream: Optional[str] = None) -> List[int]:
        """Emit a tuple and return the task ids the host routed it to."""
        self._require_ready()
        self.emitted = True
        self.codec.write_frame(SpoutEmission(values, id=id, stream=stream).to_dict())
        payload, _ = self.codec.read_frame()
        if payload is None:
            raise TransportFailure("input closed while waiting for task ids")
        return decode_task_ids(payload)

    def emit_direct(self, values: Sequence[Any], task: int, id: Any = None, stream: Optional[str] = None) -> None:
        """Emit a tuple to one task; the host sends no reply."""
        self._require_ready()
        self.emitted = True
        self.codec.write_frame(SpoutEmission(values, id=id, stream=stream, task=task).to_dict())

    def send_sync(self) -> None:
        self._require_initialized("sync")
        self._transition(EVENT_SYNC)
        if not self.emitted and self.idle_sync_pause_s > 0:
            time.sleep(self.idle_sync_pause_s)
        self.codec.write_frame(ControlMessage(CMD_SYNC).to_dict())


__all__ = ["SpoutProtocol", "SpoutState", "TRANSITIONS", "IDLE_SYNC_PAUSE_S"]
