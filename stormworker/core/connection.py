"""Connection façade: one entry point per role.

    conn = new_bolt_conn()
    conn.initialize()                  # handshake on stdin/stdout
    while True:
        record, eof = conn.read_record()
        if record is not None:
            conn.emit([record.values[0].upper()], anchors=[record.id])
            conn.send_ack(record.id)
        if eof:
            break
"""
from __future__ import annotations
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, TextIO, Tuple, Union

from .bolt import BoltProtocol
from .codec import FrameCodec, utf8_stream
from .config_loader import WorkerSettings
from .errors import ProtocolViolation, TransportFailure
from .handshake import perform_handshake
from .logging import core_logger
from .messages import ControlMessage, HandshakeConfig, LogRequest, Record
from .spout import SpoutProtocol, SpoutState

SPOUT = "spout"
BOLT = "bolt"


class _Connection:
    role: str = ""

    def __init__(self, settings: Optional[WorkerSettings] = None):
        self.settings = settings or WorkerSettings()
        self.codec: Optional[FrameCodec] = None
        self._config: Optional[HandshakeConfig] = None
        self._input: Optional[TextIO] = None
        self._owned_input: Optional[TextIO] = None

    @property
    def config(self) -> Optional[HandshakeConfig]:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._config is not None

    def use_input(self, path: Union[str, Path]) -> None:
        """Read frames from ``path`` instead of stdin (replay and tests)."""
        if self.initialized:
            raise ProtocolViolation("cannot change input stream after initialization")
        try:
            fi = open(path, "r", encoding="utf-8")
        except OSError as e:
            raise TransportFailure(f"cannot open input {path}: {e}") from e
        self.close()
        self._owned_input = fi
        self._input = fi

    def initialize(self, input: Optional[TextIO] = None, output: Optional[TextIO] = None) -> HandshakeConfig:
        if self.initialized:
            raise ProtocolViolation("connection already initialized")
        if input is not None:
            self._input = input
        self.codec = FrameCodec(
            self._input or utf8_stream(sys.stdin),
            output or utf8_stream(sys.stdout),
            strict_sentinel=self.settings.strict_sentinel,
        )
        config = perform_handshake(self.codec)
        self._bind(config)
        self._config = config
        core_logger.info(f"{self.role} connection ready task_id={config.task_id}")
        return config

    def _bind(self, config: HandshakeConfig) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _require_initialized(self, action: str) -> FrameCodec:
        if self.codec is None or not self.initialized:
            raise ProtocolViolation(f"{action} before initialize")
        return self.codec

    def log(self, text: str) -> None:
        """Ask the host to write ``text`` to its own log."""
        codec = self._require_initialized("log")
        codec.write_frame(LogRequest(str(text)).to_dict())

    def close(self) -> None:
        if self._owned_input is not None:
            self._owned_input.close()
            self._owned_input = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class SpoutConn(_Connection):
    role = SPOUT

    def __init__(self, settings: Optional[WorkerSettings] = None):
        super().__init__(settings)
        self._protocol: Optional[SpoutProtocol] = None

    def _bind(self, config: HandshakeConfig) -> None:
        self._protocol = SpoutProtocol(self.codec, idle_sync_pause_s=self.settings.idle_sync_pause_s)
        self._protocol.bind(config)

    @property
    def protocol(self) -> SpoutProtocol:
        if self._protocol is None:
            raise ProtocolViolation("spout operation before initialize")
        return self._protocol

    @property
    def state(self) -> SpoutState:
        return self._protocol.state if self._protocol is not None else SpoutState.UNINITIALIZED

    def read_control(self) -> Tuple[Optional[ControlMessage], bool]:
        return self.protocol.read_control()

    def send_sync(self) -> None:
        self.protocol.send_sync()

    def emit(self, values: Sequence[Any], id: Any = None, stream: Optional[str] = None) -> List[int]:
        return self.protocol.emit(values, id=id, stream=stream)

    def emit_direct(self, values: Sequence[Any], task: int, id: Any = None, stream: Optional[str] = None) -> None:
        self.protocol.emit_direct(values, task, id=id, stream=stream)


class BoltConn(_Connection):
    role = BOLT

    def __init__(self, settings: Optional[WorkerSettings] = None):
        super().__init__(settings)
        self._protocol: Optional[BoltProtocol] = None

    def _bind(self, config: HandshakeConfig) -> None:
        self._protocol = BoltProtocol(self.codec, need_task_ids=self.settings.need_task_ids)
        self._protocol.bind(config)

    @property
    def protocol(self) -> BoltProtocol:
        if self._protocol is None:
            raise ProtocolViolation("bolt operation before initialize")
        return self._protocol

    def read_record(self) -> Tuple[Optional[Record], bool]:
        return self.protocol.read_record()

    def send_ack(self, id: Any) -> None:
        self.protocol.send_ack(id)

    def send_fail(self, id: Any) -> None:
        self.protocol.send_fail(id)

    def send_sync(self) -> None:
        self.protocol.send_sync()

    def emit(
        self,
        values: Sequence[Any],
        anchors: Iterable[Any] = (),
        stream: Optional[str] = None,
        need_task_ids: Optional[bool] = None,
    ) -> Optional[List[int]]:
        return self.protocol.emit(values, anchors=anchors, stream=stream, need_task_ids=need_task_ids)

    def emit_direct(self, values: Sequence[Any], task: int, anchors: Iterable[Any] = (), stream: Optional[str] = None) -> None:
        self.protocol.emit_direct(values, task, anchors=anchors, stream=stream)


def new_spout_conn(settings: Optional[WorkerSettings] = None) -> SpoutConn:
    return SpoutConn(settings)


def new_bolt_conn(settings: Optional[WorkerSettings] = None) -> BoltConn:
    return BoltConn(settings)


__all__ = ["SpoutConn", "BoltConn", "new_spout_conn", "new_bolt_conn", "SPOUT", "BOLT"]
