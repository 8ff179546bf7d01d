"""Base classes for spouts and bolts run as multilang workers.

Subclass one of them, override the hooks, and call ``run()``; the class owns
the connection and loops until the host closes the pipe.

    class SplitSentence(BasicBolt):
        def process(self, record):
            for word in record.values[0].split():
                self.emit([word])

    if __name__ == "__main__":
        SplitSentence().run()
"""
from __future__ import annotations
import traceback
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO

from .core.config_loader import WorkerSettings
from .core.connection import BoltConn, SpoutConn
from .core.errors import StormWorkerError
from .core.logging import get_logger
from .core.messages import CMD_ACK, CMD_FAIL, CMD_NEXT, HandshakeConfig, Record

logger = get_logger("stormworker.components")


class _Component:
    conn: Any

    def initialize(self, conf: Dict[str, Any], context: HandshakeConfig) -> None:
        """Called once after the handshake."""

    def log(self, text: str) -> None:
        self.conn.log(text)

    def _report(self, exc: BaseException) -> None:
        text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.error(f"{type(self).__name__} failed: {exc}")
        # a broken pipe cannot carry the report
        if self.conn.initialized and not isinstance(exc, StormWorkerError):
            self.conn.log(text)


class Bolt(_Component):
    """Bolt with manual anchoring and acking."""

    def __init__(self, settings: Optional[WorkerSettings] = None):
        self.conn = BoltConn(settings)

    def process(self, record: Record) -> None:  # pragma: no cover - base
        raise NotImplementedError

    def emit(self, values: Sequence[Any], anchors: Iterable[Any] = (), stream: Optional[str] = None) -> Optional[List[int]]:
        return self.conn.emit(values, anchors=anchors, stream=stream)

    def emit_direct(self, task: int, values: Sequence[Any], anchors: Iterable[Any] = (), stream: Optional[str] = None) -> None:
        self.conn.emit_direct(values, task, anchors=anchors, stream=stream)

    def ack(self, record: Record) -> None:
        self.conn.send_ack(record.id)

    def fail(self, record: Record) -> None:
        self.conn.send_fail(record.id)

    def _handle(self, record: Record) -> None:
        self.process(record)

    def run(self, input: Optional[TextIO] = None, output: Optional[TextIO] = None) -> None:
        try:
            config = self.conn.initialize(input, output)
            self.initialize(config.conf, config)
            while True:
                record, eof = self.conn.read_record()
                if record is not None:
                    if record.is_heartbeat:
                        self.conn.send_sync()
                    else:
                        self._handle(record)
                if eof:
                    break
        except Exception as e:
            self._report(e)
            raise
        finally:
            self.conn.close()


class BasicBolt(Bolt):
    """Bolt that anchors every emission to the current record and acks it.

    A record whose ``process`` raises is failed before the error propagates.
    """

    def __init__(self, settings: Optional[WorkerSettings] = None):
        super().__init__(settings)
        self._current: Optional[Record] = None

    def emit(self, values: Sequence[Any], anchors: Iterable[Any] = (), stream: Optional[str] = None) -> Optional[List[int]]:
        if self._current is not None:
            anchors = [self._current.id]
        return super().emit(values, anchors=anchors, stream=stream)

    def emit_direct(self, task: int, values: Sequence[Any], anchors: Iterable[Any] = (), stream: Optional[str] = None) -> None:
        if self._current is not None:
            anchors = [self._current.id]
        super().emit_direct(task, values, anchors=anchors, stream=stream)

    def _handle(self, record: Record) -> None:
        self._current = record
        try:
            self.process(record)
        except StormWorkerError:
            raise
        except Exception:
            self.fail(record)
            raise
        finally:
            self._current = None
        self.ack(record)


class Spout(_Component):
    """Spout driven by the host's next/ack/fail commands.

    ``next_tuple`` should emit at most a handful of tuples and return; the
    connection sends ``sync`` after every command.
    """

    def __init__(self, settings: Optional[WorkerSettings] = None):
        self.conn = SpoutConn(settings)

    def next_tuple(self) -> None:
        pass

    def ack(self, id: Any) -> None:
        pass

    def fail(self, id: Any) -> None:
        pass

    def emit(self, values: Sequence[Any], id: Any = None, stream: Optional[str] = None) -> List[int]:
        return self.conn.emit(values, id=id, stream=stream)

    def emit_direct(self, task: int, values: Sequence[Any], id: Any = None, stream: Optional[str] = None) -> None:
        self.conn.emit_direct(values, task, id=id, stream=stream)

    def run(self, input: Optional[TextIO] = None, output: Optional[TextIO] = None) -> None:
        try:
            config = self.conn.initialize(input, output)
            self.initialize(config.conf, config)
            while True:
                msg, eof = self.conn.read_control()
                if msg is not None:
                    if msg.command == CMD_NEXT:
                        self.next_tuple()
                    elif msg.command == CMD_ACK:
                        self.ack(msg.id)
                    elif msg.command == CMD_FAIL:
                        self.fail(msg.id)
                    self.conn.send_sync()
                if eof:
                    break
        except Exception as e:
            self._report(e)
            raise
        finally:
            self.conn.close()


__all__ = ["Bolt", "BasicBolt", "Spout"]
