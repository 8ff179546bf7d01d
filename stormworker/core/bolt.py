"""Bolt side of the multilang protocol.

A bolt is reactive: it reads tuples, emits derived tuples anchored to them,
and acks or fails each input. After a non-direct emit the host answers with
the list of task ids that received the tuple, but it may deliver further
tuples before that answer. Frames are therefore classified on arrival: task
id lists and tuples each have a pending queue, and whichever read is waiting
for the other kind parks what it sees there.
"""
from __future__ import annotations
from collections import deque
from typing import Any, Deque, Iterable, List, Optional, Sequence, Tuple

from .codec import FrameCodec
from .errors import ProtocolViolation, TransportFailure
from .logging import core_logger
from .messages import (
    CMD_ACK,
    CMD_FAIL,
    CMD_SYNC,
    BoltEmission,
    ControlMessage,
    HandshakeConfig,
    Record,
    decode_task_ids,
    is_task_ids,
)


class BoltProtocol:
    def __init__(self, codec: FrameCodec, need_task_ids: bool = True):
        self.codec = codec
        self.need_task_ids = need_task_ids
        self.config: Optional[HandshakeConfig] = None
        self.pending_records: Deque[Any] = deque()
        self.pending_task_ids: Deque[List[int]] = deque()

    def bind(self, config: HandshakeConfig) -> None:
        self.config = config

    def _require_initialized(self, action: str) -> None:
        if self.config is None:
            raise ProtocolViolation(f"{action} before initialize")

    def read_record(self) -> Tuple[Optional[Record], bool]:
        self._require_initialized("read")
        if self.pending_records:
            return Record.from_dict(self.pending_records.popleft()), False
        while True:
            payload, eof = self.codec.read_frame()
            if payload is None:
                return None, eof
            if is_task_ids(payload):
                # reply to an emit whose caller did not wait for it
                self.pending_task_ids.append(decode_task_ids(payload))
                if eof:
                    return None, eof
                continue
            return Record.from_dict(payload), eof

    def _read_task_ids(self) -> List[int]:
        if self.pending_task_ids:
            return self.pending_task_ids.popleft()
        while True:
            payload, eof = self.codec.read_frame()
            if payload is None:
                raise TransportFailure("input closed while waiting for task ids")
            if is_task_ids(payload):
                return decode_task_ids(payload)
            core_logger.debug("tuple arrived before task ids; queued")
            self.pending_records.append(payload)
            if eof:
                raise TransportFailure("input closed while waiting for task ids")

    def send_sync(self) -> None:
        """Answer a heartbeat tuple."""
        self._require_initialized("sync")
        self.codec.write_frame(ControlMessage(CMD_SYNC).to_dict())

    def send_ack(self, id: Any) -> None:
        self._require_initialized("ack")
        self.codec.write_frame(ControlMessage(CMD_ACK, id).to_dict())

    def send_fail(self, id: Any) -> None:
        """Report failure of ``id``. Do not anchor further emissions to it."""
        self._require_initialized("fail")
        self.codec.write_frame(ControlMessage(CMD_FAIL, id).to_dict())

    def emit(
        self,
        values: Sequence[Any],
        anchors: Iterable[Any] = (),
        stream: Optional[str] = None,
        need_task_ids: Optional[bool] = None,
    ) -> Optional[List[int]]:
        """Emit a tuple anchored to ``anchors``.

        Returns the receiving task ids, or ``None`` when the host was told not
        to send them.
        """
        self._require_initialized("emit")
        if need_task_ids is None:
            need_task_ids = self.need_task_ids
        emission = BoltEmission(values, anchors=list(anchors), stream=stream, need_task_ids=need_task_ids)
        self.codec.write_frame(emission.to_dict())
        if not need_task_ids:
            return None
        return self._read_task_ids()

    def emit_direct(
        self,
        values: Sequence[Any],
        task: int,
        anchors: Iterable[Any] = (),
        stream: Optional[str] = None,
    ) -> None:
        self._require_initialized("emit")
        self.codec.write_frame(BoltEmission(values, anchors=list(anchors), stream=stream, task=task).to_dict())


__all__ = ["BoltProtocol"]
