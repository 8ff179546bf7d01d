"""Wire message model for the multilang protocol.

Every message the worker reads or writes has a dataclass here with a
``to_dict``/``from_dict`` pair. Field names on the wire are fixed by the host:

    handshake   {"pidDir", "conf", "context": {"task->component", "taskid"}}
    pid report  {"pid"}
    log         {"command": "log", "msg"}
    tuple       {"id", "comp", "stream", "task", "tuple"}
    control     {"command": next|ack|fail|sync, "id"?}
    emit        {"command": "emit", "id"|"anchors", "stream"?, "task"?, "tuple"}
    task ids    [int, ...]

Tuple values are opaque JSON data and pass through untouched.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import DecodeFailure

DEFAULT_STREAM = "default"

CMD_NEXT = "next"
CMD_ACK = "ack"
CMD_FAIL = "fail"
CMD_SYNC = "sync"
CMD_EMIT = "emit"
CMD_LOG = "log"

SPOUT_COMMANDS = {CMD_NEXT, CMD_ACK, CMD_FAIL}

HEARTBEAT_STREAM = "__heartbeat"
HEARTBEAT_TASK = -1


def is_default_stream(stream: Optional[str]) -> bool:
    return stream is None or stream == "" or stream == DEFAULT_STREAM


def _require(data: Any, key: str, kind, what: str):
    if not isinstance(data, dict):
        raise DecodeFailure(f"{what}: expected JSON object, got {type(data).__name__}")
    if key not in data:
        raise DecodeFailure(f"{what}: missing field {key!r}")
    value = data[key]
    # bool is an int subclass; never accept it where a number is required
    if kind is int and isinstance(value, bool):
        raise DecodeFailure(f"{what}: field {key!r} must be int")
    if not isinstance(value, kind):
        raise DecodeFailure(f"{what}: field {key!r} must be {getattr(kind, '__name__', kind)}")
    return value


@dataclass(frozen=True)
class HandshakeConfig:
    conf: Dict[str, Any]
    task_components: Dict[int, str]
    task_id: int
    pid_dir: str

    @property
    def component(self) -> Optional[str]:
        """Component name of this worker's own task, if the host listed it."""
        return self.task_components.get(self.task_id)

    @classmethod
    def from_dict(cls, data: Any) -> "HandshakeConfig":
        pid_dir = _require(data, "pidDir", str, "handshake")
        conf = _require(data, "conf", dict, "handshake")
        context = _require(data, "context", dict, "handshake")
        raw_mapping = _require(context, "task->component", dict, "handshake.context")
        task_id = _require(context, "taskid", int, "handshake.context")
        mapping: Dict[int, str] = {}
        for k, v in raw_mapping.items():
            try:
                task = int(k)
            except (TypeError, ValueError) as e:
                raise DecodeFailure(f"handshake.context: bad task id {k!r}") from e
            if not isinstance(v, str):
                raise DecodeFailure(f"handshake.context: component for task {k!r} must be str")
            mapping[task] = v
        return cls(conf=dict(conf), task_components=mapping, task_id=task_id, pid_dir=pid_dir)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pidDir": self.pid_dir,
            "conf": dict(self.conf),
            "context": {
                "task->component": {str(k): v for k, v in self.task_components.items()},
                "taskid": self.task_id,
            },
        }


@dataclass(frozen=True)
class ProcessIdentity:
    pid: int

    def to_dict(self) -> Dict[str, Any]:
        return {"pid": self.pid}


@dataclass(frozen=True)
class LogRequest:
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"command": CMD_LOG, "msg": self.message}


@dataclass
class Record:
    """One inbound tuple. ``id`` is the anchor token and is never reformatted."""

    id: Any
    component: str
    stream: str
    task: int
    values: List[Any] = field(default_factory=list)

    @property
    def is_heartbeat(self) -> bool:
        """Host liveness check; answered with ``sync``, never processed."""
        return self.task == HEARTBEAT_TASK and self.stream == HEARTBEAT_STREAM

    @classmethod
    def from_dict(cls, data: Any) -> "Record":
        if not isinstance(data, dict):
            raise DecodeFailure(f"tuple: expected JSON object, got {type(data).__name__}")
        if "id" not in data:
            raise DecodeFailure("tuple: missing field 'id'")
        return cls(
            id=data["id"],
            component=_require(data, "comp", str, "tuple"),
            stream=_require(data, "stream", str, "tuple"),
            task=_require(data, "task", int, "tuple"),
            values=list(_require(data, "tuple", list, "tuple")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "comp": self.component,
            "stream": self.stream,
            "task": self.task,
            "tuple": list(self.values),
        }


@dataclass(frozen=True)
class ControlMessage:
    command: str
    id: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "ControlMessage":
        command = _require(data, "command", str, "control")
        if command not in SPOUT_COMMANDS:
            raise DecodeFailure(f"control: unknown command {command!r}")
        if command != CMD_NEXT and "id" not in data:
            raise DecodeFailure(f"control: {command!r} requires 'id'")
        return cls(command=command, id=data.get("id"))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"command": self.command}
        if self.id is not None:
            out["id"] = self.id
        return out


@dataclass
class SpoutEmission:
    values: Sequence[Any]
    id: Any = None
    stream: Optional[str] = None
    task: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"command": CMD_EMIT}
        if self.id is not None:
            out["id"] = self.id
        if not is_default_stream(self.stream):
            out["stream"] = self.stream
        if self.task is not None:
            out["task"] = self.task
        out["tuple"] = list(self.values)
        return out


@dataclass
class BoltEmission:
    values: Sequence[Any]
    anchors: Sequence[Any] = ()
    stream: Optional[str] = None
    task: Optional[int] = None
    need_task_ids: bool = True

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"command": CMD_EMIT, "anchors": list(self.anchors)}
        if not is_default_stream(self.stream):
            out["stream"] = self.stream
        if self.task is not None:
            out["task"] = self.task
        if not self.need_task_ids:
            out["need_task_ids"] = False
        out["tuple"] = list(self.values)
        return out


def is_task_ids(payload: Any) -> bool:
    return isinstance(payload, list)


def decode_task_ids(payload: Any) -> List[int]:
    if not isinstance(payload, list):
        raise DecodeFailure(f"task ids: expected JSON array, got {type(payload).__name__}")
    for t in payload:
        if isinstance(t, bool) or not isinstance(t, int):
            raise DecodeFailure(f"task ids: non-integer entry {t!r}")
    return list(payload)


__all__ = [
    "DEFAULT_STREAM",
    "CMD_NEXT",
    "CMD_ACK",
    "CMD_FAIL",
    "CMD_SYNC",
    "CMD_EMIT",
    "CMD_LOG",
    "HEARTBEAT_STREAM",
    "HEARTBEAT_TASK",
    "HandshakeConfig",
    "ProcessIdentity",
    "LogRequest",
    "Record",
    "ControlMessage",
    "SpoutEmission",
    "BoltEmission",
    "is_default_stream",
    "is_task_ids",
    "decode_task_ids",
]
