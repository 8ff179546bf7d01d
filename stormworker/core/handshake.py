"""Startup handshake: read placement/config, report pid, drop the pid marker.

The host sends one frame before anything else:

    {"conf": {...}, "context": {"task->component": {"3": "my-bolt"}, "taskid": 3}, "pidDir": "/tmp"}

and expects ``{"pid": <pid>}`` back. An empty file named by the pid is
created inside ``pidDir``; the host uses it to find and kill the worker and
removes it itself.
"""
from __future__ import annotations
import os
from pathlib import Path

from .codec import FrameCodec
from .errors import TransportFailure
from .logging import core_logger
from .messages import HandshakeConfig, ProcessIdentity


def pid_marker_path(pid_dir: str, pid: int) -> Path:
    if pid_dir:
        return Path(pid_dir) / str(pid)
    return Path(str(pid))


def report_pid(codec: FrameCodec, pid_dir: str) -> Path:
    pid = os.getpid()
    codec.write_frame(ProcessIdentity(pid).to_dict())
    marker = pid_marker_path(pid_dir, pid)
    try:
        marker.touch()
    except OSError as e:
        raise TransportFailure(f"cannot create pid marker {marker}: {e}") from e
    core_logger.debug(f"reported pid={pid} marker={marker}")
    return marker


def perform_handshake(codec: FrameCodec) -> HandshakeConfig:
    payload, _ = codec.read_frame()
    if payload is None:
        raise TransportFailure("input closed before handshake")
    config = HandshakeConfig.from_dict(payload)
    core_logger.info(
        f"handshake task_id={config.task_id} component={config.component} pid_dir={config.pid_dir!r}"
    )
    report_pid(codec, config.pid_dir)
    return config


__all__ = ["perform_handshake", "report_pid", "pid_marker_path"]
