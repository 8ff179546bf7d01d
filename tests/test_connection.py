import io
import json
import os

import pytest

from conftest import frames, written
from stormworker import new_bolt_conn, new_spout_conn, WorkerSettings
from stormworker.core.errors import DecodeFailure, ProtocolViolation
from stormworker.core.spout import SpoutState

TUPLE_7 = {"id": "7", "comp": "c1", "stream": "default", "task": 1, "tuple": [1, 2]}


def test_log_before_initialize():
    conn = new_bolt_conn()
    with pytest.raises(ProtocolViolation):
        conn.log("hello")


def test_spout_operations_before_initialize():
    conn = new_spout_conn()
    assert conn.state is SpoutState.UNINITIALIZED
    with pytest.raises(ProtocolViolation):
        conn.read_control()
    with pytest.raises(ProtocolViolation):
        conn.emit(["x"], id="42")


def test_bolt_session(handshake):
    out = io.StringIO()
    conn = new_bolt_conn()
    config = conn.initialize(frames(handshake, TUPLE_7, [3]), out)
    assert config.task_id == 3 and conn.config is config
    conn.log("hello world!")
    record, _ = conn.read_record()
    assert conn.emit(["y"], anchors=[record.id]) == [3]
    conn.send_ack(record.id)
    assert written(out) == [
        {"pid": os.getpid()},
        {"command": "log", "msg": "hello world!"},
        {"command": "emit", "anchors": ["7"], "tuple": ["y"]},
        {"command": "ack", "id": "7"},
    ]


def test_spout_session(handshake, no_sleep):
    out = io.StringIO()
    conn = new_spout_conn(WorkerSettings(idle_sync_pause_s=0.005))
    conn.initialize(frames(handshake, {"command": "next"}, {"command": "next"}), out)
    assert conn.state is SpoutState.AWAITING_COMMAND
    msg, _ = conn.read_control()
    assert msg.command == "next"
    conn.emit_direct(["w"], 4, id="1")
    conn.send_sync()
    conn.read_control()
    conn.send_sync()
    assert no_sleep == [0.005]
    assert written(out)[1:] == [
        {"command": "emit", "id": "1", "task": 4, "tuple": ["w"]},
        {"command": "sync"},
        {"command": "sync"},
    ]


def test_initialize_twice(handshake):
    conn = new_bolt_conn()
    conn.initialize(frames(handshake), io.StringIO())
    with pytest.raises(ProtocolViolation):
        conn.initialize(frames(handshake), io.StringIO())


def test_use_input_file(tmp_path, handshake):
    path = tmp_path / "input.txt"
    path.write_text(frames(handshake, TUPLE_7).getvalue(), encoding="utf-8")
    out = io.StringIO()
    with new_bolt_conn() as conn:
        conn.use_input(path)
        conn.initialize(output=out)
        record, _ = conn.read_record()
        assert record.values == [1, 2]
        with pytest.raises(ProtocolViolation, match="cannot change input"):
            conn.use_input(path)
    assert conn._owned_input is None


def test_strict_sentinel_setting(handshake):
    text = json.dumps(handshake) + "\nEND\n"
    conn = new_bolt_conn(WorkerSettings(strict_sentinel=True))
    with pytest.raises(DecodeFailure):
        conn.initialize(io.StringIO(text), io.StringIO())
    assert not conn.initialized


def test_need_task_ids_setting(handshake):
    out = io.StringIO()
    conn = new_bolt_conn(WorkerSettings(need_task_ids=False))
    conn.initialize(frames(handshake), out)
    assert conn.emit(["a"]) is None
    assert written(out)[-1]["need_task_ids"] is False
