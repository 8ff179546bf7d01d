import io
import os

import pytest

from conftest import frames, written
from stormworker.core.codec import FrameCodec
from stormworker.core.errors import DecodeFailure, TransportFailure
from stormworker.core.handshake import perform_handshake, pid_marker_path


def test_handshake_returns_config_and_reports_pid(tmp_path):
    inp = io.StringIO(
        '{"pidDir":"%s","conf":{},"context":{"task->component":{"3":"my-bolt"},"taskid":3}}\nend\n' % tmp_path
    )
    out = io.StringIO()
    config = perform_handshake(FrameCodec(inp, out))
    assert config.conf == {}
    assert config.task_components == {3: "my-bolt"}
    assert config.task_id == 3
    assert config.component == "my-bolt"
    assert config.pid_dir == str(tmp_path)
    assert out.getvalue() == '{"pid":%d}\nend\n' % os.getpid()
    assert [p.name for p in tmp_path.iterdir()] == [str(os.getpid())]
    assert (tmp_path / str(os.getpid())).read_bytes() == b""


def test_handshake_config_round_trips(handshake):
    config = perform_handshake(FrameCodec(frames(handshake), io.StringIO()))
    assert config.to_dict() == handshake
    assert config.conf["topology.message.timeout.secs"] == 3


def test_pid_marker_without_directory():
    assert str(pid_marker_path("", 1234)) == "1234"
    assert str(pid_marker_path("/tmp", 1234)) == os.path.join("/tmp", "1234")


def test_empty_pid_dir_uses_working_directory(tmp_path, monkeypatch, handshake):
    monkeypatch.chdir(tmp_path)
    handshake["pidDir"] = ""
    perform_handshake(FrameCodec(frames(handshake), io.StringIO()))
    assert (tmp_path / str(os.getpid())).exists()


def test_handshake_on_closed_input():
    with pytest.raises(TransportFailure):
        perform_handshake(FrameCodec(io.StringIO(""), io.StringIO()))


@pytest.mark.parametrize("broken", [
    {"conf": {}, "context": {"task->component": {}, "taskid": 1}},
    {"pidDir": "/tmp", "conf": [], "context": {"task->component": {}, "taskid": 1}},
    {"pidDir": "/tmp", "conf": {}, "context": {"task->component": {}}},
    {"pidDir": "/tmp", "conf": {}, "context": {"task->component": {"x": "c"}, "taskid": 1}},
    [1, 2],
])
def test_handshake_shape_errors(broken):
    out = io.StringIO()
    with pytest.raises(DecodeFailure):
        perform_handshake(FrameCodec(frames(broken), out))
    assert out.getvalue() == ""


def test_marker_creation_failure(tmp_path, handshake):
    handshake["pidDir"] = str(tmp_path / "missing" / "dir")
    out = io.StringIO()
    with pytest.raises(TransportFailure):
        perform_handshake(FrameCodec(frames(handshake), out))
    assert written(out) == [{"pid": os.getpid()}]


@pytest.mark.parametrize("component", [None, 7, ["a"]])
def test_component_names_must_be_strings(handshake, component):
    handshake["context"]["task->component"]["3"] = component
    with pytest.raises(DecodeFailure):
        perform_handshake(FrameCodec(frames(handshake), io.StringIO()))
