import io
import json

import pytest


def frames(*payloads, trailing_end=True):
    """Build host-side input text: one JSON line + 'end' per payload."""
    parts = []
    for i, p in enumerate(payloads):
        parts.append(json.dumps(p) + "\n")
        if trailing_end or i < len(payloads) - 1:
            parts.append("end\n")
    return io.StringIO("".join(parts))


def written(out: io.StringIO):
    """Parse what the worker wrote back into a list of payloads."""
    lines = out.getvalue().split("\n")
    assert lines[-1] == ""
    lines = lines[:-1]
    assert len(lines) % 2 == 0
    payloads = []
    for data, end in zip(lines[0::2], lines[1::2]):
        assert end == "end"
        payloads.append(json.loads(data))
    return payloads


@pytest.fixture
def handshake(tmp_path):
    return {
        "pidDir": str(tmp_path),
        "conf": {"topology.message.timeout.secs": 3},
        "context": {"task->component": {"1": "example-spout", "2": "__acker", "3": "example-bolt"}, "taskid": 3},
    }


@pytest.fixture
def no_sleep(monkeypatch):
    calls = []
    monkeypatch.setattr("time.sleep", lambda s: calls.append(s))
    return calls
