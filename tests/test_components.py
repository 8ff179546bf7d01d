import io
import os

import pytest

from conftest import frames, written
from stormworker import BasicBolt, Bolt, Spout
from stormworker.core.errors import TransportFailure

TUPLE_1 = {"id": "1", "comp": "sentences", "stream": "default", "task": 2, "tuple": ["a b"]}
TUPLE_2 = {"id": "2", "comp": "sentences", "stream": "default", "task": 2, "tuple": ["boom"]}


class SplitSentence(BasicBolt):
    def initialize(self, conf, context):
        self.context = context

    def process(self, record):
        if record.values[0] == "boom":
            raise ValueError("cannot split")
        for word in record.values[0].split():
            self.emit([word])


class Echo(Bolt):
    def process(self, record):
        self.emit_direct(5, record.values, anchors=[record.id])
        self.ack(record)


class Counter(Spout):
    def initialize(self, conf, context):
        self.n = 0
        self.acked = []
        self.failed = []

    def next_tuple(self):
        if self.n < 2:
            self.n += 1
            self.emit([self.n], id=str(self.n))

    def ack(self, id):
        self.acked.append(id)

    def fail(self, id):
        self.failed.append(id)


def test_basic_bolt_anchors_and_acks(handshake):
    out = io.StringIO()
    bolt = SplitSentence()
    bolt.run(frames(handshake, TUPLE_1, [7], [8]), out)
    assert bolt.context.component == "example-bolt"
    assert written(out)[1:] == [
        {"command": "emit", "anchors": ["1"], "tuple": ["a"]},
        {"command": "emit", "anchors": ["1"], "tuple": ["b"]},
        {"command": "ack", "id": "1"},
    ]


def test_basic_bolt_fails_record_and_reports(handshake):
    out = io.StringIO()
    with pytest.raises(ValueError):
        SplitSentence().run(frames(handshake, TUPLE_2), out)
    msgs = written(out)[1:]
    assert msgs[0] == {"command": "fail", "id": "2"}
    assert msgs[1]["command"] == "log"
    assert "cannot split" in msgs[1]["msg"]


def test_bolt_manual_direct(handshake):
    out = io.StringIO()
    Echo().run(frames(handshake, TUPLE_1), out)
    assert written(out)[1:] == [
        {"command": "emit", "anchors": ["1"], "task": 5, "tuple": ["a b"]},
        {"command": "ack", "id": "1"},
    ]


def test_spout_loop(handshake, no_sleep):
    out = io.StringIO()
    spout = Counter()
    spout.run(frames(
        handshake,
        {"command": "next"}, [3],
        {"command": "next"}, [3],
        {"command": "next"},
        {"command": "ack", "id": "1"},
        {"command": "fail", "id": "2"},
    ), out)
    assert spout.acked == ["1"] and spout.failed == ["2"]
    msgs = written(out)
    assert msgs[0] == {"pid": os.getpid()}
    assert msgs[1:] == [
        {"command": "emit", "id": "1", "tuple": [1]},
        {"command": "sync"},
        {"command": "emit", "id": "2", "tuple": [2]},
        {"command": "sync"},
        {"command": "sync"},
        {"command": "sync"},
        {"command": "sync"},
    ]
    # the idle third "next" pauses; the ack/fail that follow it inherit its flag
    assert no_sleep == [0.001, 0.001, 0.001]


def test_protocol_errors_are_not_sent_to_host(handshake):
    out = io.StringIO()
    with pytest.raises(TransportFailure):
        Counter().run(frames(handshake, {"command": "next"}), out)
    assert [m for m in written(out) if m.get("command") == "log"] == []


HEARTBEAT = {"id": "-1", "comp": "__system", "stream": "__heartbeat", "task": -1, "tuple": []}


class Recording(BasicBolt):
    def initialize(self, conf, context):
        self.seen = []

    def process(self, record):
        self.seen.append(record.id)


def test_heartbeat_answered_with_sync(handshake):
    out = io.StringIO()
    bolt = Recording()
    bolt.run(frames(handshake, HEARTBEAT, TUPLE_1, HEARTBEAT), out)
    assert bolt.seen == ["1"]
    assert written(out)[1:] == [
        {"command": "sync"},
        {"command": "ack", "id": "1"},
        {"command": "sync"},
    ]


def test_heartbeat_not_passed_to_manual_bolt(handshake):
    out = io.StringIO()
    Echo().run(frames(handshake, HEARTBEAT), out)
    assert written(out)[1:] == [{"command": "sync"}]
