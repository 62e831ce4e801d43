import json

import pytest

from streamy.messages import (
    BitrateRequest, Broadcaster, ChatMessage, JoinRoom, MalformedMessage,
    Reaction, Relay, Watcher, decode, encode,
)


def frame(event, *args):
    return json.dumps({"event": event, "args": list(args)})


def test_decode_join_room():
    msg = decode(frame("join-room", "R1", "viewer"))
    assert msg == JoinRoom(room_id="R1", role="viewer")


def test_decode_watcher_without_args():
    assert isinstance(decode(json.dumps({"event": "watcher"})), Watcher)
    assert isinstance(decode(frame("watcher")), Watcher)


@pytest.mark.parametrize("kind", ["offer", "answer", "candidate"])
def test_decode_relay_keeps_payload_opaque(kind):
    payload = {"type": kind, "sdp": "v=0\r\n...", "nested": [1, None]}
    msg = decode(frame(kind, "peer-1", payload))
    assert isinstance(msg, Relay)
    assert msg.event == kind
    assert msg.target == "peer-1"
    assert msg.payload == payload


def test_decode_room_events():
    assert decode(frame("broadcaster", "R1")) == Broadcaster(room_id="R1")
    assert decode(frame("chat-message", "R1", {"text": "hi"})).payload == {"text": "hi"}
    assert isinstance(decode(frame("chat-message", "R1", "hi")), ChatMessage)
    assert decode(frame("reaction", "R1", "🔥")) == Reaction(room_id="R1", payload="🔥")
    assert decode(frame("bitrate_request", "R1", "low")) == BitrateRequest(room_id="R1", tier="low")


@pytest.mark.parametrize("raw", [
    "not json",
    "[1, 2]",
    frame("nope", "R1"),
    json.dumps({"args": []}),
    json.dumps({"event": "join-room", "args": "R1"}),
    frame("join-room", "R1"),
    frame("join-room", "R1", "admin"),
    frame("join-room", "", "viewer"),
    frame("join-room", 42, "viewer"),
    frame("join-room", "R1", "viewer", "extra"),
    frame("offer", "peer-1"),
    frame("watcher", "someone"),
    frame("disconnect"),
])
def test_decode_rejects_malformed(raw):
    with pytest.raises(MalformedMessage):
        decode(raw)


def test_encode_shape():
    assert json.loads(encode("watcher", "abc")) == {"event": "watcher", "args": ["abc"]}
    assert json.loads(encode("broadcaster")) == {"event": "broadcaster", "args": []}
