"""
Wire vocabulary for the signaling socket

Every frame is a JSON object ``{"event": name, "args": [...]}``. Inbound
frames are decoded into one of a closed set of typed messages; anything
that does not fit raises MalformedMessage at the boundary.
"""
import json
from typing import Annotated, Any, Dict, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

# Server -> client event names
EVENT_CONNECTED = "connected"
EVENT_WATCHER = "watcher"
EVENT_BROADCASTER = "broadcaster"
EVENT_DISCONNECT_PEER = "disconnectPeer"
EVENT_CHAT_MESSAGE = "chat-message"
EVENT_CHAT_HISTORY = "chat-history"
EVENT_REACTION = "reaction"
EVENT_BITRATE_REQUEST = "bitrate_request"

RELAY_KINDS = ("offer", "answer", "candidate")


class MalformedMessage(ValueError):
    """Raised when an inbound frame does not match the vocabulary"""


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class JoinRoom(_Message):
    event: Literal["join-room"] = "join-room"
    room_id: str = Field(min_length=1)
    role: Literal["broadcaster", "viewer"]


class Broadcaster(_Message):
    event: Literal["broadcaster"] = "broadcaster"
    room_id: str = Field(min_length=1)


class Watcher(_Message):
    event: Literal["watcher"] = "watcher"


class Relay(_Message):
    """Handshake payload addressed to another session. Payload is opaque."""

    event: Literal["offer", "answer", "candidate"]
    target: str = Field(min_length=1)
    payload: Any


class ChatMessage(_Message):
    event: Literal["chat-message"] = "chat-message"
    room_id: str = Field(min_length=1)
    payload: Any


class Reaction(_Message):
    event: Literal["reaction"] = "reaction"
    room_id: str = Field(min_length=1)
    payload: Any


class BitrateRequest(_Message):
    event: Literal["bitrate_request"] = "bitrate_request"
    room_id: str = Field(min_length=1)
    tier: str


class Disconnect(_Message):
    """Internal: the connection went away. Never decoded from the wire."""

    event: Literal["disconnect"] = "disconnect"


InboundMessage = Annotated[
    Union[JoinRoom, Broadcaster, Watcher, Relay, ChatMessage, Reaction, BitrateRequest],
    Field(discriminator="event"),
]

_inbound = TypeAdapter(InboundMessage)

# Positional argument names per inbound event
ARGUMENTS: Dict[str, Tuple[str, ...]] = {
    "join-room": ("room_id", "role"),
    "broadcaster": ("room_id",),
    "watcher": (),
    "offer": ("target", "payload"),
    "answer": ("target", "payload"),
    "candidate": ("target", "payload"),
    "chat-message": ("room_id", "payload"),
    "reaction": ("room_id", "payload"),
    "bitrate_request": ("room_id", "tier"),
}


def decode(raw: str) -> InboundMessage:
    """Parse one text frame into a typed message"""
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage("frame must be a JSON object")

    event = data.get("event")
    args = data.get("args", [])
    if not isinstance(event, str) or event not in ARGUMENTS:
        raise MalformedMessage(f"unknown event: {event!r}")
    if not isinstance(args, list):
        raise MalformedMessage(f"{event}: args must be a list")

    names = ARGUMENTS[event]
    if len(args) > len(names):
        raise MalformedMessage(
            f"{event}: expected at most {len(names)} args, got {len(args)}"
        )

    fields = dict(zip(names, args))
    fields["event"] = event
    try:
        return _inbound.validate_python(fields)
    except ValidationError as e:
        raise MalformedMessage(f"{event}: {e.error_count()} invalid field(s)") from e


def encode(event: str, *args: Any) -> str:
    """Build an outbound frame"""
    return json.dumps({"event": event, "args": list(args)})
