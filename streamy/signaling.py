"""
Signaling dispatch: discovery, chat history, room fan-out

All inbound messages from every connection go through one Dispatcher
inbox and are handled to completion, one at a time, by a single task.
Handlers never await; delivery to peers only queues frames on their
outboxes.
"""
import asyncio
import contextlib
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from .messages import (
    EVENT_BITRATE_REQUEST, EVENT_BROADCASTER, EVENT_CHAT_HISTORY,
    EVENT_CHAT_MESSAGE, EVENT_DISCONNECT_PEER, EVENT_REACTION, EVENT_WATCHER,
    BitrateRequest, Broadcaster, ChatMessage, Disconnect, JoinRoom, Reaction,
    Relay, Watcher, encode,
)
from .relay import RelayResult, relay
from .state import ROLE_VIEWER, Room, Session, SignalingState

logger = logging.getLogger("streamy")


def fan_out(sessions: Iterable[Session], event: str, *args: Any) -> int:
    """Send one frame to each session, returning how many accepted it"""
    frame = encode(event, *args)
    return sum(1 for s in sessions if s.deliver(frame))


def _in_room(session: Session, room_id: str) -> bool:
    if session.room_id != room_id:
        logger.debug(
            "Ignoring message from %s for room %s (member of %s)",
            session.id, room_id, session.room_id,
        )
        return False
    return True


def _leave_room(state: SignalingState, session: Session) -> Optional[Room]:
    # Peers must be resolved while the session is still a member
    room_id = session.room_id
    if room_id is None:
        return None
    notified = fan_out(state.peers(session.id, room_id), EVENT_DISCONNECT_PEER, session.id)
    room = state.leave(session.id)
    logger.info("👋 %s left %s (%d peers notified)", session.id, room_id, notified)
    return room


# ============================================================
# DISCOVERY
# ============================================================

def announce_watcher(state: SignalingState, session: Session) -> int:
    """Tell the rest of the session's room that it wants a stream"""
    room_id = session.room_id
    if room_id is None:
        logger.debug("Watcher request from %s outside any room", session.id)
        return 0
    return fan_out(state.peers(session.id, room_id), EVENT_WATCHER, session.id)


def handle_join(state: SignalingState, session: Session, msg: JoinRoom) -> None:
    if session.room_id is not None and session.room_id != msg.room_id:
        _leave_room(state, session)

    outcome = state.join(session.id, msg.room_id, msg.role)
    logger.info(
        "✅ %s joined %s as %s (%d members)",
        session.id, msg.room_id, msg.role, len(outcome.room.members),
    )

    # Replay goes to the joiner only, before anything else reaches it
    if outcome.newly_joined and outcome.room.history:
        session.deliver(encode(EVENT_CHAT_HISTORY, outcome.room.history.snapshot()))

    if msg.role == ROLE_VIEWER:
        announce_watcher(state, session)


def handle_broadcaster(state: SignalingState, session: Session, msg: Broadcaster) -> None:
    if not _in_room(session, msg.room_id):
        return
    count = fan_out(state.peers(session.id, msg.room_id), EVENT_BROADCASTER)
    logger.info("📢 Broadcaster %s announced in %s (%d listening)", session.id, msg.room_id, count)


def handle_watcher(state: SignalingState, session: Session, msg: Watcher) -> None:
    announce_watcher(state, session)


def handle_relay(state: SignalingState, session: Session, msg: Relay) -> RelayResult:
    return relay(state, session.id, msg.event, msg.target, msg.payload)


# ============================================================
# CHAT & ROOM EVENTS
# ============================================================

def handle_chat(state: SignalingState, session: Session, msg: ChatMessage) -> None:
    if not _in_room(session, msg.room_id):
        return
    room = state.room(msg.room_id)
    room.history.append(msg.payload)
    # The sender gets its own message back too
    fan_out(state.members(msg.room_id), EVENT_CHAT_MESSAGE, msg.payload)


def handle_reaction(state: SignalingState, session: Session, msg: Reaction) -> None:
    if not _in_room(session, msg.room_id):
        return
    fan_out(state.members(msg.room_id), EVENT_REACTION, msg.payload)


def handle_bitrate(state: SignalingState, session: Session, msg: BitrateRequest) -> None:
    if not _in_room(session, msg.room_id):
        return
    fan_out(state.peers(session.id, msg.room_id), EVENT_BITRATE_REQUEST, session.id, msg.tier)


def handle_disconnect(state: SignalingState, session: Session, msg: Disconnect) -> None:
    _leave_room(state, session)
    state.drop(session.id)
    logger.info("🔌 Session closed: %s (%d connected)", session.id, len(state.sessions))


HANDLERS: Dict[type, Callable] = {
    JoinRoom: handle_join,
    Broadcaster: handle_broadcaster,
    Watcher: handle_watcher,
    Relay: handle_relay,
    ChatMessage: handle_chat,
    Reaction: handle_reaction,
    BitrateRequest: handle_bitrate,
    Disconnect: handle_disconnect,
}


class Dispatcher:
    """Single consumer of every connection's inbound messages"""

    def __init__(self, state: SignalingState):
        self.state = state
        self.inbox: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def submit(self, session: Session, message) -> None:
        self.inbox.put_nowait((session, message))

    def dispatch(self, session: Session, message):
        """Run the handler for one message synchronously"""
        if session.closed:
            logger.debug("Discarding %s from closed session %s", message.event, session.id)
            return None
        return HANDLERS[type(message)](self.state, session, message)

    async def run(self) -> None:
        while True:
            session, message = await self.inbox.get()
            try:
                self.dispatch(session, message)
            except Exception:
                logger.exception("Handler for %s from %s failed", message.event, session.id)
            finally:
                self.inbox.task_done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
