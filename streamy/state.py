"""
In-memory state for sessions and rooms

One SignalingState instance lives for the lifetime of the process (or of a
test) and is passed to everything that needs it. It is only touched from
the event loop thread, and membership only from the dispatcher, so it
needs no locking.
"""
import asyncio
import logging
from typing import Dict, List, NamedTuple, Optional, Set

from .history import DEFAULT_HISTORY_LIMIT, ChatHistory
from .utils import generate_session_id

logger = logging.getLogger("streamy")

ROLE_BROADCASTER = "broadcaster"
ROLE_VIEWER = "viewer"


class Session:
    """One active connection.

    Outbound frames are queued on ``outbox`` without blocking; the
    connection's writer task drains the queue onto the socket.
    """

    def __init__(self, session_id: str):
        self.id = session_id
        self.room_id: Optional[str] = None
        self.role: Optional[str] = None
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue()
        self.closed = False

    def deliver(self, frame: str) -> bool:
        """Queue an encoded frame; False if the session is gone"""
        if self.closed:
            return False
        self.outbox.put_nowait(frame)
        return True

    def __repr__(self) -> str:
        return f"<Session {self.id} room={self.room_id} role={self.role}>"


class Room:
    def __init__(self, room_id: str, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.id = room_id
        self.members: Set[str] = set()
        self.history = ChatHistory(history_limit)


class JoinOutcome(NamedTuple):
    room: Room
    newly_joined: bool
    previous_room: Optional[Room]


class SignalingState:
    """Session registry and room directory"""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.history_limit = history_limit
        self.sessions: Dict[str, Session] = {}
        self.rooms: Dict[str, Room] = {}

    # ============================================================
    # SESSIONS
    # ============================================================

    def connect(self, session_id: Optional[str] = None) -> Session:
        """Register a new connection under a fresh (or given) ID"""
        session_id = session_id or generate_session_id()
        while session_id in self.sessions:
            session_id = generate_session_id()
        session = Session(session_id)
        self.sessions[session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def drop(self, session_id: str) -> None:
        """Forget a session entirely. Call leave() first."""
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.closed = True

    # ============================================================
    # ROOMS
    # ============================================================

    def room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def current_room(self, session_id: str) -> Optional[str]:
        session = self.sessions.get(session_id)
        return session.room_id if session else None

    def join(self, session_id: str, room_id: str, role: str) -> JoinOutcome:
        """Put a session in a room, creating the room on first use.

        A session is a member of at most one room; joining another room
        moves it (last join wins). Joining the room it is already in only
        refreshes its role.
        """
        session = self.sessions[session_id]
        previous = None
        if session.room_id is not None and session.room_id != room_id:
            previous = self.leave(session_id)

        room = self.rooms.get(room_id)
        if room is None:
            room = Room(room_id, self.history_limit)
            self.rooms[room_id] = room
            logger.info("🎪 Room created: %s", room_id)

        newly_joined = session_id not in room.members
        room.members.add(session_id)
        session.room_id = room_id
        session.role = role
        return JoinOutcome(room, newly_joined, previous)

    def leave(self, session_id: str) -> Optional[Room]:
        """Remove a session from its room. Rooms are kept even when empty."""
        session = self.sessions.get(session_id)
        if session is None or session.room_id is None:
            return None
        room = self.rooms.get(session.room_id)
        session.room_id = None
        session.role = None
        if room is not None:
            room.members.discard(session_id)
        return room

    def members(self, room_id: str) -> List[Session]:
        room = self.rooms.get(room_id)
        if room is None:
            return []
        return [self.sessions[sid] for sid in room.members if sid in self.sessions]

    def peers(self, session_id: str, room_id: str) -> List[Session]:
        """Members of ``room_id`` other than ``session_id``"""
        return [s for s in self.members(room_id) if s.id != session_id]
