import itertools
import random

from streamy.state import ROLE_BROADCASTER, ROLE_VIEWER, SignalingState


def test_connect_assigns_unique_ids(state):
    ids = {state.connect().id for _ in range(100)}
    assert len(ids) == 100
    assert set(state.sessions) == ids


def test_connect_never_reuses_a_live_id(state):
    first = state.connect("abc")
    second = state.connect("abc")
    assert second.id != first.id


def test_join_creates_room_and_records_role(state):
    session = state.connect()
    outcome = state.join(session.id, "R1", ROLE_VIEWER)
    assert outcome.newly_joined
    assert outcome.previous_room is None
    assert state.room("R1").members == {session.id}
    assert state.current_room(session.id) == "R1"
    assert session.role == ROLE_VIEWER


def test_join_same_room_twice_is_idempotent(state):
    session = state.connect()
    state.join(session.id, "R1", ROLE_VIEWER)
    outcome = state.join(session.id, "R1", ROLE_BROADCASTER)
    assert not outcome.newly_joined
    assert len(state.room("R1").members) == 1
    assert session.role == ROLE_BROADCASTER


def test_join_other_room_moves_session(state):
    session = state.connect()
    state.join(session.id, "R1", ROLE_VIEWER)
    outcome = state.join(session.id, "R2", ROLE_VIEWER)
    assert outcome.previous_room is state.room("R1")
    assert state.room("R1").members == set()
    assert state.room("R2").members == {session.id}


def test_leave_keeps_empty_room(state):
    session = state.connect()
    state.join(session.id, "R1", ROLE_VIEWER)
    room = state.leave(session.id)
    assert room is state.room("R1")
    assert room.members == set()
    assert state.current_room(session.id) is None
    assert state.leave(session.id) is None


def test_current_room_unknown_session(state):
    assert state.current_room("nobody") is None


def test_peers_excludes_self(state):
    a, b, c = (state.connect() for _ in range(3))
    for s in (a, b, c):
        state.join(s.id, "R1", ROLE_VIEWER)
    assert {s.id for s in state.peers(a.id, "R1")} == {b.id, c.id}
    assert state.peers(a.id, "nowhere") == []


def test_drop_closes_session(state):
    session = state.connect()
    state.drop(session.id)
    assert state.get(session.id) is None
    assert session.closed
    assert not session.deliver("frame")


def test_each_session_in_at_most_one_room():
    rng = random.Random(7)
    state = SignalingState()
    sessions = [state.connect() for _ in range(5)]
    rooms = ["A", "B", "C"]
    for _ in range(300):
        session = rng.choice(sessions)
        if rng.random() < 0.7:
            state.join(session.id, rng.choice(rooms), ROLE_VIEWER)
        else:
            state.leave(session.id)
        for a, b in itertools.combinations(state.rooms.values(), 2):
            assert not (a.members & b.members)
        for s in sessions:
            holding = [r.id for r in state.rooms.values() if s.id in r.members]
            assert holding == ([s.room_id] if s.room_id else [])


def test_independent_registries():
    one, two = SignalingState(), SignalingState()
    session = one.connect()
    one.join(session.id, "R1", ROLE_VIEWER)
    assert two.room("R1") is None
    assert two.get(session.id) is None
