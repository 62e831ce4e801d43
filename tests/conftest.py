import json

import pytest

from streamy.state import SignalingState


@pytest.fixture
def state():
    return SignalingState()


def drain(session):
    """Pop every queued frame off a session as (event, args) pairs"""
    frames = []
    while not session.outbox.empty():
        frame = json.loads(session.outbox.get_nowait())
        frames.append((frame["event"], frame["args"]))
    return frames
