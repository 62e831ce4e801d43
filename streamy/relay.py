"""
Addressed, fire-and-forget forwarding of handshake payloads
"""
import enum
import logging
from typing import Any

from .messages import encode
from .state import SignalingState

logger = logging.getLogger("streamy")


class RelayResult(enum.Enum):
    DELIVERED = "delivered"
    DROPPED = "dropped"


def relay(state: SignalingState, sender_id: str, kind: str, target_id: str,
          payload: Any) -> RelayResult:
    """Forward ``payload`` to ``target_id`` tagged with the sender's ID.

    The payload is never inspected. An unknown or closed target is a
    silent drop: nothing goes back to the sender and nothing is queued.
    """
    target = state.get(target_id)
    if target is None or not target.deliver(encode(kind, sender_id, payload)):
        logger.debug("Dropped %s from %s: %s not connected", kind, sender_id, target_id)
        return RelayResult.DROPPED
    return RelayResult.DELIVERED
