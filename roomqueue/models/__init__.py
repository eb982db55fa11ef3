"""
Queue, room and event models for RoomQueue
"""

from .queue_models import (
    InvalidEvent,
    GovernanceMode,
    ModerationState,
    Destination,
    QueueEntry,
    QueueState,
    RoomState,
    UP,
    DOWN,
    parse_vote_direction,
    parse_timestamp,
)
from .event_models import (
    RoomEvent,
    AdmitPayload,
    VotePayload,
    SkipPayload,
    ApprovePayload,
    RejectPayload,
    MovePayload,
    AdvancePayload,
    ChangeModePayload,
    EVENT_KINDS,
    MOVE_UP,
    MOVE_DOWN,
)
from .chat_models import ChatMessage, Reaction, REACTION_TYPES
