"""
Room event envelope for RoomQueue.

A RoomEvent carries the acting participant and one typed payload. The
governance mode and the authority holder come from the room the event is
applied to, never from the client.
"""

import uuid
from dataclasses import dataclass, field

from .queue_models import (
    InvalidEvent,
    GovernanceMode,
    QueueEntry,
    parse_vote_direction,
)


ADMIT = "admit"
VOTE = "vote"
SKIP = "skip"
APPROVE = "approve"
REJECT = "reject"
MOVE = "move"
ADVANCE = "advance"
CHANGE_MODE = "change_mode"

MOVE_UP = "up"
MOVE_DOWN = "down"


@dataclass(frozen=True)
class AdmitPayload:
    entry: QueueEntry

    def to_dict(self):
        return {"entry": self.entry.to_dict()}


@dataclass(frozen=True)
class VotePayload:
    track_id: str
    direction: int

    def to_dict(self):
        return {"track_id": self.track_id, "direction": self.direction}


@dataclass(frozen=True)
class SkipPayload:
    def to_dict(self):
        return {}


@dataclass(frozen=True)
class ApprovePayload:
    track_id: str

    def to_dict(self):
        return {"track_id": self.track_id}


@dataclass(frozen=True)
class RejectPayload:
    track_id: str

    def to_dict(self):
        return {"track_id": self.track_id}


@dataclass(frozen=True)
class MovePayload:
    track_id: str
    direction: str

    def to_dict(self):
        return {"track_id": self.track_id, "direction": self.direction}


@dataclass(frozen=True)
class AdvancePayload:
    def to_dict(self):
        return {}


@dataclass(frozen=True)
class ChangeModePayload:
    mode: GovernanceMode

    def to_dict(self):
        return {"mode": self.mode.value}


def _require_track_id(data):
    track_id = data.get("track_id")
    if not track_id:
        raise InvalidEvent("Missing track_id")
    return str(track_id)


def _parse_move_direction(value):
    if value not in (MOVE_UP, MOVE_DOWN):
        raise InvalidEvent(f"Invalid move direction: {value!r}")
    return value


_PAYLOAD_PARSERS = {
    ADMIT: lambda data: AdmitPayload(QueueEntry.from_dict(data.get("entry"))),
    VOTE: lambda data: VotePayload(_require_track_id(data), parse_vote_direction(data.get("direction"))),
    SKIP: lambda data: SkipPayload(),
    APPROVE: lambda data: ApprovePayload(_require_track_id(data)),
    REJECT: lambda data: RejectPayload(_require_track_id(data)),
    MOVE: lambda data: MovePayload(_require_track_id(data), _parse_move_direction(data.get("direction"))),
    ADVANCE: lambda data: AdvancePayload(),
    CHANGE_MODE: lambda data: ChangeModePayload(GovernanceMode.parse(data.get("mode"))),
}

EVENT_KINDS = tuple(_PAYLOAD_PARSERS)


def new_event_id():
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RoomEvent:
    """One participant action addressed to a room"""

    kind: str
    actor_id: str
    payload: object
    event_id: str = field(default_factory=new_event_id)

    def to_dict(self):
        return {
            "kind": self.kind,
            "actor_id": self.actor_id,
            "payload": self.payload.to_dict(),
            "event_id": self.event_id,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise InvalidEvent("Event must be an object")
        return cls.build(
            data.get("kind"),
            data.get("actor_id"),
            data.get("payload") or {},
            event_id=data.get("event_id"),
        )

    @classmethod
    def build(cls, kind, actor_id, payload_data, event_id=None):
        """Validate raw payload data for an event kind and wrap it in an envelope"""
        parser = _PAYLOAD_PARSERS.get(kind)
        if parser is None:
            raise InvalidEvent(f"Unknown event kind: {kind!r}")
        if not actor_id:
            raise InvalidEvent("Missing actor_id")
        if not isinstance(payload_data, dict):
            raise InvalidEvent("Event payload must be an object")
        return cls(
            kind=kind,
            actor_id=str(actor_id),
            payload=parser(payload_data),
            event_id=str(event_id) if event_id else new_event_id(),
        )
