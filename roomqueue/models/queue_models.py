"""
Queue entry and room state models for RoomQueue.

Plain value objects shared by the governance engine, the room service and
optimistic client replicas. Every model converts to and from JSON-compatible
dicts so the same shapes travel over Socket.IO and into the room cache.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


class InvalidEvent(ValueError):
    """Raised when an incoming payload cannot be turned into a model"""


class GovernanceMode(Enum):
    EQUAL_TURNS = "equal_turns"
    CURATED = "curated"
    DEMOCRATIC = "democratic"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidEvent(f"Unknown governance mode: {value!r}") from None


class ModerationState(Enum):
    UNSPECIFIED = "unspecified"
    PENDING = "pending"
    APPROVED = "approved"


class Destination(Enum):
    QUEUE = "queue"
    SUGGESTIONS = "suggestions"


UP = 1
DOWN = -1


def parse_vote_direction(value):
    """Accept 1/-1 or 'up'/'down' and return 1 or -1"""
    if not isinstance(value, bool):
        if value in ("up", UP):
            return UP
        if value in ("down", DOWN):
            return DOWN
    raise InvalidEvent(f"Invalid vote direction: {value!r}")


def parse_timestamp(value):
    """Parse an ISO-8601 string or epoch seconds into an aware UTC datetime"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidEvent(f"Invalid timestamp: {value!r}") from None
    else:
        raise InvalidEvent(f"Invalid timestamp: {value!r}")

    # Naive timestamps are treated as UTC so every added_at stays comparable
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class QueueEntry:
    """A track once it has entered a room queue or the suggestion holding area"""

    track_id: str
    contributor_id: str
    added_at: datetime
    title: str = ""
    artist: str = ""
    duration: int = 0
    vote_tally: int = 0
    vote_registry: dict = field(default_factory=dict)
    moderation_state: ModerationState = ModerationState.UNSPECIFIED

    def with_votes(self, vote_tally, vote_registry):
        return replace(self, vote_tally=vote_tally, vote_registry=vote_registry)

    def with_moderation(self, moderation_state):
        return replace(self, moderation_state=moderation_state)

    def to_dict(self):
        return {
            "track_id": self.track_id,
            "contributor_id": self.contributor_id,
            "added_at": self.added_at.isoformat(),
            "title": self.title,
            "artist": self.artist,
            "duration": self.duration,
            "vote_tally": self.vote_tally,
            "vote_registry": dict(self.vote_registry),
            "moderation_state": self.moderation_state.value,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise InvalidEvent("Track entry must be an object")

        track_id = data.get("track_id")
        contributor_id = data.get("contributor_id")
        if not track_id:
            raise InvalidEvent("Missing track_id")
        if not contributor_id:
            raise InvalidEvent("Missing contributor_id")

        added_at = parse_timestamp(data.get("added_at"))
        if added_at is None:
            raise InvalidEvent("Missing added_at")

        registry = {
            str(voter): parse_vote_direction(direction)
            for voter, direction in (data.get("vote_registry") or {}).items()
        }

        try:
            moderation_state = ModerationState(data.get("moderation_state") or "unspecified")
        except ValueError:
            raise InvalidEvent(f"Invalid moderation_state: {data.get('moderation_state')!r}") from None

        return cls(
            track_id=str(track_id),
            contributor_id=str(contributor_id),
            added_at=added_at,
            title=(data.get("title") or "").strip(),
            artist=(data.get("artist") or "").strip(),
            duration=int(data.get("duration") or 0),
            # The tally is derived from the registry so the two can never disagree
            vote_tally=sum(registry.values()),
            vote_registry=registry,
            moderation_state=moderation_state,
        )


@dataclass(frozen=True)
class QueueState:
    """The main queue plus the suggestion holding area"""

    queue: list = field(default_factory=list)
    suggestions: list = field(default_factory=list)

    @property
    def now_playing(self):
        return self.queue[0] if self.queue else None

    def to_dict(self):
        return {
            "queue": [entry.to_dict() for entry in self.queue],
            "suggestions": [entry.to_dict() for entry in self.suggestions],
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            queue=[QueueEntry.from_dict(item) for item in data.get("queue") or []],
            suggestions=[QueueEntry.from_dict(item) for item in data.get("suggestions") or []],
        )


@dataclass(frozen=True)
class RoomState:
    """Authoritative record for one listening room"""

    room_id: str
    host_id: str
    mode: GovernanceMode = GovernanceMode.EQUAL_TURNS
    queue_state: QueueState = field(default_factory=QueueState)
    version: int = 0
    history: list = field(default_factory=list)
    is_live: bool = True

    def to_dict(self):
        return {
            "room_id": self.room_id,
            "host_id": self.host_id,
            "mode": self.mode.value,
            "queue": [entry.to_dict() for entry in self.queue_state.queue],
            "suggestions": [entry.to_dict() for entry in self.queue_state.suggestions],
            "version": self.version,
            "history": [entry.to_dict() for entry in self.history],
            "is_live": self.is_live,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or not data.get("room_id") or not data.get("host_id"):
            raise InvalidEvent("Room state needs room_id and host_id")
        return cls(
            room_id=str(data["room_id"]),
            host_id=str(data["host_id"]),
            mode=GovernanceMode.parse(data.get("mode") or GovernanceMode.EQUAL_TURNS.value),
            queue_state=QueueState.from_dict(data),
            version=int(data.get("version") or 0),
            history=[QueueEntry.from_dict(item) for item in data.get("history") or []],
            is_live=bool(data.get("is_live", True)),
        )
