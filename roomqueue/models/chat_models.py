"""
Chat and reaction models for RoomQueue.
"""

import uuid
from dataclasses import dataclass

from .queue_models import InvalidEvent, parse_timestamp


MESSAGE = "message"
SYSTEM = "system"

MESSAGE_TYPES = (MESSAGE, SYSTEM)
REACTION_TYPES = ("fire", "vibe", "skip")

MAX_MESSAGE_LENGTH = 500


def new_message_id():
    return f"msg_{uuid.uuid4().hex[:12]}"


def clean_message_text(text):
    """Strip a chat message and reject empty or oversized ones"""
    if not isinstance(text, str) or not text.strip():
        raise InvalidEvent("Message cannot be empty")
    text = text.strip()
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidEvent(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")
    return text


def parse_reaction_type(value):
    if value not in REACTION_TYPES:
        raise InvalidEvent(f"Unknown reaction: {value!r}")
    return value


@dataclass(frozen=True)
class ChatMessage:
    message_id: str
    room_id: str
    user_id: str
    display_name: str
    text: str
    timestamp: object
    message_type: str = MESSAGE

    def to_dict(self):
        return {
            "message_id": self.message_id,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "type": self.message_type,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or not data.get("message_id") or not data.get("room_id"):
            raise InvalidEvent("Chat message needs message_id and room_id")
        message_type = data.get("type") or MESSAGE
        if message_type not in MESSAGE_TYPES:
            raise InvalidEvent(f"Unknown message type: {message_type!r}")
        return cls(
            message_id=str(data["message_id"]),
            room_id=str(data["room_id"]),
            user_id=str(data.get("user_id") or ""),
            display_name=data.get("display_name") or "Unknown",
            text=clean_message_text(data.get("text")),
            timestamp=parse_timestamp(data.get("timestamp")),
            message_type=message_type,
        )

    def __repr__(self):
        return f"<ChatMessage {self.message_id} from {self.display_name}>"


@dataclass(frozen=True)
class Reaction:
    """A short-lived reaction to the track playing now; never stored"""

    room_id: str
    user_id: str
    reaction_type: str
    timestamp: object
    track_id: str = None

    def to_dict(self):
        return {
            "room_id": self.room_id,
            "user_id": self.user_id,
            "track_id": self.track_id,
            "type": self.reaction_type,
            "timestamp": self.timestamp.isoformat(),
        }
