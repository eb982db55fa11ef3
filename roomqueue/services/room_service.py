"""
Authoritative room service for RoomQueue.

Serializes every room's events into one ordered stream, applies them through
the governance engine, keeps the resulting state in the room store and
publishes it on the event channel.
"""

import logging
import threading
import weakref
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from roomqueue.engine.dispatch import apply_event
from roomqueue.models.queue_models import GovernanceMode, RoomState
from roomqueue.models.event_models import ADMIT, AdmitPayload
from roomqueue.models.chat_models import (
    ChatMessage,
    Reaction,
    clean_message_text,
    new_message_id,
    parse_reaction_type,
)
from roomqueue.services.channel import (
    QUEUE_UPDATED,
    MODE_CHANGED,
    SESSION_ENDED,
    EVENT_DENIED,
    CHAT_MESSAGE,
    REACTION,
)


logger = logging.getLogger(__name__)


class RoomNotFound(LookupError):
    """No live room with that id"""


class RoomExists(ValueError):
    """A live room with that id already exists"""


@dataclass(frozen=True)
class EventResult:
    room: RoomState
    outcome: object
    event: object


def utc_now():
    return datetime.now(timezone.utc)


def broadcast_payload(room, event=None, outcome=None):
    """Wire shape of a room update; replicas replace their state with payload['room']"""
    payload = {"room": room.to_dict()}
    if event is not None:
        payload["event_id"] = event.event_id
        payload["kind"] = event.kind
        payload["actor_id"] = event.actor_id
    if outcome is not None:
        payload["applied"] = outcome.applied
        payload["denied"] = outcome.denied
        if outcome.destination is not None:
            payload["destination"] = outcome.destination.value
    return payload


class RoomService:
    def __init__(self, store, channel, history_limit=20, default_mode=GovernanceMode.EQUAL_TURNS,
                 clock=utc_now, chat_limit=50):
        self.store = store
        self.channel = channel
        self.history_limit = history_limit
        self.default_mode = GovernanceMode.parse(default_mode)
        self.clock = clock
        self.chat_limit = chat_limit
        # A room's lock lives only while some caller holds or waits on it
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _allocate_lock(self, room_id):
        with self._locks_guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[room_id] = lock
            return lock

    def _lock_for(self, room_id):
        """Lock of a live room; unknown rooms never get one"""
        if self.get_room(room_id) is None:
            raise RoomNotFound(room_id)
        return self._allocate_lock(room_id)

    def _load_live(self, room_id):
        room = self.store.get_room_state(room_id)
        if room is None or not room.is_live:
            raise RoomNotFound(room_id)
        return room

    def create_room(self, room_id, host_id, mode=None):
        """Open a new room hosted by host_id"""
        mode = GovernanceMode.parse(mode) if mode else self.default_mode

        with self._allocate_lock(room_id):
            existing = self.store.get_room_state(room_id)
            if existing is not None and existing.is_live:
                raise RoomExists(room_id)

            room = RoomState(room_id=room_id, host_id=host_id, mode=mode)
            self.store.save_room_state(room)

        logger.info("[ROOM %s] Created by %s in %s mode", room_id, host_id, mode.value)
        return room

    def get_room(self, room_id):
        room = self.store.get_room_state(room_id)
        if room is None or not room.is_live:
            return None
        return room

    def _stamp_admission(self, event):
        # The authority decides who added the track and when
        entry = replace(
            event.payload.entry,
            contributor_id=event.actor_id,
            added_at=self.clock(),
        )
        return replace(event, payload=AdmitPayload(entry))

    def handle_event(self, room_id, event):
        """Apply one event to a room; events for the same room never interleave"""
        tag = f"[{event.kind.upper()} {event.event_id[:8]}]"

        with self._lock_for(room_id):
            room = self._load_live(room_id)
            logger.info("%s START: room=%s actor=%s version=%s", tag, room_id, event.actor_id, room.version)

            # Stamped under the lock so added_at follows the order events are applied in
            if event.kind == ADMIT:
                event = self._stamp_admission(event)

            next_room, outcome = apply_event(room, event, self.history_limit)

            if outcome.applied:
                self.store.save_room_state(next_room)
                payload = broadcast_payload(next_room, event, outcome)
                self.channel.publish(QUEUE_UPDATED, room_id, payload)
                if outcome.mode is not None:
                    self.channel.publish(
                        MODE_CHANGED, room_id, {"room_id": room_id, "mode": outcome.mode.value}
                    )
                logger.info("%s APPLIED: room=%s version=%s", tag, room_id, next_room.version)
            elif outcome.denied:
                self.channel.publish(EVENT_DENIED, room_id, broadcast_payload(room, event, outcome))
                logger.info("%s DENIED: actor=%s is not the host of %s", tag, event.actor_id, room_id)
            else:
                logger.info("%s NO-OP: room=%s", tag, room_id)

        return EventResult(room=next_room, outcome=outcome, event=event)

    def end_room(self, room_id, actor_id):
        """End a room for everyone; only its host may do this"""
        with self._lock_for(room_id):
            room = self._load_live(room_id)
            if actor_id != room.host_id:
                logger.info("[ROOM %s] End refused for non-host %s", room_id, actor_id)
                return False

            ended = replace(room, is_live=False)
            self.store.delete_room_state(room_id)
            self.store.delete_chat_history(room_id)
            self.channel.publish(SESSION_ENDED, room_id, {"room_id": room_id, "room": ended.to_dict()})

        logger.info("[ROOM %s] Ended by host %s", room_id, actor_id)
        return True

    def post_chat(self, room_id, user_id, display_name, text):
        """Add a chat message to a live room and broadcast it"""
        text = clean_message_text(text)

        with self._lock_for(room_id):
            self._load_live(room_id)
            message = ChatMessage(
                message_id=new_message_id(),
                room_id=room_id,
                user_id=user_id,
                display_name=display_name or "Unknown",
                text=text,
                timestamp=self.clock(),
            )
            self.store.append_chat_message(message, self.chat_limit)
            self.channel.publish(CHAT_MESSAGE, room_id, message.to_dict())

        logger.info("[CHAT %s] %s in room %s", message.message_id[4:12], user_id, room_id)
        return message

    def get_chat_history(self, room_id):
        if self.get_room(room_id) is None:
            raise RoomNotFound(room_id)
        return self.store.get_chat_history(room_id)

    def send_reaction(self, room_id, user_id, reaction_type, track_id=None):
        """Broadcast a reaction to the room; reactions are not stored"""
        reaction_type = parse_reaction_type(reaction_type)
        room = self._load_live(room_id)

        reaction = Reaction(
            room_id=room_id,
            user_id=user_id,
            reaction_type=reaction_type,
            timestamp=self.clock(),
            track_id=track_id or getattr(room.queue_state.now_playing, "track_id", None),
        )
        self.channel.publish(REACTION, room_id, reaction.to_dict())
        return reaction
