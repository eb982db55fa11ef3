"""
Event channel for RoomQueue.

Publish/subscribe fan-out of room updates. The room service is handed a
channel instead of reaching for a global socket; the governance engine never
sees one.
"""

import logging
import threading
from collections import defaultdict


logger = logging.getLogger(__name__)

QUEUE_UPDATED = "queue_updated"
MODE_CHANGED = "mode_changed"
SESSION_ENDED = "session_ended"
EVENT_DENIED = "event_denied"
CHAT_MESSAGE = "chat_message"
REACTION = "reaction"

TOPICS = (QUEUE_UPDATED, MODE_CHANGED, SESSION_ENDED, EVENT_DENIED, CHAT_MESSAGE, REACTION)


class EventChannel:
    """In-process subscribers keyed by topic"""

    def __init__(self):
        self._subscribers = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic, handler):
        """Register handler(room_id, payload) for topic; returns an unsubscribe callable"""
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic!r}")

        with self._lock:
            self._subscribers[topic].append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._subscribers[topic]:
                    self._subscribers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic, room_id, payload):
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic!r}")
        self._deliver(topic, room_id, payload)

    def _deliver(self, topic, room_id, payload):
        with self._lock:
            handlers = list(self._subscribers[topic])

        for handler in handlers:
            try:
                handler(room_id, payload)
            except Exception:
                # One broken subscriber must not starve the rest
                logger.exception("Subscriber for %s failed in room %s", topic, room_id)


class LocalChannel(EventChannel):
    """Channel that only delivers to in-process subscribers"""


class SocketIOChannel(EventChannel):
    """Channel that broadcasts to the Socket.IO room named after room_id"""

    def __init__(self, socketio):
        super().__init__()
        self.socketio = socketio

    def publish(self, topic, room_id, payload):
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic!r}")

        # Denials go back to the acting socket only, by the handler
        if topic != EVENT_DENIED:
            self.socketio.emit(topic, payload, to=room_id)
        self._deliver(topic, room_id, payload)
