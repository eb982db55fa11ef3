"""
Room state caching helpers for RoomQueue.
Holds the live state and recent chat of every room in the app cache (Redis or in-memory).
"""

import json
import logging

from redis import RedisError

from roomqueue.models.queue_models import RoomState, InvalidEvent
from roomqueue.models.chat_models import ChatMessage


logger = logging.getLogger(__name__)

ROOM_KEY_PREFIX = "room_state:"
CHAT_KEY_PREFIX = "room_chat:"


def room_key(room_id):
    return f"{ROOM_KEY_PREFIX}{room_id}"


def chat_key(room_id):
    return f"{CHAT_KEY_PREFIX}{room_id}"


class RoomStore:
    """JSON room snapshots on top of a RoomCache"""

    def __init__(self, cache, timeout=None):
        self.cache = cache
        self.timeout = timeout

    def get_room_state(self, room_id):
        """Get a room from cache, or None when missing or unreadable"""
        try:
            cached_data = self.cache.get(room_key(room_id))
        except RedisError as e:
            logger.error("Room cache read failed for %s: %s", room_id, e)
            return None

        if not cached_data:
            return None

        try:
            if isinstance(cached_data, (str, bytes)):
                cached_data = json.loads(cached_data)
            return RoomState.from_dict(cached_data)
        except (ValueError, InvalidEvent) as e:
            logger.error("Discarding unreadable room snapshot for %s: %s", room_id, e)
            return None

    def save_room_state(self, room):
        """Cache a room snapshot; returns False when the write failed"""
        try:
            self.cache.set(room_key(room.room_id), json.dumps(room.to_dict()), timeout=self.timeout)
            logger.debug("Cached room %s at version %s", room.room_id, room.version)
            return True
        except RedisError as e:
            logger.error("Failed to cache room %s: %s", room.room_id, e)
            return False

    def delete_room_state(self, room_id):
        """Remove a room snapshot from cache"""
        try:
            self.cache.delete(room_key(room_id))
            logger.info("Cleared room %s from cache", room_id)
            return True
        except RedisError as e:
            logger.error("Failed to clear room %s from cache: %s", room_id, e)
            return False

    def get_chat_history(self, room_id):
        """Recent chat messages of a room, oldest first"""
        try:
            cached_data = self.cache.get(chat_key(room_id))
        except RedisError as e:
            logger.error("Chat cache read failed for %s: %s", room_id, e)
            return []

        if not cached_data:
            return []

        try:
            if isinstance(cached_data, (str, bytes)):
                cached_data = json.loads(cached_data)
            return [ChatMessage.from_dict(item) for item in cached_data]
        except (ValueError, TypeError, InvalidEvent) as e:
            logger.error("Discarding unreadable chat history for %s: %s", room_id, e)
            return []

    def append_chat_message(self, message, limit):
        """Add a message to a room's chat, keeping only the last limit messages"""
        history = self.get_chat_history(message.room_id) + [message]
        history = history[-limit:] if limit else history
        try:
            self.cache.set(
                chat_key(message.room_id),
                json.dumps([item.to_dict() for item in history]),
                timeout=self.timeout,
            )
        except RedisError as e:
            logger.error("Failed to cache chat for room %s: %s", message.room_id, e)
        return history

    def delete_chat_history(self, room_id):
        try:
            self.cache.delete(chat_key(room_id))
            return True
        except RedisError as e:
            logger.error("Failed to clear chat for room %s: %s", room_id, e)
            return False
