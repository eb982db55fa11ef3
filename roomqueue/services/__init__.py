"""
Room services for RoomQueue
"""

from .channel import EventChannel, LocalChannel, SocketIOChannel
from .room_service import RoomService, RoomNotFound, RoomExists, EventResult
from .replica import OptimisticReplica, MutationStatus
