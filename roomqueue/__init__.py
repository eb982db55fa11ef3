"""
RoomQueue - shared, mode-governed playback queues for listening rooms.
"""

__version__ = "0.1.0"
