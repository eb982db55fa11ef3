"""
Socket.IO transport for RoomQueue
"""
