"""
HTTP routes for RoomQueue
"""
