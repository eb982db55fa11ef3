"""
Configuration and caching utilities for RoomQueue
"""
