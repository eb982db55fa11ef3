"""
Room management routes for RoomQueue.
Handles room creation, joining, state snapshots and ending a room.
"""

import logging
import uuid

from flask import Blueprint, session, request, jsonify, current_app

from roomqueue.models.queue_models import InvalidEvent
from roomqueue.services.room_service import RoomExists, RoomNotFound


logger = logging.getLogger(__name__)

rooms_bp = Blueprint('rooms', __name__)


def remember_identity(data):
    """Store the caller's identity in the Flask session, keeping an existing one"""
    user_id = session.get("user_id") or data.get("user_id") or f"guest_{uuid.uuid4().hex[:12]}"
    session["user_id"] = str(user_id)
    session["display_name"] = data.get("display_name") or session.get("display_name") or "Guest"
    return session["user_id"]


@rooms_bp.route("/health")
def health():
    return jsonify(status="ok")


@rooms_bp.route("/rooms", methods=["POST"])
def create_room():
    """Create a room hosted by the caller"""
    data = request.get_json(silent=True) or {}
    host_id = remember_identity(data)
    room_id = str(data.get("room_id") or uuid.uuid4().hex[:8])

    try:
        room = current_app.room_service.create_room(room_id, host_id, data.get("mode"))
    except InvalidEvent as e:
        return jsonify({"error": str(e)}), 400
    except RoomExists:
        return jsonify({"error": "Room already exists", "room_id": room_id}), 409

    return jsonify(room.to_dict()), 201


@rooms_bp.route("/rooms/<room_id>/join", methods=["POST"])
def join_room(room_id):
    """Join an existing room as a participant"""
    room = current_app.room_service.get_room(room_id)
    if room is None:
        return jsonify({"error": "Room not found"}), 404

    data = request.get_json(silent=True) or {}
    user_id = remember_identity(data)
    logger.info("[ROOM %s] %s joined over HTTP", room_id, user_id)

    return jsonify({
        "user_id": user_id,
        "display_name": session["display_name"],
        "is_host": user_id == room.host_id,
        "room": room.to_dict(),
    })


@rooms_bp.route("/rooms/<room_id>")
def get_room(room_id):
    """Full room state for a reconnecting or newly joined client"""
    room = current_app.room_service.get_room(room_id)
    if room is None:
        return jsonify({"error": "Room not found"}), 404
    return jsonify(room.to_dict())


@rooms_bp.route("/rooms/<room_id>/end", methods=["POST"])
def end_room(room_id):
    """End the room for everyone - Host only"""
    user_id = session.get("user_id")
    if not user_id:
        return jsonify({"error": "Authentication required"}), 401

    try:
        ended = current_app.room_service.end_room(room_id, user_id)
    except RoomNotFound:
        return jsonify({"error": "Room not found"}), 404

    if not ended:
        return jsonify({"error": "Only the host can end the room", "required_role": "host"}), 403

    return jsonify({"status": "success", "room_id": room_id})
