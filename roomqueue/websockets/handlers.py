"""
Socket.IO event handlers for RoomQueue.
Turns client messages into room events and sends room state back out.
"""

import logging
import uuid
from datetime import datetime, timezone

from flask import session, request, current_app
from flask_socketio import SocketIO, emit, join_room, leave_room, rooms

from roomqueue.models.queue_models import InvalidEvent
from roomqueue.models.event_models import (
    RoomEvent,
    ADMIT,
    VOTE,
    SKIP,
    APPROVE,
    REJECT,
    MOVE,
    ADVANCE,
    CHANGE_MODE,
)
from roomqueue.services.room_service import RoomNotFound, broadcast_payload


logger = logging.getLogger(__name__)

# SocketIO instance will be set by init_socketio
socketio = None

DENIAL_MESSAGES = {
    SKIP: "Host only: only the host can skip tracks in curated rooms",
    APPROVE: "Host only: only the host can approve suggestions",
    REJECT: "Host only: only the host can reject suggestions",
    CHANGE_MODE: "Host only: only the host can change the room mode",
}


def init_socketio(app):
    """Initialize Socket.IO with the Flask app"""
    global socketio
    socketio = SocketIO(
        app,
        cors_allowed_origins=app.config.get("CORS_ALLOWED_ORIGINS", "*"),
        ping_timeout=120,
        ping_interval=30,
        max_http_buffer_size=16384,
        manage_session=False,  # Let Flask handle sessions
        logger=False,
        engineio_logger=False,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading"),
    )

    register_handlers(socketio)

    return socketio


def current_user():
    """Identity of the connected participant from the Flask session"""
    return session.get("user_id"), session.get("display_name", "Unknown")


def build_entry_data(track, user_id):
    """Fill in the fields a client may leave out when adding a track"""
    if not isinstance(track, dict):
        raise InvalidEvent("Missing track information")

    entry = dict(track)
    entry["track_id"] = entry.get("track_id") or uuid.uuid4().hex
    entry["contributor_id"] = user_id
    entry["added_at"] = entry.get("added_at") or datetime.now(timezone.utc).isoformat()
    entry.pop("vote_registry", None)
    entry.pop("vote_tally", None)
    entry.pop("moderation_state", None)
    return entry


def require_room_id(data):
    room_id = data.get("room_id")
    if not room_id:
        raise InvalidEvent("Missing room_id")
    return str(room_id)


def submit_event(kind, data, payload_builder):
    """Validate, apply and acknowledge one room event for the calling socket"""
    user_id, _ = current_user()
    if not user_id:
        emit("error", {"message": "You must join a room first"})
        return

    if not isinstance(data, dict):
        emit("error", {"message": "Invalid request"})
        return

    event_id = data.get("event_id")
    try:
        room_id = require_room_id(data)
        event = RoomEvent.build(kind, user_id, payload_builder(data, user_id), event_id=event_id)
        result = current_app.room_service.handle_event(room_id, event)

    except InvalidEvent as e:
        emit("error", {"message": str(e), "event_id": event_id})
        return
    except RoomNotFound:
        emit("error", {"message": "Room not found", "event_id": event_id})
        return
    except Exception:
        logger.exception("[%s] ERROR while handling event %s", kind.upper(), event_id)
        emit("error", {"message": f"Failed to process {kind}", "event_id": event_id})
        return

    if result.outcome.denied:
        emit("action_denied", {
            "message": DENIAL_MESSAGES.get(kind, "Host only"),
            "kind": kind,
            "event_id": result.event.event_id,
        })

    # Acknowledge to the sender so its replica can confirm or revert the prediction
    emit("event_result", broadcast_payload(result.room, result.event, result.outcome))


def register_handlers(socketio):
    """Register all Socket.IO event handlers"""

    @socketio.on("connect")
    def handle_connect(auth=None):
        """Handle client connection"""
        user_id, display_name = current_user()
        if not user_id:
            emit("error", {"message": "Authentication required"})
            return

        logger.info("[CONNECTION] %s connected (user_id: %s, sid: %s)", display_name, user_id, request.sid)
        emit("connected", {"user_id": user_id, "message": "Connected successfully"})

    @socketio.on("disconnect")
    def handle_disconnect(reason=None):
        """Handle client disconnection"""
        user_id, display_name = current_user()
        for room_id in rooms():
            if room_id != request.sid:
                emit("participant_left", {"user_id": user_id}, to=room_id, include_self=False)
        logger.info("[DISCONNECTION] %s disconnected (user_id: %s, sid: %s, reason: %s)",
                    display_name, user_id, request.sid, reason)

    @socketio.on_error_default
    def default_error_handler(e):
        """Default error handler for all events"""
        logger.error("[SOCKET ERROR] %s on event %s", e, request.event)
        return False

    @socketio.on("join_room")
    def handle_join_room(data):
        """Subscribe the socket to a room and send it the full room state"""
        user_id, display_name = current_user()
        if not user_id:
            emit("error", {"message": "You must join a room first"})
            return

        if not isinstance(data, dict):
            emit("error", {"message": "Invalid request"})
            return

        try:
            room_id = require_room_id(data)
        except InvalidEvent as e:
            emit("error", {"message": str(e)})
            return

        room = current_app.room_service.get_room(room_id)
        if room is None:
            emit("error", {"message": "Room not found"})
            return

        join_room(room_id)
        emit("room_state", room.to_dict())
        emit("participant_joined", {"user_id": user_id, "display_name": display_name},
             to=room_id, include_self=False)
        logger.info("[ROOM %s] %s joined (sid: %s)", room_id, display_name, request.sid)

    @socketio.on("leave_room")
    def handle_leave_room(data):
        """Unsubscribe the socket from a room"""
        user_id, display_name = current_user()
        room_id = data.get("room_id") if isinstance(data, dict) else None
        if not room_id:
            emit("error", {"message": "Missing room_id"})
            return

        leave_room(room_id)
        emit("participant_left", {"user_id": user_id}, to=room_id)
        logger.info("[ROOM %s] %s left (sid: %s)", room_id, display_name, request.sid)

    @socketio.on("queue_add")
    def handle_queue_add(data):
        """Add a track; the room's mode decides whether it lands in the queue or suggestions"""
        submit_event(ADMIT, data, lambda d, user_id: {"entry": build_entry_data(d.get("track"), user_id)})

    @socketio.on("vote")
    def handle_vote(data):
        """Toggle the caller's vote on a queued track"""
        submit_event(VOTE, data, lambda d, user_id: {"track_id": d.get("track_id"), "direction": d.get("direction")})

    @socketio.on("skip")
    def handle_skip(data):
        """Skip the now-playing track"""
        submit_event(SKIP, data, lambda d, user_id: {})

    @socketio.on("track_ended")
    def handle_track_ended(data):
        """Playback finished the current track; advance the queue"""
        submit_event(ADVANCE, data, lambda d, user_id: {})

    @socketio.on("approve")
    def handle_approve(data):
        """Host approves a pending suggestion"""
        submit_event(APPROVE, data, lambda d, user_id: {"track_id": d.get("track_id")})

    @socketio.on("reject")
    def handle_reject(data):
        """Host rejects a pending suggestion"""
        submit_event(REJECT, data, lambda d, user_id: {"track_id": d.get("track_id")})

    @socketio.on("move")
    def handle_move(data):
        """Move a queued track one step up or down"""
        submit_event(MOVE, data, lambda d, user_id: {"track_id": d.get("track_id"), "direction": d.get("direction")})

    @socketio.on("change_mode")
    def handle_change_mode(data):
        """Host switches the room's governance mode"""
        submit_event(CHANGE_MODE, data, lambda d, user_id: {"mode": d.get("mode")})

    @socketio.on("end_session")
    def handle_end_session(data):
        """Host ends the room for everyone"""
        user_id, _ = current_user()
        if not user_id:
            emit("error", {"message": "You must join a room first"})
            return

        room_id = data.get("room_id") if isinstance(data, dict) else None
        if not room_id:
            emit("error", {"message": "Missing room_id"})
            return

        try:
            ended = current_app.room_service.end_room(room_id, user_id)
        except RoomNotFound:
            emit("error", {"message": "Room not found"})
            return

        if not ended:
            emit("action_denied", {"message": "Host only: only the host can end the room", "kind": "end_session"})

    @socketio.on("chat_message")
    def handle_chat_message(data):
        """Handle chat messages - Available to everyone in the room"""
        user_id, display_name = current_user()
        if not user_id:
            emit("error", {"message": "You must join a room first"})
            return

        if not isinstance(data, dict):
            emit("error", {"message": "Invalid request"})
            return

        try:
            room_id = require_room_id(data)
            current_app.room_service.post_chat(room_id, user_id, display_name, data.get("message"))
        except InvalidEvent as e:
            emit("error", {"message": str(e)})
        except RoomNotFound:
            emit("error", {"message": "Room not found"})
        except Exception:
            logger.exception("[CHAT] ERROR while sending message from %s", user_id)
            emit("error", {"message": "Failed to send message"})

    @socketio.on("load_chat_history")
    def handle_load_chat_history(data):
        """Send recent chat messages of a room to the caller"""
        room_id = data.get("room_id") if isinstance(data, dict) else None
        if not room_id:
            emit("error", {"message": "Missing room_id"})
            return

        try:
            messages = current_app.room_service.get_chat_history(room_id)
        except RoomNotFound:
            emit("error", {"message": "Room not found"})
            return

        emit("chat_history", {"room_id": room_id, "messages": [message.to_dict() for message in messages]})

    @socketio.on("reaction")
    def handle_reaction(data):
        """React to the track playing now"""
        user_id, _ = current_user()
        if not user_id:
            emit("error", {"message": "You must join a room first"})
            return

        if not isinstance(data, dict):
            emit("error", {"message": "Invalid request"})
            return

        try:
            room_id = require_room_id(data)
            current_app.room_service.send_reaction(room_id, user_id, data.get("type"), data.get("track_id"))
        except InvalidEvent as e:
            emit("error", {"message": str(e)})
        except RoomNotFound:
            emit("error", {"message": "Room not found"})
