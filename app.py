"""
RoomQueue application entrypoint.
Builds the Flask app, its room service and the Socket.IO transport.
"""

import os
import logging

from flask import Flask

from roomqueue.utils.config import init_app
from roomqueue.utils.cache import RoomStore
from roomqueue.services.channel import SocketIOChannel
from roomqueue.services.room_service import RoomService
from roomqueue.routes.rooms import rooms_bp
from roomqueue.websockets.handlers import init_socketio


logger = logging.getLogger(__name__)


def create_app(config_overrides=None):
    """Create the Flask app and its Socket.IO server"""
    app = Flask(__name__)
    if config_overrides:
        app.config.update(config_overrides)

    app.room_cache = init_app(app)

    socketio = init_socketio(app)
    app.socketio = socketio

    app.room_service = RoomService(
        store=RoomStore(app.room_cache, timeout=app.config["ROOM_STATE_TIMEOUT"]),
        channel=SocketIOChannel(socketio),
        history_limit=app.config["HISTORY_LIMIT"],
        default_mode=app.config["DEFAULT_ROOM_MODE"],
        chat_limit=app.config["CHAT_HISTORY_LIMIT"],
    )

    app.register_blueprint(rooms_bp)

    logger.info("RoomQueue app created")
    return app, socketio


# Run the Flask app
if __name__ == "__main__":
    app, socketio = create_app()
    port = int(os.environ.get("PORT", 5000))
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)
