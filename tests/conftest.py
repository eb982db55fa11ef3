import os
from datetime import datetime, timedelta, timezone

import pytest

# Keep tests away from any real Redis or .env settings
os.environ.pop("REDIS_URL", None)
os.environ.pop("FLASK_ENV", None)
os.environ["SOCKETIO_ASYNC_MODE"] = "threading"

from roomqueue.models.queue_models import QueueEntry, QueueState, RoomState, GovernanceMode


BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entry(track_id, contributor_id="alice", t=0, **kwargs):
    """Build a QueueEntry added t seconds after BASE_TIME"""
    return QueueEntry(
        track_id=track_id,
        contributor_id=contributor_id,
        added_at=BASE_TIME + timedelta(seconds=t),
        **kwargs,
    )


def make_room(queue=(), suggestions=(), mode=GovernanceMode.EQUAL_TURNS, host_id="host", room_id="room1"):
    return RoomState(
        room_id=room_id,
        host_id=host_id,
        mode=mode,
        queue_state=QueueState(list(queue), list(suggestions)),
    )


def ids(sequence):
    return [entry.track_id for entry in sequence]


@pytest.fixture
def app_and_socketio():
    """Create a testing app with in-memory caching"""
    from app import create_app

    app, socketio = create_app({"TESTING": True, "SECRET_KEY": "test-secret"})
    yield app, socketio


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture
def client(app):
    """Create a test client"""
    with app.test_client() as client:
        yield client
