"""
Optimistic client replica for RoomQueue.

Runs the same governance engine against locally issued events for instant
feedback. Every local mutation is tracked as PREDICTED until the
authoritative room state comes back, which replaces the local base state
wholesale. A mutation the authority applied becomes CONFIRMED, one it did
not apply becomes REVERTED; mutations still in flight are replayed on top of
the new base, so nothing is ever applied twice and nothing needs undoing.
"""

import logging
from enum import Enum

from roomqueue.engine.dispatch import apply_event
from roomqueue.models.queue_models import RoomState


logger = logging.getLogger(__name__)


class MutationStatus(Enum):
    PREDICTED = "predicted"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


class OptimisticReplica:
    def __init__(self, room, history_limit=None):
        self.history_limit = history_limit
        self._base = room
        self._view = room
        self._pending = []
        self._statuses = {}

    @property
    def base(self):
        """Last authoritative room state"""
        return self._base

    @property
    def view(self):
        """Authoritative state with in-flight predictions applied"""
        return self._view

    @property
    def pending(self):
        return [event.event_id for event in self._pending]

    def status(self, event_id):
        return self._statuses.get(event_id)

    def predict(self, event):
        """Apply a local event immediately and return its Outcome"""
        if event.event_id in self._statuses:
            logger.debug("Event %s already tracked, not predicting again", event.event_id)
            return None

        self._view, outcome = apply_event(self._view, event, self.history_limit)
        self._pending.append(event)
        self._statuses[event.event_id] = MutationStatus.PREDICTED
        return outcome

    def reconcile(self, room, event_id=None, applied=True):
        """
        Replace the base state with an authoritative room state.

        The acknowledged mutation is settled even when the state itself is
        older than the base already held; denied events are only acknowledged
        to their sender and can arrive after a newer broadcast.

        Returns False when the state was ignored because it belongs to another
        room or is older than the base already held.
        """
        if room.room_id != self._base.room_id:
            logger.warning("Ignoring state for room %s in replica of %s", room.room_id, self._base.room_id)
            return False

        settled = self._settle(event_id, applied)

        if room.version < self._base.version:
            logger.debug("Ignoring stale state v%s (have v%s)", room.version, self._base.version)
            if settled:
                self._view = self._replay()
            return False

        self._base = room
        self._view = self._replay()
        return True

    def _settle(self, event_id, applied):
        if event_id is None or self._statuses.get(event_id) is not MutationStatus.PREDICTED:
            return False

        self._statuses[event_id] = MutationStatus.CONFIRMED if applied else MutationStatus.REVERTED
        self._pending = [event for event in self._pending if event.event_id != event_id]
        return True

    def reconcile_payload(self, payload):
        """Reconcile from a broadcast payload as published by the room service"""
        room = RoomState.from_dict(payload["room"])
        return self.reconcile(room, payload.get("event_id"), payload.get("applied", True))

    def _replay(self):
        view = self._base
        for event in self._pending:
            view, _ = apply_event(view, event, self.history_limit)
        return view
