"""
Event dispatch for RoomQueue.

Routes one RoomEvent to the governance engine using the room's current mode
and host as the authority. Used unchanged by the authoritative room service
and by optimistic client replicas, so both compute the same next state for
the same event.
"""

from dataclasses import dataclass, replace

from roomqueue.models.queue_models import QueueState
from roomqueue.models.event_models import (
    ADMIT,
    VOTE,
    SKIP,
    APPROVE,
    REJECT,
    MOVE,
    ADVANCE,
    CHANGE_MODE,
)
from roomqueue.engine import governance


@dataclass(frozen=True)
class Outcome:
    """What one event did to a room's queues"""

    queue_state: QueueState
    applied: bool
    destination: object = None
    advanced: object = None
    denied: bool = False
    mode: object = None


def _unchanged(room, denied=False):
    return Outcome(queue_state=room.queue_state, applied=False, denied=denied)


def _is_authority(room, event):
    return event.actor_id == room.host_id


def _admit(room, event):
    state = room.queue_state
    entry = event.payload.entry

    # Track ids are unique across both sequences at any instant
    if (governance.find_index(state.queue, entry.track_id) >= 0
            or governance.find_index(state.suggestions, entry.track_id) >= 0):
        return _unchanged(room)

    admission = governance.admit_entry(
        state.queue, state.suggestions, entry, room.mode, room.host_id
    )
    return Outcome(
        queue_state=QueueState(admission.queue, admission.suggestions),
        applied=True,
        destination=admission.destination,
    )


def _vote(room, event):
    state = room.queue_state
    payload = event.payload
    if governance.find_index(state.queue, payload.track_id) < 0:
        return _unchanged(room)

    queue = governance.apply_vote(
        state.queue, payload.track_id, event.actor_id, payload.direction, room.mode
    )
    return Outcome(queue_state=replace(state, queue=queue), applied=True)


def _skip(room, event):
    state = room.queue_state
    result = governance.skip_current(state.queue, event.actor_id, room.host_id, room.mode)
    if not result.skipped:
        denied = bool(state.queue) and not governance.can_skip(event.actor_id, room.host_id, room.mode)
        return _unchanged(room, denied=denied)
    return Outcome(queue_state=replace(state, queue=result.queue), applied=True, advanced=result.entry)


def _advance(room, event):
    state = room.queue_state
    result = governance.advance(state.queue)
    if not result.skipped:
        return _unchanged(room)
    return Outcome(queue_state=replace(state, queue=result.queue), applied=True, advanced=result.entry)


def _approve(room, event):
    if not _is_authority(room, event):
        return _unchanged(room, denied=True)

    state = room.queue_state
    if governance.find_index(state.suggestions, event.payload.track_id) < 0:
        return _unchanged(room)

    moderation = governance.approve_suggestion(state.queue, state.suggestions, event.payload.track_id)
    return Outcome(queue_state=QueueState(moderation.queue, moderation.suggestions), applied=True)


def _reject(room, event):
    if not _is_authority(room, event):
        return _unchanged(room, denied=True)

    state = room.queue_state
    suggestions = governance.reject_suggestion(state.suggestions, event.payload.track_id)
    if suggestions is state.suggestions:
        return _unchanged(room)
    return Outcome(queue_state=replace(state, suggestions=suggestions), applied=True)


def _move(room, event):
    state = room.queue_state
    queue = governance.move_entry(state.queue, event.payload.track_id, event.payload.direction)
    if queue is state.queue:
        return _unchanged(room)
    return Outcome(queue_state=replace(state, queue=queue), applied=True)


def _change_mode(room, event):
    if not _is_authority(room, event):
        return _unchanged(room, denied=True)
    if event.payload.mode is room.mode:
        return _unchanged(room)

    # Existing order, tallies and moderation state are left as they are
    return Outcome(queue_state=room.queue_state, applied=True, mode=event.payload.mode)


_HANDLERS = {
    ADMIT: _admit,
    VOTE: _vote,
    SKIP: _skip,
    ADVANCE: _advance,
    APPROVE: _approve,
    REJECT: _reject,
    MOVE: _move,
    CHANGE_MODE: _change_mode,
}


def dispatch(room, event):
    """Compute the Outcome of applying event to room"""
    handler = _HANDLERS.get(event.kind)
    if handler is None:
        return _unchanged(room)
    return handler(room, event)


def apply_event(room, event, history_limit=None):
    """
    Apply event to a RoomState and return (next_room, outcome).

    Applied events bump the version; entries that left through skip/advance
    are pushed onto the front of the play history.
    """
    outcome = dispatch(room, event)
    if not outcome.applied:
        return room, outcome

    history = room.history
    if outcome.advanced is not None:
        history = [outcome.advanced] + list(history)
        if history_limit is not None:
            history = history[:history_limit]

    next_room = replace(
        room,
        mode=outcome.mode or room.mode,
        queue_state=outcome.queue_state,
        version=room.version + 1,
        history=history,
    )
    return next_room, outcome
