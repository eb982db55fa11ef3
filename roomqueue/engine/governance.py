"""
Queue governance engine for RoomQueue.

Pure functions that decide how tracks enter, move and leave a room queue
under the active governance mode:

    EQUAL_TURNS - contributors take turns (round-robin interleave)
    CURATED     - the host gates additions and is the only one who can skip
    DEMOCRATIC  - votes reorder the queue, anyone can add or skip

Nothing here performs I/O or keeps state between calls. Every function takes
the full current sequences and returns new ones; the inputs are never
mutated. Lookups that find nothing return the input unchanged instead of
raising.

Position 0 of the queue is the track that is playing now. It only ever
leaves through skip/advance and is never reordered.
"""

from dataclasses import dataclass
from itertools import zip_longest

from roomqueue.models.queue_models import (
    GovernanceMode,
    ModerationState,
    Destination,
)
from roomqueue.models.event_models import MOVE_UP, MOVE_DOWN


@dataclass(frozen=True)
class Admission:
    queue: list
    suggestions: list
    destination: Destination


@dataclass(frozen=True)
class SkipResult:
    queue: list
    skipped: bool
    entry: object = None


@dataclass(frozen=True)
class Moderation:
    queue: list
    suggestions: list


def find_index(sequence, track_id):
    """Return the position of track_id in sequence, or -1"""
    for index, entry in enumerate(sequence):
        if entry.track_id == track_id:
            return index
    return -1


# ─── Admission ──────────────────────────────────────────────

def admit_entry(queue, suggestions, entry, mode, authority_id):
    """
    Place a newly added entry according to the room's governance mode.

    EQUAL_TURNS: append, then re-interleave the whole queue by contributor.
    CURATED:     the authority's own tracks go straight to the queue; anyone
                 else's go to suggestions as pending.
    DEMOCRATIC:  plain append; votes handle ordering later.
    """
    if mode is GovernanceMode.EQUAL_TURNS:
        return Admission(
            queue=interleave_round_robin(list(queue) + [entry]),
            suggestions=list(suggestions),
            destination=Destination.QUEUE,
        )

    if mode is GovernanceMode.CURATED and entry.contributor_id != authority_id:
        pending = entry.with_moderation(ModerationState.PENDING)
        return Admission(
            queue=list(queue),
            suggestions=list(suggestions) + [pending],
            destination=Destination.SUGGESTIONS,
        )

    return Admission(
        queue=list(queue) + [entry],
        suggestions=list(suggestions),
        destination=Destination.QUEUE,
    )


def interleave_round_robin(queue):
    """
    Let contributors take turns.

    Contributors are cycled in the order each first appears; every cycle takes
    the oldest remaining entry of each contributor that still has one. If A
    added three tracks and B one, the result is A, B, A, A. Each contributor's
    own tracks keep their relative order.

    The first contributor to appear owns position 0 and is served first in
    the first cycle, so the now-playing entry never moves.
    """
    groups = {}
    for entry in queue:
        groups.setdefault(entry.contributor_id, []).append(entry)

    if len(groups) < 2:
        return queue

    result = []
    for turn in zip_longest(*groups.values()):
        result.extend(entry for entry in turn if entry is not None)
    return result


# ─── Voting ─────────────────────────────────────────────────

def toggle_vote(entry, voter_id, direction):
    """
    Apply one vote press to an entry.

    No live vote: record it. Any live vote (same or opposite direction): retract
    it. Pressing the opposite arrow only cancels; a second press is needed to
    vote the other way.
    """
    registry = dict(entry.vote_registry)
    previous = registry.pop(voter_id, None)

    if previous is None:
        registry[voter_id] = direction
        delta = direction
    else:
        delta = -previous

    return entry.with_votes(entry.vote_tally + delta, registry)


def apply_vote(queue, track_id, voter_id, direction, mode):
    """Toggle a vote on track_id; only DEMOCRATIC rooms reorder afterwards"""
    index = find_index(queue, track_id)
    if index < 0:
        return queue

    updated = list(queue)
    updated[index] = toggle_vote(queue[index], voter_id, direction)

    if mode is GovernanceMode.DEMOCRATIC:
        return sort_by_votes(updated)
    return updated


def vote_order_key(entry):
    # Track id is the last resort so replicas agree even on identical timestamps
    return (-entry.vote_tally, entry.added_at, entry.track_id)


def sort_by_votes(queue):
    """Sort everything after now-playing by tally, earlier added_at first on ties"""
    if len(queue) <= 2:
        return queue

    now_playing, rest = queue[0], queue[1:]
    return [now_playing] + sorted(rest, key=vote_order_key)


# ─── Skip / advance ─────────────────────────────────────────

def can_skip(actor_id, authority_id, mode):
    if mode is GovernanceMode.CURATED:
        return actor_id == authority_id
    return True


def advance(queue):
    """Drop the now-playing entry unconditionally (the track finished)"""
    if not queue:
        return SkipResult(queue=queue, skipped=False)
    return SkipResult(queue=list(queue[1:]), skipped=True, entry=queue[0])


def skip_current(queue, actor_id, authority_id, mode):
    """
    Skip the now-playing entry on behalf of actor_id.

    Anyone may skip in EQUAL_TURNS and DEMOCRATIC rooms; only the authority in
    CURATED rooms. A refused skip looks exactly like skipping an empty queue.
    """
    if not queue or not can_skip(actor_id, authority_id, mode):
        return SkipResult(queue=queue, skipped=False)
    return advance(queue)


# ─── Moderation ─────────────────────────────────────────────

def approve_suggestion(queue, suggestions, track_id):
    """Move a pending suggestion to the end of the queue, marked approved"""
    index = find_index(suggestions, track_id)
    if index < 0:
        return Moderation(queue=queue, suggestions=suggestions)

    approved = suggestions[index].with_moderation(ModerationState.APPROVED)
    return Moderation(
        queue=list(queue) + [approved],
        suggestions=list(suggestions[:index]) + list(suggestions[index + 1:]),
    )


def reject_suggestion(suggestions, track_id):
    """Discard a pending suggestion"""
    index = find_index(suggestions, track_id)
    if index < 0:
        return suggestions
    return list(suggestions[:index]) + list(suggestions[index + 1:])


# ─── Manual reorder ─────────────────────────────────────────

def move_entry(queue, track_id, direction):
    """
    Swap an entry with its neighbour, one step up or down.

    Now-playing never moves, nothing moves into position 0, and the last entry
    cannot move further down.
    """
    index = find_index(queue, track_id)
    if index <= 0:
        return queue

    if direction == MOVE_UP:
        target = index - 1
    elif direction == MOVE_DOWN:
        target = index + 1
    else:
        return queue

    if target <= 0 or target >= len(queue):
        return queue

    moved = list(queue)
    moved[index], moved[target] = moved[target], moved[index]
    return moved
