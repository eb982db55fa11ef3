"""
Queue governance engine for RoomQueue
"""

from .governance import (
    Admission,
    SkipResult,
    Moderation,
    admit_entry,
    interleave_round_robin,
    toggle_vote,
    apply_vote,
    sort_by_votes,
    can_skip,
    advance,
    skip_current,
    approve_suggestion,
    reject_suggestion,
    move_entry,
    find_index,
)
from .dispatch import Outcome, dispatch, apply_event
