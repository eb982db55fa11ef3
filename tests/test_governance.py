"""
Tests for the queue governance engine
"""

import pytest

from roomqueue.engine.governance import (
    admit_entry,
    interleave_round_robin,
    apply_vote,
    skip_current,
    advance,
    approve_suggestion,
    reject_suggestion,
    move_entry,
)
from roomqueue.models.queue_models import GovernanceMode, ModerationState, Destination, UP, DOWN

from conftest import make_entry, ids


EQUAL_TURNS = GovernanceMode.EQUAL_TURNS
CURATED = GovernanceMode.CURATED
DEMOCRATIC = GovernanceMode.DEMOCRATIC


class TestAdmission:
    """Track admission per governance mode"""

    def test_equal_turns_appends_to_empty_queue(self):
        """A single track lands in an empty queue"""
        result = admit_entry([], [], make_entry("a1"), EQUAL_TURNS, "host")
        assert ids(result.queue) == ["a1"]
        assert result.destination is Destination.QUEUE

    def test_equal_turns_scenario(self):
        """A adds two tracks, B adds one: A1, B1, A2"""
        queue, suggestions = [], []
        for entry in (make_entry("a1", "A", 0), make_entry("a2", "A", 1), make_entry("b1", "B", 2)):
            result = admit_entry(queue, suggestions, entry, EQUAL_TURNS, "host")
            queue, suggestions = result.queue, result.suggestions
        assert ids(queue) == ["a1", "b1", "a2"]

    def test_equal_turns_three_contributors(self):
        """Three contributors are served one track per turn"""
        queue = [
            make_entry("a1", "A", 0), make_entry("a2", "A", 1), make_entry("a3", "A", 2),
            make_entry("b1", "B", 3), make_entry("b2", "B", 4),
        ]
        result = admit_entry(queue, [], make_entry("c1", "C", 5), EQUAL_TURNS, "host")
        assert ids(result.queue) == ["a1", "b1", "c1", "a2", "b2", "a3"]

    def test_curated_host_goes_to_queue(self):
        """The authority's own tracks skip moderation"""
        result = admit_entry([make_entry("x")], [], make_entry("h1", "H"), CURATED, "H")
        assert ids(result.queue) == ["x", "h1"]
        assert result.suggestions == []
        assert result.destination is Destination.QUEUE

    def test_curated_guest_goes_to_suggestions_as_pending(self):
        """Other contributors' tracks wait in suggestions"""
        queue = [make_entry("x", "H")]
        result = admit_entry(queue, [], make_entry("g1", "G"), CURATED, "H")
        assert result.queue == queue
        assert ids(result.suggestions) == ["g1"]
        assert result.suggestions[0].moderation_state is ModerationState.PENDING
        assert result.destination is Destination.SUGGESTIONS

    def test_democratic_appends_without_interleaving(self):
        """Open admission is a plain append"""
        queue = [make_entry("a1", "A", 0), make_entry("a2", "A", 1)]
        result = admit_entry(queue, [], make_entry("b1", "B", 2), DEMOCRATIC, "host")
        assert ids(result.queue) == ["a1", "a2", "b1"]

    @pytest.mark.parametrize("mode,authority", [
        (EQUAL_TURNS, "host"), (CURATED, "host"), (CURATED, "G"), (DEMOCRATIC, "host"),
    ])
    def test_admission_adds_exactly_one_entry(self, mode, authority):
        """Every admission grows the two sequences by exactly one"""
        queue = [make_entry("q1", "A", 0), make_entry("q2", "B", 1)]
        suggestions = [make_entry("s1", "C", 2, moderation_state=ModerationState.PENDING)]
        result = admit_entry(queue, suggestions, make_entry("new", "G", 3), mode, authority)

        assert len(result.queue) + len(result.suggestions) == 4
        in_queue = "new" in ids(result.queue)
        in_suggestions = "new" in ids(result.suggestions)
        assert in_queue != in_suggestions
        assert in_queue == (result.destination is Destination.QUEUE)

    def test_admission_does_not_mutate_inputs(self):
        """Inputs are left untouched"""
        queue = [make_entry("a1", "A")]
        suggestions = []
        admit_entry(queue, suggestions, make_entry("g1", "G"), CURATED, "A")
        admit_entry(queue, suggestions, make_entry("b1", "B"), EQUAL_TURNS, "A")
        assert ids(queue) == ["a1"]
        assert suggestions == []


class TestInterleave:
    """Round-robin fairness"""

    def test_three_to_one(self):
        """A has three, B has one: A, B, A, A"""
        queue = [make_entry("a1", "A"), make_entry("a2", "A"), make_entry("a3", "A"), make_entry("b1", "B")]
        assert ids(interleave_round_robin(queue)) == ["a1", "b1", "a2", "a3"]

    def test_single_contributor_returns_input(self):
        """Nothing to interleave with one contributor"""
        queue = [make_entry("a1", "A"), make_entry("a2", "A")]
        assert interleave_round_robin(queue) is queue

    def test_preserves_each_contributors_order(self):
        """A contributor's own tracks never swap among themselves"""
        queue = [
            make_entry("b1", "B"), make_entry("a1", "A"), make_entry("b2", "B"),
            make_entry("a2", "A"), make_entry("b3", "B"), make_entry("c1", "C"),
        ]
        result = interleave_round_robin(queue)
        for contributor in ("A", "B", "C"):
            before = [e.track_id for e in queue if e.contributor_id == contributor]
            after = [e.track_id for e in result if e.contributor_id == contributor]
            assert before == after

    def test_no_back_to_back_until_only_one_left(self):
        """Consecutive entries share a contributor only once the others ran out"""
        queue = [make_entry(f"a{i}", "A") for i in range(4)] + [make_entry("b1", "B"), make_entry("c1", "C")]
        result = interleave_round_robin(queue)
        assert ids(result) == ["a0", "b1", "c1", "a1", "a2", "a3"]
        assert sorted(ids(result)) == sorted(ids(queue))

    def test_now_playing_stays_first(self):
        """The first entry's contributor is served first, so position 0 never moves"""
        queue = [make_entry("b1", "B"), make_entry("a1", "A"), make_entry("a2", "A"), make_entry("c1", "C")]
        assert interleave_round_robin(queue)[0] is queue[0]


class TestVoting:
    """Vote toggling and vote-driven order"""

    def test_adds_upvote(self):
        """First upvote records the voter and raises the tally"""
        queue = apply_vote([make_entry("x")], "x", "u1", UP, EQUAL_TURNS)
        assert queue[0].vote_tally == 1
        assert queue[0].vote_registry == {"u1": UP}

    def test_adds_downvote(self):
        """First downvote lowers the tally"""
        queue = apply_vote([make_entry("x")], "x", "u1", DOWN, EQUAL_TURNS)
        assert queue[0].vote_tally == -1
        assert queue[0].vote_registry == {"u1": DOWN}

    def test_same_direction_twice_retracts(self):
        """Pressing the same arrow again fully undoes the vote"""
        original = [make_entry("x")]
        once = apply_vote(original, "x", "u1", UP, EQUAL_TURNS)
        twice = apply_vote(once, "x", "u1", UP, EQUAL_TURNS)
        assert twice[0].vote_tally == 0
        assert twice[0].vote_registry == {}

    def test_opposite_direction_only_cancels(self):
        """Up then down leaves no vote at all, not a downvote"""
        queue = apply_vote([make_entry("x")], "x", "u1", UP, EQUAL_TURNS)
        queue = apply_vote(queue, "x", "u1", DOWN, EQUAL_TURNS)
        assert queue[0].vote_tally == 0
        assert "u1" not in queue[0].vote_registry

        # A second press of the new direction is what actually votes it
        queue = apply_vote(queue, "x", "u1", DOWN, EQUAL_TURNS)
        assert queue[0].vote_tally == -1

    def test_voters_are_independent(self):
        """Each voter holds at most one live vote and the tally is their sum"""
        queue = [make_entry("x")]
        for voter, direction in (("u1", UP), ("u2", UP), ("u3", DOWN)):
            queue = apply_vote(queue, "x", voter, direction, EQUAL_TURNS)
        assert queue[0].vote_tally == 1
        assert queue[0].vote_tally == sum(queue[0].vote_registry.values())

    def test_democratic_resorts(self):
        """Upvoting Y puts it ahead of X behind now-playing"""
        queue = [make_entry("np", t=-10), make_entry("X", t=0), make_entry("Y", t=1)]
        result = apply_vote(queue, "Y", "u1", UP, DEMOCRATIC)
        assert ids(result) == ["np", "Y", "X"]

    @pytest.mark.parametrize("mode", [EQUAL_TURNS, CURATED])
    def test_other_modes_do_not_reorder(self, mode):
        """Votes are informational outside democratic rooms"""
        queue = [make_entry("np", t=-10), make_entry("X", t=0), make_entry("Y", t=1)]
        result = apply_vote(queue, "Y", "u1", UP, mode)
        result = apply_vote(result, "X", "u2", DOWN, mode)
        assert ids(result) == ["np", "X", "Y"]
        assert result[2].vote_tally == 1

    def test_tiebreak_earlier_added_first(self):
        """Equal tallies keep the earlier submission first"""
        queue = [make_entry("np", t=-10), make_entry("late", t=5), make_entry("early", t=1), make_entry("mid", t=3)]
        result = apply_vote(queue, "mid", "u1", UP, DEMOCRATIC)
        result = apply_vote(result, "mid", "u1", UP, DEMOCRATIC)
        assert ids(result) == ["np", "early", "mid", "late"]

    def test_democratic_order_is_total(self):
        """After any resort, tallies descend and ties ascend by added_at"""
        queue = [make_entry("np", t=-10)] + [make_entry(f"t{i}", t=i) for i in range(6)]
        for voter, track, direction in [
            ("u1", "t3", UP), ("u2", "t3", UP), ("u1", "t5", UP), ("u3", "t0", DOWN), ("u2", "t1", UP),
        ]:
            queue = apply_vote(queue, track, voter, direction, DEMOCRATIC)

        assert queue[0].track_id == "np"
        rest = queue[1:]
        for earlier, later in zip(rest, rest[1:]):
            assert earlier.vote_tally >= later.vote_tally
            if earlier.vote_tally == later.vote_tally:
                assert earlier.added_at <= later.added_at

    def test_now_playing_is_pinned(self):
        """Even a heavily voted now-playing entry does not move, nor do others pass it"""
        queue = [make_entry("np", t=0), make_entry("x", t=1)]
        queue = apply_vote(queue, "x", "u1", UP, DEMOCRATIC)
        queue = apply_vote(queue + [make_entry("y", t=2)], "y", "u2", UP, DEMOCRATIC)
        assert queue[0].track_id == "np"

    def test_unknown_track_is_noop(self):
        """Voting on a missing track returns the queue unchanged"""
        queue = [make_entry("np"), make_entry("b", t=2), make_entry("a", t=1)]
        assert apply_vote(queue, "missing", "u1", UP, DEMOCRATIC) is queue

    def test_single_item_queue(self):
        """Voting on the only entry works without reordering trouble"""
        queue = apply_vote([make_entry("x")], "x", "u1", UP, DEMOCRATIC)
        assert queue[0].vote_tally == 1

    def test_does_not_mutate_original_entry(self):
        """The voted entry is replaced, not changed in place"""
        entry = make_entry("x")
        apply_vote([entry], "x", "u1", UP, EQUAL_TURNS)
        assert entry.vote_tally == 0
        assert entry.vote_registry == {}


class TestSkip:
    """Skip authorization"""

    def test_removes_first_entry(self):
        """A successful skip drops position 0 only"""
        queue = [make_entry("a"), make_entry("b"), make_entry("c")]
        result = skip_current(queue, "anyone", "host", EQUAL_TURNS)
        assert result.skipped is True
        assert ids(result.queue) == ["b", "c"]
        assert result.entry.track_id == "a"

    def test_empty_queue(self):
        """Nothing to skip"""
        result = skip_current([], "host", "host", DEMOCRATIC)
        assert result.skipped is False
        assert result.queue == []

    @pytest.mark.parametrize("mode", [EQUAL_TURNS, DEMOCRATIC])
    def test_anyone_can_skip_in_open_modes(self, mode):
        """Guests may skip outside curated rooms"""
        assert skip_current([make_entry("a")], "guest", "host", mode).skipped is True

    def test_host_can_skip_in_curated(self):
        """The authority may skip in curated rooms"""
        queue = [make_entry("a"), make_entry("b")]
        result = skip_current(queue, "host", "host", CURATED)
        assert result.skipped is True
        assert len(result.queue) == len(queue) - 1

    def test_guest_cannot_skip_in_curated(self):
        """A refused skip leaves the queue exactly as it was"""
        queue = [make_entry("a"), make_entry("b")]
        result = skip_current(queue, "guest", "host", CURATED)
        assert result.skipped is False
        assert result.queue is queue

    def test_single_item_queue_becomes_empty(self):
        """Skipping the last track empties the queue"""
        assert skip_current([make_entry("a")], "u", "host", EQUAL_TURNS).queue == []

    def test_advance_ignores_authorization(self):
        """A finished track always advances"""
        result = advance([make_entry("a"), make_entry("b")])
        assert result.skipped is True
        assert ids(result.queue) == ["b"]
        assert advance([]).skipped is False


class TestModeration:
    """Suggestion approval and rejection"""

    def _pending(self, track_id, t=0):
        return make_entry(track_id, "G", t, moderation_state=ModerationState.PENDING)

    def test_approve_moves_to_end_of_queue(self):
        """Approved suggestions are appended and marked approved"""
        queue = [make_entry("h1", "H")]
        suggestions = [self._pending("g1"), self._pending("g2", 1)]
        result = approve_suggestion(queue, suggestions, "g1")

        assert ids(result.queue) == ["h1", "g1"]
        assert result.queue[-1].moderation_state is ModerationState.APPROVED
        assert ids(result.suggestions) == ["g2"]
        assert result.suggestions[0] is suggestions[1]

    def test_approve_unknown_is_noop(self):
        """Unknown suggestion ids leave both sequences unchanged"""
        queue, suggestions = [make_entry("h1")], [self._pending("g1")]
        result = approve_suggestion(queue, suggestions, "missing")
        assert result.queue is queue
        assert result.suggestions is suggestions

    def test_reject_removes_only_that_entry(self):
        """Rejected suggestions are discarded"""
        suggestions = [self._pending("g1"), self._pending("g2", 1)]
        assert ids(reject_suggestion(suggestions, "g1")) == ["g2"]

    def test_reject_unknown_returns_same_list(self):
        """Rejecting a missing id changes nothing"""
        suggestions = [self._pending("g1")]
        assert reject_suggestion(suggestions, "missing") is suggestions

    def test_reject_last_suggestion(self):
        """Rejecting the only suggestion leaves an empty list"""
        assert reject_suggestion([self._pending("g1")], "g1") == []

    def test_curated_scenario(self):
        """Host adds h1, guest suggests g1, host approves: [h1, g1] and no suggestions"""
        queue, suggestions = [], []
        for entry in (make_entry("h1", "H", 0), make_entry("g1", "G", 1)):
            result = admit_entry(queue, suggestions, entry, CURATED, "H")
            queue, suggestions = result.queue, result.suggestions
        assert ids(queue) == ["h1"]
        assert ids(suggestions) == ["g1"]

        result = approve_suggestion(queue, suggestions, "g1")
        assert ids(result.queue) == ["h1", "g1"]
        assert result.suggestions == []


class TestMove:
    """Manual reorder boundaries"""

    def _queue(self):
        return [make_entry("np"), make_entry("a"), make_entry("b"), make_entry("c")]

    def test_move_up(self):
        """An entry swaps with the one above it"""
        assert ids(move_entry(self._queue(), "b", "up")) == ["np", "b", "a", "c"]

    def test_move_down(self):
        """An entry swaps with the one below it"""
        assert ids(move_entry(self._queue(), "a", "down")) == ["np", "b", "a", "c"]

    def test_now_playing_cannot_move(self):
        """Position 0 is never the subject of a move"""
        queue = self._queue()
        assert move_entry(queue, "np", "down") is queue

    def test_index_one_cannot_move_up(self):
        """Nothing may displace now-playing"""
        queue = self._queue()
        assert move_entry(queue, "a", "up") is queue

    def test_last_cannot_move_down(self):
        """The last entry stays last"""
        queue = self._queue()
        assert move_entry(queue, "c", "down") is queue

    def test_unknown_track(self):
        """Unknown ids are ignored"""
        queue = self._queue()
        assert move_entry(queue, "missing", "up") is queue

    def test_does_not_mutate_original(self):
        """Moves return a new list"""
        queue = self._queue()
        move_entry(queue, "b", "up")
        assert ids(queue) == ["np", "a", "b", "c"]
