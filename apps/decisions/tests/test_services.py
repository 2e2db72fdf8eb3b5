"""
Service layer unit tests for decisions app.

Tests cover:
- Consensus rule (threshold, mandatory gate, single confirmation)
- Closing the vote early
- Time slot plurality
- Participant roster and lifecycle transitions
"""

import math
import pytest
from uuid import uuid4
from django.db.models import RestrictedError
from django.test import TransactionTestCase

from apps.decisions.models import (
    Decision,
    DecisionMessage,
    DecisionStatus,
    Option,
    RSVPStatus,
    TimeVote,
    Vote,
    VoteValue,
)
from apps.decisions.services import (
    create_decision,
    add_option,
    add_time_option,
    transition_decision,
    add_participant,
    set_mandatory,
    update_rsvp,
    cast_vote,
    evaluate_consensus,
    close_voting,
    consensus_snapshot,
    cast_time_vote,
    recommended_slot,
    time_tallies,
    get_messages,
)
from apps.decisions.services.exceptions import (
    DecisionNotFoundError,
    OptionNotFoundError,
    ParticipantNotFoundError,
    NotAParticipantError,
    AlreadyParticipantError,
    DecisionNotVotingError,
    InvalidVoteError,
    InvalidStateTransitionError,
    NoOptionsError,
)


def vote_yes(decision, option, *refs):
    """Cast YES from each ref, returning the last outcome."""
    outcome = None
    for ref in refs:
        outcome = cast_vote(
            decision_id=decision.id,
            option_id=option.id,
            voter_ref=ref,
            value=VoteValue.YES
        )
    return outcome


# =============================================================================
# Consensus Tests
# =============================================================================

@pytest.mark.django_db
class TestCastVote:
    """Tests for cast_vote() and live consensus evaluation."""

    def test_three_of_four_with_mandatory_confirms(self, decision, participants, options):
        """yes=3, N=4 is 75% >= 60 and the mandatory voter agreed."""
        pizza = options[0]

        outcome = vote_yes(decision, pizza, 'user:p1', 'user:p2')
        assert outcome.confirmed_option is None
        assert outcome.decision.status == DecisionStatus.VOTING

        outcome = vote_yes(decision, pizza, 'user:p3')

        assert outcome.evaluated is True
        assert outcome.confirmed_option == pizza
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.CONFIRMED
        assert decision.final_option == pizza

    def test_confirmation_posts_system_message(self, decision, participants, options):
        vote_yes(decision, options[0], 'user:p1', 'user:p2', 'user:p3')

        messages = list(get_messages(decision_id=decision.id))
        assert len(messages) == 1
        assert messages[0].content == "Consensus reached! The plan is confirmed: Pizza."

    def test_mandatory_gate_blocks_confirmation(self, decision, add_participants, options):
        """N=5, threshold 60, 4 YES (80%) but one of two mandatory voters missing."""
        add_participants(decision, 5, mandatory=(1, 2))
        pizza = options[0]

        outcome = vote_yes(decision, pizza, 'user:p1', 'user:p3', 'user:p4', 'user:p5')

        assert outcome.confirmed_option is None
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.VOTING
        assert decision.final_option is None

        # Last mandatory YES unlocks it
        outcome = vote_yes(decision, pizza, 'user:p2')
        assert outcome.confirmed_option == pizza

    def test_mandatory_no_vote_blocks_confirmation(self, decision, participants, options):
        """A mandatory NO counts the same as a missing vote."""
        pizza = options[0]
        cast_vote(decision_id=decision.id, option_id=pizza.id, voter_ref='user:p1', value=VoteValue.NO)

        outcome = vote_yes(decision, pizza, 'user:p2', 'user:p3', 'user:p4')

        assert outcome.confirmed_option is None

    @pytest.mark.parametrize('threshold', [20, 50, 60, 75, 100])
    def test_confirms_exactly_when_threshold_reached(self, decision, add_participants, options, threshold):
        """More YES votes only ever move an option toward confirmation."""
        decision.consensus_threshold = threshold
        decision.save()
        add_participants(decision, 5)
        needed = math.ceil(threshold * 5 / 100)

        for count in range(1, 6):
            outcome = vote_yes(decision, options[0], f'user:p{count}')
            if count < needed:
                assert outcome.confirmed_option is None
            else:
                assert outcome.decision.status == DecisionStatus.CONFIRMED
                break

        assert count == needed

    def test_non_participants_count_toward_total(self, decision, participants, options):
        """Percentage is over all participants, not over voters."""
        outcome = vote_yes(decision, options[0], 'user:p1', 'user:p2')

        # 2 of 4 voted, both YES: 100% of voters but 50% of participants
        assert outcome.confirmed_option is None

    def test_no_and_maybe_do_not_count(self, decision, participants, options):
        pizza = options[0]
        vote_yes(decision, pizza, 'user:p1', 'user:p2')
        cast_vote(decision_id=decision.id, option_id=pizza.id, voter_ref='user:p3', value=VoteValue.MAYBE)
        outcome = cast_vote(decision_id=decision.id, option_id=pizza.id, voter_ref='user:p4', value=VoteValue.NO)

        assert outcome.confirmed_option is None

    def test_revote_overwrites_value(self, decision, participants, options):
        pizza = options[0]
        vote_yes(decision, pizza, 'user:p2')
        cast_vote(decision_id=decision.id, option_id=pizza.id, voter_ref='user:p2', value=VoteValue.NO)

        votes = Vote.objects.filter(option=pizza)
        assert votes.count() == 1
        assert votes.get().value == VoteValue.NO

    def test_guest_votes_count(self, decision, participants, guest, options):
        """Guests are full participants: N=5, 3 YES including a guest is 60%."""
        outcome = vote_yes(decision, options[0], 'user:p1', 'user:p2', 'guest:g-42')

        assert outcome.confirmed_option == options[0]

    def test_at_most_one_confirmation(self, decision, participants, options):
        """Once confirmed, later ballots are rejected and the winner never changes."""
        pizza, sushi = options
        vote_yes(decision, pizza, 'user:p1', 'user:p2', 'user:p3')

        with pytest.raises(DecisionNotVotingError):
            vote_yes(decision, sushi, 'user:p1')
        with pytest.raises(DecisionNotVotingError):
            close_voting(decision_id=decision.id)

        decision.refresh_from_db()
        assert decision.final_option == pizza
        assert DecisionMessage.objects.filter(decision=decision).count() == 1

    def test_confirm_twice_is_refused(self, decision, options):
        decision.confirm(options[0])

        with pytest.raises(InvalidStateTransitionError):
            decision.confirm(options[1])

    def test_planning_votes_stored_not_evaluated(self, planning_decision, add_participants):
        add_participants(planning_decision, 1)
        option = Option.objects.create(decision=planning_decision, label='Bowling')

        outcome = vote_yes(planning_decision, option, 'user:p1')

        assert outcome.evaluated is False
        assert Vote.objects.filter(option=option).exists()
        planning_decision.refresh_from_db()
        assert planning_decision.status == DecisionStatus.PLANNING

    def test_disabled_voting_never_confirms(self, decision, participants, options):
        decision.voting_enabled = False
        decision.save()

        outcome = vote_yes(decision, options[0], 'user:p1', 'user:p2', 'user:p3', 'user:p4')

        assert outcome.confirmed_option is None
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.VOTING

    def test_cancelled_decision_rejects_votes(self, decision, participants, options):
        decision.cancel()

        with pytest.raises(DecisionNotVotingError):
            vote_yes(decision, options[0], 'user:p1')

    def test_invalid_value_rejected(self, decision, participants, options):
        with pytest.raises(InvalidVoteError):
            cast_vote(decision_id=decision.id, option_id=options[0].id, voter_ref='user:p1', value=7)

    def test_non_participant_rejected(self, decision, participants, options):
        with pytest.raises(NotAParticipantError):
            vote_yes(decision, options[0], 'user:stranger')

    def test_malformed_voter_ref_rejected(self, decision, participants, options):
        with pytest.raises(NotAParticipantError):
            vote_yes(decision, options[0], 'p1')

    def test_option_from_other_decision_rejected(self, decision, participants, planning_decision):
        foreign = Option.objects.create(decision=planning_decision, label='Elsewhere')

        with pytest.raises(OptionNotFoundError):
            vote_yes(decision, foreign, 'user:p1')

    def test_unknown_decision(self):
        with pytest.raises(DecisionNotFoundError):
            cast_vote(decision_id=uuid4(), option_id=uuid4(), voter_ref='user:p1', value=VoteValue.YES)


@pytest.mark.django_db
class TestEvaluateConsensus:
    """Tests for explicit re-evaluation."""

    def test_reevaluates_after_opening_vote(self, planning_decision, add_participants):
        """YES votes cast during planning confirm on the first evaluation in VOTING."""
        add_participants(planning_decision, 2)
        option = Option.objects.create(decision=planning_decision, label='Cinema')
        vote_yes(planning_decision, option, 'user:p1', 'user:p2')

        transition_decision(decision_id=planning_decision.id, new_status=DecisionStatus.VOTING)
        confirmed = evaluate_consensus(decision_id=planning_decision.id, option_id=option.id)

        assert confirmed == option

    def test_no_participants_is_no_change(self, decision, options):
        assert evaluate_consensus(decision_id=decision.id, option_id=options[0].id) is None


@pytest.mark.django_db
class TestCloseVoting:
    """Tests for close_voting()."""

    def test_most_yes_wins(self, decision, participants, options):
        pizza, sushi = options
        vote_yes(decision, pizza, 'user:p2')
        vote_yes(decision, sushi, 'user:p3', 'user:p4')

        winner = close_voting(decision_id=decision.id)

        assert winner == sushi
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.CONFIRMED
        assert decision.final_option == sushi
        assert decision.voting_enabled is False

    def test_tie_goes_to_first_option(self, decision, participants, options):
        pizza, sushi = options
        vote_yes(decision, sushi, 'user:p2')
        vote_yes(decision, pizza, 'user:p3')

        assert close_voting(decision_id=decision.id) == pizza

    def test_no_votes_picks_first_option(self, decision, participants, options):
        assert close_voting(decision_id=decision.id) == options[0]

    def test_ignores_mandatory_gate(self, decision, participants, options):
        """An explicit close does not need the mandatory voter."""
        vote_yes(decision, options[1], 'user:p2')

        assert close_voting(decision_id=decision.id) == options[1]

    def test_posts_system_message(self, decision, participants, options):
        close_voting(decision_id=decision.id)

        content = get_messages(decision_id=decision.id).last().content
        assert content == "Voting closed! The plan is set for: Pizza."

    def test_requires_voting(self, planning_decision):
        Option.objects.create(decision=planning_decision, label='Cinema')

        with pytest.raises(DecisionNotVotingError):
            close_voting(decision_id=planning_decision.id)

    def test_requires_options(self, decision):
        with pytest.raises(NoOptionsError):
            close_voting(decision_id=decision.id)


@pytest.mark.django_db
class TestConsensusSnapshot:
    """Tests for consensus_snapshot() tallies."""

    def test_tallies_per_option(self, decision, participants, options):
        pizza, sushi = options
        vote_yes(decision, pizza, 'user:p2')
        cast_vote(decision_id=decision.id, option_id=pizza.id, voter_ref='user:p3', value=VoteValue.NO)
        cast_vote(decision_id=decision.id, option_id=sushi.id, voter_ref='user:p4', value=VoteValue.MAYBE)

        tallies = consensus_snapshot(decision=decision)

        assert [t.option for t in tallies] == [pizza, sushi]
        assert (tallies[0].yes, tallies[0].no, tallies[0].maybe) == (1, 1, 0)
        assert tallies[0].percentage == 25.0
        assert tallies[0].mandatory_missing == 1
        assert tallies[0].meets_threshold is False
        assert tallies[1].maybe == 1


# =============================================================================
# Time Consensus Tests
# =============================================================================

@pytest.mark.django_db
class TestTimeVotes:
    """Tests for cast_time_vote() and recommended_slot()."""

    def test_no_votes_no_recommendation(self, decision, time_options):
        assert recommended_slot(decision_id=decision.id) is None

    def test_no_slots_no_recommendation(self, decision):
        assert recommended_slot(decision_id=decision.id) is None

    def test_plurality_wins(self, decision, participants, time_options):
        friday, saturday = time_options
        cast_time_vote(decision_id=decision.id, time_option_id=friday.id, voter_ref='user:p1', present=True)
        cast_time_vote(decision_id=decision.id, time_option_id=saturday.id, voter_ref='user:p2', present=True)
        slot = cast_time_vote(
            decision_id=decision.id,
            time_option_id=saturday.id,
            voter_ref='user:p3',
            present=True
        )

        assert slot == saturday

    def test_tie_goes_to_first_slot(self, decision, participants, time_options):
        friday, saturday = time_options
        cast_time_vote(decision_id=decision.id, time_option_id=saturday.id, voter_ref='user:p1', present=True)
        slot = cast_time_vote(
            decision_id=decision.id,
            time_option_id=friday.id,
            voter_ref='user:p2',
            present=True
        )

        assert slot == friday

    def test_toggle_is_idempotent(self, decision, participants, time_options):
        friday = time_options[0]
        for _ in range(2):
            cast_time_vote(decision_id=decision.id, time_option_id=friday.id, voter_ref='user:p1', present=True)
        assert TimeVote.objects.filter(time_option=friday).count() == 1

        for _ in range(2):
            slot = cast_time_vote(
                decision_id=decision.id,
                time_option_id=friday.id,
                voter_ref='user:p1',
                present=False
            )
        assert TimeVote.objects.filter(time_option=friday).count() == 0
        assert slot is None

    def test_time_votes_never_change_decision(self, decision, participants, time_options):
        for ref in ('user:p1', 'user:p2', 'user:p3', 'user:p4'):
            cast_time_vote(decision_id=decision.id, time_option_id=time_options[0].id, voter_ref=ref, present=True)

        decision.refresh_from_db()
        assert decision.status == DecisionStatus.VOTING
        assert decision.final_option is None

    def test_rejected_after_confirmation(self, decision, participants, options, time_options):
        vote_yes(decision, options[0], 'user:p1', 'user:p2', 'user:p3')

        with pytest.raises(DecisionNotVotingError):
            cast_time_vote(
                decision_id=decision.id,
                time_option_id=time_options[0].id,
                voter_ref='user:p1',
                present=True
            )

    def test_unknown_slot(self, decision, participants):
        with pytest.raises(OptionNotFoundError):
            cast_time_vote(decision_id=decision.id, time_option_id=uuid4(), voter_ref='user:p1', present=True)

    def test_tallies_mark_recommended(self, decision, participants, time_options):
        cast_time_vote(decision_id=decision.id, time_option_id=time_options[1].id, voter_ref='user:p1', present=True)

        tallies = time_tallies(decision=decision)

        assert [t.votes for t in tallies] == [0, 1]
        assert [t.is_recommended for t in tallies] == [False, True]


# =============================================================================
# Decision Management Tests
# =============================================================================

@pytest.mark.django_db
class TestDecisionManagement:
    """Tests for decision_management.py service functions."""

    def test_create_uses_default_threshold(self, settings):
        settings.DECISIONS_DEFAULT_CONSENSUS_THRESHOLD = 75

        decision = create_decision(title='Board games')

        assert decision.consensus_threshold == 75
        assert decision.status == DecisionStatus.PLANNING
        assert decision.voting_enabled is True

    def test_create_in_voting(self):
        decision = create_decision(title='Board games', consensus_threshold=50, status=DecisionStatus.VOTING)

        assert decision.status == DecisionStatus.VOTING
        assert decision.consensus_threshold == 50

    def test_create_rejects_later_status(self):
        with pytest.raises(InvalidStateTransitionError):
            create_decision(title='Board games', status=DecisionStatus.CONFIRMED)

    def test_create_rejects_bad_threshold(self):
        with pytest.raises(ValueError):
            create_decision(title='Board games', consensus_threshold=101)

    def test_options_keep_insertion_order(self, decision):
        first = add_option(decision_id=decision.id, label='Pizza')
        second = add_option(decision_id=decision.id, label='Sushi')

        assert (first.position, second.position) == (0, 1)

    def test_add_option_after_confirmation(self, decision, options):
        decision.confirm(options[0])

        with pytest.raises(DecisionNotVotingError):
            add_option(decision_id=decision.id, label='Tacos')

    def test_add_time_option_validates_range(self, decision, time_options):
        with pytest.raises(ValueError):
            add_time_option(
                decision_id=decision.id,
                starts_at=time_options[0].starts_at,
                ends_at=time_options[0].starts_at
            )

    def test_transition_planning_to_voting(self, planning_decision):
        decision = transition_decision(decision_id=planning_decision.id, new_status=DecisionStatus.VOTING)

        assert decision.status == DecisionStatus.VOTING

    def test_transition_confirmed_to_completed(self, decision, options):
        decision.confirm(options[0])

        decision = transition_decision(decision_id=decision.id, new_status=DecisionStatus.COMPLETED)

        assert decision.status == DecisionStatus.COMPLETED

    @pytest.mark.parametrize('target', [DecisionStatus.COMPLETED, DecisionStatus.CONFIRMED, DecisionStatus.PLANNING])
    def test_illegal_transitions_from_voting(self, decision, target):
        with pytest.raises(InvalidStateTransitionError):
            transition_decision(decision_id=decision.id, new_status=target)

    def test_cancelled_is_terminal(self, decision):
        transition_decision(decision_id=decision.id, new_status=DecisionStatus.CANCELLED)

        with pytest.raises(InvalidStateTransitionError):
            transition_decision(decision_id=decision.id, new_status=DecisionStatus.VOTING)

    def test_transition_unknown_decision(self):
        with pytest.raises(DecisionNotFoundError):
            transition_decision(decision_id=uuid4(), new_status=DecisionStatus.VOTING)

    def test_final_option_cannot_be_deleted(self, decision, options):
        decision.confirm(options[0])

        with pytest.raises(RestrictedError):
            options[0].delete()

        decision.refresh_from_db()
        assert decision.status == DecisionStatus.CONFIRMED
        assert decision.final_option == options[0]

    def test_confirmed_decision_delete_cascades(self, decision, options):
        decision.confirm(options[0])

        Decision.objects.filter(id=decision.id).delete()

        assert not Option.objects.filter(decision_id=decision.id).exists()


# =============================================================================
# Participant Directory Tests
# =============================================================================

@pytest.mark.django_db
class TestParticipantDirectory:
    """Tests for participant_directory.py service functions."""

    def test_add_user_and_guest(self, decision):
        user = add_participant(decision_id=decision.id, voter_ref='user:u1', display_name='Ann')
        guest = add_participant(decision_id=decision.id, voter_ref='guest:u1', is_mandatory=True)

        assert str(user.voter_ref) == 'user:u1'
        assert str(guest.voter_ref) == 'guest:u1'
        assert guest.is_mandatory is True
        assert (user.position, guest.position) == (0, 1)

    def test_add_duplicate_rejected(self, decision):
        add_participant(decision_id=decision.id, voter_ref='user:u1')

        with pytest.raises(AlreadyParticipantError):
            add_participant(decision_id=decision.id, voter_ref='user:u1')

    def test_same_ref_on_other_decision_allowed(self, decision, planning_decision):
        add_participant(decision_id=decision.id, voter_ref='user:u1')
        other = add_participant(decision_id=planning_decision.id, voter_ref='user:u1')

        assert other.decision == planning_decision

    def test_add_malformed_ref(self, decision):
        with pytest.raises(NotAParticipantError):
            add_participant(decision_id=decision.id, voter_ref='admin:u1')

    def test_set_mandatory(self, decision, participants):
        participant = set_mandatory(
            decision_id=decision.id,
            participant_id=participants[1].id,
            is_mandatory=True
        )

        assert participant.is_mandatory is True

    def test_set_mandatory_unknown_participant(self, decision):
        with pytest.raises(ParticipantNotFoundError):
            set_mandatory(decision_id=decision.id, participant_id=uuid4(), is_mandatory=True)

    def test_update_rsvp(self, decision, participants):
        participant = update_rsvp(decision_id=decision.id, voter_ref='user:p2', rsvp_status=RSVPStatus.GOING)

        assert participant.rsvp_status == RSVPStatus.GOING
        assert participant.responded_at is not None

    def test_update_rsvp_rejects_pending(self, decision, participants):
        with pytest.raises(ValueError):
            update_rsvp(decision_id=decision.id, voter_ref='user:p2', rsvp_status=RSVPStatus.PENDING)

    def test_decision_delete_cascades(self, decision, participants, options):
        vote_yes(decision, options[1], 'user:p2')
        decision_id = decision.id

        Decision.objects.filter(id=decision_id).delete()

        assert not Vote.objects.filter(decision_id=decision_id).exists()


# =============================================================================
# Transaction Tests
# =============================================================================

class TestConfirmationCommits(TransactionTestCase):
    """
    Confirmation across committed transactions.

    Each cast_vote commits on its own, as it would behind separate requests.
    SQLite ignores select_for_update(), so the ballots run one after another.
    """

    def setUp(self):
        self.decision = create_decision(title='Road trip', status=DecisionStatus.VOTING)
        for i in range(1, 4):
            add_participant(decision_id=self.decision.id, voter_ref=f'user:p{i}')
        self.first = add_option(decision_id=self.decision.id, label='Coast')
        self.second = add_option(decision_id=self.decision.id, label='Mountains')

    def test_only_first_option_to_reach_threshold_wins(self):
        """Both options get enough YES votes, only the first confirmation sticks."""
        accepted = []
        rejected = []
        ballots = [
            (self.first, 'user:p1'),
            (self.second, 'user:p1'),
            (self.second, 'user:p2'),
            (self.first, 'user:p2'),
            (self.first, 'user:p3'),
            (self.second, 'user:p3'),
        ]
        for option, ref in ballots:
            try:
                accepted.append(vote_yes(self.decision, option, ref))
            except DecisionNotVotingError:
                rejected.append((option, ref))

        self.decision.refresh_from_db()
        confirmed = [outcome.confirmed_option for outcome in accepted if outcome.confirmed_option]
        self.assertEqual(confirmed, [self.second])
        self.assertEqual(self.decision.final_option, self.second)
        self.assertEqual(rejected, [(self.first, 'user:p2'), (self.first, 'user:p3'), (self.second, 'user:p3')])
        self.assertEqual(DecisionMessage.objects.filter(decision=self.decision).count(), 1)
