"""
Time slot voting.

Plain plurality: the slot most participants can make is recommended.
No threshold, no mandatory gate, and the decision is never modified;
the recommendation is informational only.
"""

import logging
from typing import List, NamedTuple, Optional
from uuid import UUID

from django.db.models import Count

from apps.decisions.models import Decision, TimeOption, TimeVote

from .exceptions import DecisionNotFoundError, DecisionNotVotingError, OptionNotFoundError
from .participant_directory import resolve_participant

logger = logging.getLogger(__name__)


class SlotTally(NamedTuple):
    time_option: TimeOption
    votes: int
    is_recommended: bool


def cast_time_vote(
    *,
    decision_id: UUID,
    time_option_id: UUID,
    voter_ref,
    present: bool
) -> Optional[TimeOption]:
    """
    Mark (or unmark) a participant as available for a time slot.

    Idempotent per participant and slot: marking twice keeps one row,
    unmarking an absent vote is a no-op.

    Returns:
        The recommended slot after the change, or None

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        OptionNotFoundError: If the slot is not part of the decision
        NotAParticipantError: If voter_ref is not a participant
        DecisionNotVotingError: If the decision is past voting
    """
    try:
        decision = Decision.objects.get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")

    if not decision.accepts_ballots:
        raise DecisionNotVotingError(
            f"Decision is {decision.status}; time votes are no longer accepted"
        )

    try:
        time_option = decision.time_options.get(id=time_option_id)
    except TimeOption.DoesNotExist:
        raise OptionNotFoundError(f"Time option {time_option_id} not found in this decision")

    participant = resolve_participant(decision=decision, voter_ref=voter_ref)

    if present:
        TimeVote.objects.get_or_create(time_option=time_option, participant=participant)
    else:
        TimeVote.objects.filter(time_option=time_option, participant=participant).delete()

    logger.info(
        "Time vote by %s on slot %s: %s",
        participant.voter_ref,
        time_option.id,
        'present' if present else 'absent',
    )
    return recommended_slot(decision_id=decision.id)


def recommended_slot(*, decision_id: UUID) -> Optional[TimeOption]:
    """
    Slot with the strictly highest vote count; ties go to the earliest added.

    None when the decision has no slots or nobody has voted yet.
    """
    best = (
        TimeOption.objects
        .filter(decision_id=decision_id)
        .annotate(vote_count=Count('votes'))
        .order_by('-vote_count', 'position')
        .first()
    )
    if best is None or best.vote_count == 0:
        return None
    return best


def time_tallies(*, decision: Decision) -> List[SlotTally]:
    slots = (
        decision.time_options
        .annotate(vote_count=Count('votes'))
        .order_by('position')
    )
    recommended = recommended_slot(decision_id=decision.id)
    return [
        SlotTally(
            time_option=slot,
            votes=slot.vote_count,
            is_recommended=recommended is not None and slot.id == recommended.id,
        )
        for slot in slots
    ]
