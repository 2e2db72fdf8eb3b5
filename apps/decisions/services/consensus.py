"""
Consensus engine.

Every accepted vote re-evaluates the affected option inline. An option is
confirmed when:

    1. YES voters make up at least ``consensus_threshold`` percent of ALL
       participants (voters or not, guests included)
    2. every mandatory participant voted YES on that option
    3. voting is enabled and the decision is still VOTING

The guard in (3) plus the decision row lock held for the whole
store-and-evaluate sequence mean at most one option is ever confirmed.
Only YES counts; NO and MAYBE are stored but indistinguishable here.
"""

import logging
from typing import List, NamedTuple, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Count, Q

from apps.decisions.models import (
    Decision,
    DecisionStatus,
    Option,
    Vote,
    VoteValue,
)

from .decision_management import lock_decision
from .exceptions import (
    DecisionNotVotingError,
    InvalidVoteError,
    NoOptionsError,
    OptionNotFoundError,
)
from .messaging import post_system_message
from .participant_directory import resolve_participant

logger = logging.getLogger(__name__)


class VoteOutcome(NamedTuple):
    """Result of casting a vote."""
    decision: Decision
    vote: Vote
    evaluated: bool
    confirmed_option: Optional[Option]


class OptionTally(NamedTuple):
    option: Option
    yes: int
    no: int
    maybe: int
    percentage: float
    mandatory_missing: int
    meets_threshold: bool


@transaction.atomic
def cast_vote(
    *,
    decision_id: UUID,
    option_id: UUID,
    voter_ref,
    value: int
) -> VoteOutcome:
    """
    Store (or overwrite) a participant's vote and evaluate consensus.

    Votes on a PLANNING decision are stored but never evaluated. Votes on
    a decision that is CONFIRMED or later are rejected.

    Args:
        decision_id: UUID of the decision
        option_id: UUID of the option being voted on
        voter_ref: 'user:<ref>' or 'guest:<ref>'
        value: VoteValue (YES=1, NO=0, MAYBE=2)

    Returns:
        VoteOutcome with the refreshed decision

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        OptionNotFoundError: If the option is not part of the decision
        NotAParticipantError: If voter_ref is not a participant
        DecisionNotVotingError: If the decision no longer accepts votes
        InvalidVoteError: If value is not a known vote value
    """
    if value not in VoteValue.values:
        raise InvalidVoteError(f"Invalid vote value: {value}")

    # Serializes all vote evaluation for this decision
    decision = lock_decision(decision_id)

    if not decision.accepts_ballots:
        raise DecisionNotVotingError(
            f"Decision is {decision.status}; votes are no longer accepted"
        )

    option = _get_option(decision, option_id)
    participant = resolve_participant(decision=decision, voter_ref=voter_ref)

    vote, created = Vote.objects.update_or_create(
        option=option,
        participant=participant,
        defaults={'value': value, 'decision': decision},
    )
    logger.info(
        "Vote %s by %s on option %s (%s)",
        'stored' if created else 'updated',
        participant.voter_ref,
        option.id,
        VoteValue(value).label,
    )

    if decision.status != DecisionStatus.VOTING:
        return VoteOutcome(decision=decision, vote=vote, evaluated=False, confirmed_option=None)

    confirmed = _evaluate(decision, option)
    return VoteOutcome(decision=decision, vote=vote, evaluated=True, confirmed_option=confirmed)


@transaction.atomic
def evaluate_consensus(*, decision_id: UUID, option_id: UUID) -> Optional[Option]:
    """
    Re-run the confirmation rule for one option.

    Returns:
        The confirmed Option, or None when nothing changed
    """
    decision = lock_decision(decision_id)
    option = _get_option(decision, option_id)
    return _evaluate(decision, option)


def _evaluate(decision: Decision, option: Option) -> Optional[Option]:
    """Caller must hold the decision row lock."""
    if not decision.voting_enabled or decision.status != DecisionStatus.VOTING:
        return None

    participants = list(decision.participants.all())
    total = len(participants)
    if total == 0:
        return None

    yes_voters = set(
        Vote.objects
        .filter(option=option, value=VoteValue.YES)
        .values_list('participant_id', flat=True)
    )
    mandatory = {p.id for p in participants if p.is_mandatory}
    mandatory_agreed = mandatory <= yes_voters

    # 100 * yes / total >= threshold, kept in integers
    reached = 100 * len(yes_voters) >= decision.consensus_threshold * total

    logger.debug(
        "Consensus check on %s: %d/%d yes (threshold %d%%), mandatory agreed: %s",
        option.id,
        len(yes_voters),
        total,
        decision.consensus_threshold,
        mandatory_agreed,
    )

    if not (reached and mandatory_agreed):
        return None

    decision.confirm(option)
    post_system_message(
        decision=decision,
        content=f"Consensus reached! The plan is confirmed: {option.label}.",
    )
    logger.info("Decision %s confirmed on option %s", decision.id, option.id)
    return option


@transaction.atomic
def close_voting(*, decision_id: UUID) -> Option:
    """
    End voting early and confirm the option with the most YES votes.

    Ties go to the option added first. The threshold and mandatory gate
    do not apply to an explicit close.

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        DecisionNotVotingError: If the decision is not VOTING
        NoOptionsError: If there is nothing to choose from
    """
    decision = lock_decision(decision_id)

    if decision.status != DecisionStatus.VOTING:
        raise DecisionNotVotingError(f"Decision is {decision.status}, not VOTING")

    winner = (
        decision.options
        .annotate(yes_count=Count('votes', filter=Q(votes__value=VoteValue.YES)))
        .order_by('-yes_count', 'position')
        .first()
    )
    if winner is None:
        raise NoOptionsError("No options to vote on")

    decision.confirm(winner)
    decision.disable_voting()
    post_system_message(
        decision=decision,
        content=f"Voting closed! The plan is set for: {winner.label}.",
    )
    logger.info("Voting closed on decision %s; winner %s", decision.id, winner.id)
    return winner


def consensus_snapshot(*, decision: Decision) -> List[OptionTally]:
    """Per-option tallies, in option order, for display."""
    participants = list(decision.participants.all())
    total = len(participants)
    mandatory = {p.id for p in participants if p.is_mandatory}

    options = decision.options.annotate(
        yes=Count('votes', filter=Q(votes__value=VoteValue.YES)),
        no=Count('votes', filter=Q(votes__value=VoteValue.NO)),
        maybe=Count('votes', filter=Q(votes__value=VoteValue.MAYBE)),
    ).order_by('position')

    yes_by_option = {}
    for option_id, participant_id in (
        Vote.objects
        .filter(decision=decision, value=VoteValue.YES)
        .values_list('option_id', 'participant_id')
    ):
        yes_by_option.setdefault(option_id, set()).add(participant_id)

    tallies = []
    for option in options:
        percentage = round(100 * option.yes / total, 2) if total else 0.0
        missing = len(mandatory - yes_by_option.get(option.id, set()))
        tallies.append(OptionTally(
            option=option,
            yes=option.yes,
            no=option.no,
            maybe=option.maybe,
            percentage=percentage,
            mandatory_missing=missing,
            meets_threshold=bool(total) and 100 * option.yes >= decision.consensus_threshold * total,
        ))
    return tallies


def _get_option(decision: Decision, option_id: UUID) -> Option:
    try:
        return decision.options.get(id=option_id)
    except Option.DoesNotExist:
        raise OptionNotFoundError(f"Option {option_id} not found in this decision")
