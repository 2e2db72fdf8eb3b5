"""
Decision management service.

Creation, candidate options and explicit lifecycle transitions.
"""

import logging
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction

from apps.decisions.models import (
    Decision,
    DecisionStatus,
    Option,
    TimeOption,
)

from .exceptions import (
    DecisionNotFoundError,
    DecisionNotVotingError,
    InvalidStateTransitionError,
)

logger = logging.getLogger(__name__)


def create_decision(
    *,
    title: str,
    description: str = '',
    consensus_threshold: Optional[int] = None,
    voting_enabled: bool = True,
    status: str = DecisionStatus.PLANNING
) -> Decision:
    """
    Create a new decision in PLANNING or VOTING.

    Args:
        title: Human readable title
        description: Optional description
        consensus_threshold: Percentage of all participants required (0-100);
            falls back to DECISIONS_DEFAULT_CONSENSUS_THRESHOLD
        voting_enabled: Whether live consensus evaluation runs
        status: Initial status, PLANNING or VOTING

    Raises:
        InvalidStateTransitionError: If the initial status is not PLANNING/VOTING
        ValueError: If the threshold is outside 0-100
    """
    if status not in (DecisionStatus.PLANNING, DecisionStatus.VOTING):
        raise InvalidStateTransitionError(
            f"Decisions start in PLANNING or VOTING, not {status}"
        )

    if consensus_threshold is None:
        consensus_threshold = settings.DECISIONS_DEFAULT_CONSENSUS_THRESHOLD
    if not 0 <= consensus_threshold <= 100:
        raise ValueError("Consensus threshold must be between 0 and 100")

    decision = Decision.objects.create(
        title=title,
        description=description,
        consensus_threshold=consensus_threshold,
        voting_enabled=voting_enabled,
        status=status,
    )
    logger.info("Decision %s created in %s", decision.id, decision.status)
    return decision


def get_decision_by_id(*, decision_id: UUID) -> Decision:
    try:
        return Decision.objects.select_related('final_option').get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")


@transaction.atomic
def add_option(*, decision_id: UUID, label: str) -> Option:
    """
    Add a candidate option at the end of the list.

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        DecisionNotVotingError: If the decision is past voting
    """
    decision = lock_decision(decision_id)

    if not decision.accepts_ballots:
        raise DecisionNotVotingError("Cannot add options to this decision anymore")

    return Option.objects.create(decision=decision, label=label)


@transaction.atomic
def add_time_option(
    *,
    decision_id: UUID,
    starts_at,
    ends_at=None,
    label: str = ''
) -> TimeOption:
    """Add a candidate time slot at the end of the list."""
    decision = lock_decision(decision_id)

    if not decision.accepts_ballots:
        raise DecisionNotVotingError("Cannot add time options to this decision anymore")
    if ends_at is not None and ends_at <= starts_at:
        raise ValueError("Time slot must end after it starts")

    return TimeOption.objects.create(
        decision=decision,
        starts_at=starts_at,
        ends_at=ends_at,
        label=label,
    )


@transaction.atomic
def transition_decision(*, decision_id: UUID, new_status: str) -> Decision:
    """
    Apply a manual lifecycle transition.

    CONFIRMED is only reachable through consensus or closing the vote,
    since it needs a winning option.

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        InvalidStateTransitionError: If the move is not allowed
    """
    decision = lock_decision(decision_id)

    if new_status == DecisionStatus.VOTING:
        decision.open_voting()
    elif new_status == DecisionStatus.COMPLETED:
        decision.complete()
    elif new_status == DecisionStatus.CANCELLED:
        decision.cancel()
    else:
        raise InvalidStateTransitionError(
            f"Cannot move decision to {new_status} directly"
        )

    logger.info("Decision %s moved to %s", decision.id, decision.status)
    return decision


def lock_decision(decision_id: UUID) -> Decision:
    """Row-lock the decision for the rest of the current transaction."""
    try:
        return Decision.objects.select_for_update().get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")
