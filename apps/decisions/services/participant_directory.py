"""
Participant directory.

Resolves voter references to participants and manages the participant
roster of a decision (mandatory flag, RSVP state).
"""

import logging
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.decisions.models import Decision, Participant, RSVPStatus
from apps.decisions.voter_ref import VoterRef, InvalidVoterRefError

from .decision_management import lock_decision
from .exceptions import (
    DecisionNotFoundError,
    NotAParticipantError,
    AlreadyParticipantError,
    ParticipantNotFoundError,
)

logger = logging.getLogger(__name__)


def resolve_participant(*, decision: Decision, voter_ref) -> Participant:
    """
    Find the participant of ``decision`` identified by ``voter_ref``.

    Raises:
        NotAParticipantError: If the reference is malformed or unknown
    """
    try:
        ref = VoterRef.parse(voter_ref)
    except InvalidVoterRefError as e:
        raise NotAParticipantError(str(e))

    try:
        return decision.participants.get(**ref.lookup())
    except Participant.DoesNotExist:
        raise NotAParticipantError(f"{ref} is not a participant of this decision")


@transaction.atomic
def add_participant(
    *,
    decision_id: UUID,
    voter_ref,
    display_name: str = '',
    is_mandatory: bool = False
) -> Participant:
    """
    Attach a registered user or guest to a decision.

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        NotAParticipantError: If the voter reference is malformed
        AlreadyParticipantError: If the reference is already attached
    """
    decision = lock_decision(decision_id)

    try:
        ref = VoterRef.parse(voter_ref)
    except InvalidVoterRefError as e:
        raise NotAParticipantError(str(e))

    if decision.participants.filter(**ref.lookup()).exists():
        raise AlreadyParticipantError(f"{ref} already participates in {decision.title}")

    try:
        participant = Participant.objects.create(
            decision=decision,
            display_name=display_name,
            is_mandatory=is_mandatory,
            **ref.lookup()
        )
    except IntegrityError:
        raise AlreadyParticipantError(f"{ref} already participates in {decision.title}")

    logger.info("Participant %s joined decision %s", ref, decision.id)
    return participant


@transaction.atomic
def set_mandatory(*, decision_id: UUID, participant_id: UUID, is_mandatory: bool) -> Participant:
    """
    Toggle whether a participant's YES is required for confirmation.

    Serialized with vote evaluation through the decision row lock.
    """
    decision = lock_decision(decision_id)

    try:
        participant = decision.participants.get(id=participant_id)
    except Participant.DoesNotExist:
        raise ParticipantNotFoundError(f"Participant {participant_id} not found in this decision")

    participant.is_mandatory = is_mandatory
    participant.save(update_fields=['is_mandatory'])
    return participant


def update_rsvp(*, decision_id: UUID, voter_ref, rsvp_status: str) -> Participant:
    """Record a participant's RSVP answer."""
    if rsvp_status not in (RSVPStatus.GOING, RSVPStatus.MAYBE, RSVPStatus.NOT_GOING):
        raise ValueError(f"Invalid RSVP status: {rsvp_status}")

    try:
        decision = Decision.objects.get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")

    participant = resolve_participant(decision=decision, voter_ref=voter_ref)
    participant.rsvp_status = rsvp_status
    participant.responded_at = timezone.now()
    participant.save(update_fields=['rsvp_status', 'responded_at'])
    return participant


def get_participants(*, decision_id: UUID) -> QuerySet[Participant]:
    """Participants in insertion order."""
    return Participant.objects.filter(decision_id=decision_id).order_by('position')
