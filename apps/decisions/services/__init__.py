"""
Decisions app services layer.

Services contain business logic and orchestrate operations across models.
All vote evaluation runs under a per-decision row lock.
"""

from .exceptions import (
    DecisionsServiceError,
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

from .decision_management import (
    create_decision,
    get_decision_by_id,
    add_option,
    add_time_option,
    transition_decision,
    lock_decision,
)

from .participant_directory import (
    resolve_participant,
    add_participant,
    set_mandatory,
    update_rsvp,
    get_participants,
)

from .messaging import (
    post_system_message,
    get_messages,
)

from .consensus import (
    VoteOutcome,
    OptionTally,
    cast_vote,
    evaluate_consensus,
    close_voting,
    consensus_snapshot,
)

from .time_consensus import (
    SlotTally,
    cast_time_vote,
    recommended_slot,
    time_tallies,
)


__all__ = [
    # Exceptions
    'DecisionsServiceError',
    'DecisionNotFoundError',
    'OptionNotFoundError',
    'ParticipantNotFoundError',
    'NotAParticipantError',
    'AlreadyParticipantError',
    'DecisionNotVotingError',
    'InvalidVoteError',
    'InvalidStateTransitionError',
    'NoOptionsError',

    # Decision Management
    'create_decision',
    'get_decision_by_id',
    'add_option',
    'add_time_option',
    'transition_decision',
    'lock_decision',

    # Participant Directory
    'resolve_participant',
    'add_participant',
    'set_mandatory',
    'update_rsvp',
    'get_participants',

    # Messaging
    'post_system_message',
    'get_messages',

    # Consensus
    'VoteOutcome',
    'OptionTally',
    'cast_vote',
    'evaluate_consensus',
    'close_voting',
    'consensus_snapshot',

    # Time Consensus
    'SlotTally',
    'cast_time_vote',
    'recommended_slot',
    'time_tallies',
]
