"""
Domain-specific exceptions for decisions app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class DecisionsServiceError(Exception):
    """Base exception for all decisions service errors."""
    pass


class DecisionNotFoundError(DecisionsServiceError):
    """Raised when a decision does not exist."""
    pass


class OptionNotFoundError(DecisionsServiceError):
    """Raised when an option does not exist within the decision."""
    pass


class ParticipantNotFoundError(DecisionsServiceError):
    """Raised when a participant id does not exist within the decision."""
    pass


class NotAParticipantError(DecisionsServiceError):
    """Raised when a voter reference does not match any participant."""
    pass


class AlreadyParticipantError(DecisionsServiceError):
    """Raised when a voter reference is already attached to the decision."""
    pass


class DecisionNotVotingError(DecisionsServiceError):
    """Raised when ballots are cast on a decision that no longer accepts them."""
    pass


class InvalidVoteError(DecisionsServiceError):
    """Raised when a vote value is outside the accepted set."""
    pass


class InvalidStateTransitionError(DecisionsServiceError):
    """Raised when a decision status change is not allowed."""
    pass


class NoOptionsError(DecisionsServiceError):
    """Raised when voting is closed on a decision without options."""
    pass
