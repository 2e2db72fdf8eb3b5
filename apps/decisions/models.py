# ==========================================
# apps/decisions/models.py
# ==========================================

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Max, Q
import uuid

from .voter_ref import VoterRef


class DecisionStatus(models.TextChoices):
    PLANNING = 'PLANNING', 'Planning'
    VOTING = 'VOTING', 'Voting'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


# Forward-only lifecycle; CANCELLED is reachable from every non-terminal state.
ALLOWED_TRANSITIONS = {
    DecisionStatus.PLANNING: {DecisionStatus.VOTING, DecisionStatus.CANCELLED},
    DecisionStatus.VOTING: {DecisionStatus.CONFIRMED, DecisionStatus.CANCELLED},
    DecisionStatus.CONFIRMED: {DecisionStatus.COMPLETED, DecisionStatus.CANCELLED},
    DecisionStatus.COMPLETED: set(),
    DecisionStatus.CANCELLED: set(),
}


class RSVPStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    GOING = 'GOING', 'Going'
    MAYBE = 'MAYBE', 'Maybe'
    NOT_GOING = 'NOT_GOING', 'Not going'


class VoteValue(models.IntegerChoices):
    NO = 0, 'No'
    YES = 1, 'Yes'
    MAYBE = 2, 'Maybe'


class MessageKind(models.TextChoices):
    SYSTEM = 'SYSTEM', 'System'


class Decision(models.Model):
    """A coordination event (hangout) choosing one option among candidates."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=DecisionStatus.choices,
        default=DecisionStatus.PLANNING
    )
    consensus_threshold = models.PositiveSmallIntegerField(
        default=60,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    voting_enabled = models.BooleanField(default=True)
    final_option = models.ForeignKey(
        'decisions.Option',
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'decisions'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='decision_status_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.status})"

    def can_transition_to(self, new_status):
        return new_status in ALLOWED_TRANSITIONS[DecisionStatus(self.status)]

    def _transition(self, new_status, extra_fields=()):
        from .services.exceptions import InvalidStateTransitionError

        if not self.can_transition_to(new_status):
            raise InvalidStateTransitionError(
                f"Cannot move decision from {self.status} to {new_status}"
            )
        self.status = new_status
        self.save(update_fields=['status', *extra_fields, 'updated_at'])

    def open_voting(self):
        self._transition(DecisionStatus.VOTING)

    def confirm(self, option):
        """Lock in the winning option. Only ever succeeds once per decision."""
        from .services.exceptions import InvalidStateTransitionError

        if self.final_option_id is not None:
            raise InvalidStateTransitionError("Decision already has a final option")
        if option.decision_id != self.id:
            raise InvalidStateTransitionError("Option belongs to another decision")
        self.final_option = option
        self._transition(DecisionStatus.CONFIRMED, extra_fields=('final_option',))

    def complete(self):
        self._transition(DecisionStatus.COMPLETED)

    def cancel(self):
        self._transition(DecisionStatus.CANCELLED)

    def disable_voting(self):
        self.voting_enabled = False
        self.save(update_fields=['voting_enabled', 'updated_at'])

    @property
    def accepts_ballots(self):
        """Options and votes are mutable only before confirmation."""
        return self.status in (DecisionStatus.PLANNING, DecisionStatus.VOTING)


class PositionedModel(models.Model):
    """Assigns a per-decision insertion position on first save."""

    position = models.PositiveIntegerField(editable=False)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.position is None:
            current = (
                type(self).objects
                .filter(decision_id=self.decision_id)
                .aggregate(top=Max('position'))['top']
            )
            self.position = 0 if current is None else current + 1
        super().save(*args, **kwargs)


class Participant(PositionedModel):
    """A registered user or a guest attached to one decision."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    decision = models.ForeignKey(Decision, on_delete=models.CASCADE, related_name='participants')

    # Opaque references into the external identity directory
    user_ref = models.CharField(max_length=64, null=True, blank=True)
    guest_ref = models.CharField(max_length=64, null=True, blank=True)
    display_name = models.CharField(max_length=100, blank=True)

    is_mandatory = models.BooleanField(default=False)
    rsvp_status = models.CharField(
        max_length=20,
        choices=RSVPStatus.choices,
        default=RSVPStatus.PENDING
    )
    responded_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'decision_participants'
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(user_ref__isnull=False, guest_ref__isnull=True)
                    | Q(user_ref__isnull=True, guest_ref__isnull=False)
                ),
                name='participant_exactly_one_identity',
            ),
            models.UniqueConstraint(
                fields=['decision', 'user_ref'],
                name='unique_user_participant',
            ),
            models.UniqueConstraint(
                fields=['decision', 'guest_ref'],
                name='unique_guest_participant',
            ),
        ]
        indexes = [
            models.Index(fields=['decision', 'is_mandatory'], name='participant_mandatory_idx'),
        ]
        ordering = ['position']

    def __str__(self):
        return f"{self.display_name or self.voter_ref} in {self.decision.title}"

    @property
    def voter_ref(self):
        if self.user_ref is not None:
            return VoterRef.user(self.user_ref)
        return VoterRef.guest(self.guest_ref)


class Option(PositionedModel):
    """Candidate activity within a decision."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    decision = models.ForeignKey(Decision, on_delete=models.CASCADE, related_name='options')
    label = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'decision_options'
        ordering = ['position']

    def __str__(self):
        return self.label


class Vote(models.Model):
    """One ballot per (option, participant); re-voting overwrites the value."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    decision = models.ForeignKey(Decision, on_delete=models.CASCADE, related_name='votes')
    option = models.ForeignKey(Option, on_delete=models.CASCADE, related_name='votes')
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name='votes')
    value = models.SmallIntegerField(choices=VoteValue.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'decision_votes'
        unique_together = [['option', 'participant']]
        indexes = [
            models.Index(fields=['option', 'value'], name='vote_option_value_idx'),
        ]

    def __str__(self):
        return f"{self.participant.voter_ref} -> {self.option.label}: {self.get_value_display()}"


class TimeOption(PositionedModel):
    """Candidate time slot within a decision."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    decision = models.ForeignKey(Decision, on_delete=models.CASCADE, related_name='time_options')
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField(null=True, blank=True)
    label = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'decision_time_options'
        ordering = ['position']

    def __str__(self):
        return self.label or self.starts_at.isoformat()


class TimeVote(models.Model):
    """Presence marker: the row exists while the participant can make the slot."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    time_option = models.ForeignKey(TimeOption, on_delete=models.CASCADE, related_name='votes')
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name='time_votes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'decision_time_votes'
        unique_together = [['time_option', 'participant']]


class DecisionMessage(models.Model):
    """System-authored announcement posted into a decision's feed."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    decision = models.ForeignKey(Decision, on_delete=models.CASCADE, related_name='messages')
    kind = models.CharField(max_length=20, choices=MessageKind.choices, default=MessageKind.SYSTEM)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'decision_messages'
        ordering = ['created_at']

    def __str__(self):
        return self.content[:50]
