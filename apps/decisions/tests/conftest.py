import pytest
from datetime import timedelta
from django.utils import timezone
from rest_framework.test import APIClient

from apps.decisions.models import Decision, DecisionStatus, Option, Participant, TimeOption


@pytest.fixture
def api_client():
    """Return an API client; voters are identified by voter refs, not logins."""
    return APIClient()


@pytest.fixture
def planning_decision(db):
    """Create a decision still in PLANNING."""
    return Decision.objects.create(
        title='Friday hangout',
        description='Where do we go?',
        consensus_threshold=60,
    )


@pytest.fixture
def decision(db):
    """Create a decision open for voting with a 60% threshold."""
    return Decision.objects.create(
        title='Saturday dinner',
        status=DecisionStatus.VOTING,
        consensus_threshold=60,
    )


@pytest.fixture
def add_participants():
    """Factory attaching ``user:p1`` .. ``user:pN`` to a decision."""
    def _add(decision, count, mandatory=()):
        return [
            Participant.objects.create(
                decision=decision,
                user_ref=f'p{i}',
                display_name=f'Person {i}',
                is_mandatory=i in mandatory,
            )
            for i in range(1, count + 1)
        ]
    return _add


@pytest.fixture
def participants(decision, add_participants):
    """Four participants; p1 is mandatory."""
    return add_participants(decision, 4, mandatory=(1,))


@pytest.fixture
def guest(decision):
    """A guest participant on the voting decision."""
    return Participant.objects.create(
        decision=decision,
        guest_ref='g-42',
        display_name='Guest',
    )


@pytest.fixture
def options(decision):
    """Two candidate options, pizza first."""
    return [
        Option.objects.create(decision=decision, label='Pizza'),
        Option.objects.create(decision=decision, label='Sushi'),
    ]


@pytest.fixture
def time_options(decision):
    """Two candidate time slots, Friday first."""
    start = timezone.now() + timedelta(days=3)
    return [
        TimeOption.objects.create(decision=decision, starts_at=start, label='Friday 19:00'),
        TimeOption.objects.create(
            decision=decision,
            starts_at=start + timedelta(days=1),
            label='Saturday 19:00'
        ),
    ]
