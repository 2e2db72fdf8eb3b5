import pytest
from decimal import Decimal
from rest_framework.test import APIClient

from apps.decisions.models import Decision, DecisionStatus, Participant
from apps.expenses.models import Expense, SplitMode


@pytest.fixture
def api_client():
    """Return an API client; voters are identified by voter refs, not logins."""
    return APIClient()


@pytest.fixture
def decision(db):
    """Create a hangout whose costs are being shared."""
    return Decision.objects.create(
        title='Cabin weekend',
        status=DecisionStatus.VOTING,
    )


@pytest.fixture
def trio(decision):
    """Three participants P1, P2, P3 in that order."""
    return [
        Participant.objects.create(decision=decision, user_ref=f'p{i}', display_name=f'P{i}')
        for i in (1, 2, 3)
    ]


@pytest.fixture
def other_decision(db):
    """A decision with one unrelated participant."""
    decision = Decision.objects.create(title='Other plan')
    Participant.objects.create(decision=decision, guest_ref='outsider')
    return decision


@pytest.fixture
def pizza_expense(decision, trio):
    """P1 paid 30.00 for everyone."""
    return Expense.objects.create(
        decision=decision,
        paid_by=trio[0],
        amount=Decimal('30.00'),
        description='Pizza',
        split_mode=SplitMode.EVEN,
    )
