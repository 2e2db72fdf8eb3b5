"""
Expense management service.

The ledger is append/delete only; settlements are never stored, so
removing an expense needs no reconciliation.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple
from uuid import UUID

from django.db import transaction
from django.db.models import Sum

from apps.decisions.models import Decision
from apps.decisions.services import resolve_participant, NotAParticipantError
from apps.decisions.voter_ref import VoterRef, InvalidVoterRefError
from apps.expenses.models import Expense, SplitMode

from .exceptions import (
    DecisionNotFoundError,
    ExpenseNotFoundError,
    InvalidExpenseError,
)

logger = logging.getLogger(__name__)


@transaction.atomic
def record_expense(
    *,
    decision_id: UUID,
    payer_ref,
    amount,
    description: str,
    split_mode: str = SplitMode.EVEN,
    split_among: Optional[List] = None
) -> Expense:
    """
    Validate and append an expense to a decision's ledger.

    Args:
        decision_id: UUID of the decision
        payer_ref: Voter ref of the participant who paid
        amount: Positive amount; Decimal or a decimal string
        description: Non-empty description
        split_mode: EVEN (all participants) or CUSTOM
        split_among: Voter refs sharing the cost, CUSTOM only

    Returns:
        Created Expense instance

    Raises:
        DecisionNotFoundError: If decision doesn't exist
        InvalidExpenseError: If amount, description or split set is invalid
        NotAParticipantError: If the payer is not a participant
    """
    amount = _validate_amount(amount)

    description = (description or '').strip()
    if not description:
        raise InvalidExpenseError("Description is required")

    try:
        decision = Decision.objects.get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")

    members = _validate_split(decision, split_mode, split_among or [])
    payer = resolve_participant(decision=decision, voter_ref=payer_ref)

    expense = Expense.objects.create(
        decision=decision,
        paid_by=payer,
        amount=amount,
        description=description,
        split_mode=split_mode,
        split_among=members,
    )
    logger.info(
        "Expense %s recorded on decision %s: %s paid %s (%s)",
        expense.id,
        decision.id,
        payer.voter_ref,
        amount,
        split_mode,
    )
    return expense


def delete_expense(*, expense_id: UUID) -> None:
    """
    Remove an expense from its ledger.

    Raises:
        ExpenseNotFoundError: If the expense doesn't exist
    """
    deleted, _ = Expense.objects.filter(id=expense_id).delete()
    if not deleted:
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")
    logger.info("Expense %s deleted", expense_id)


def list_expenses(*, decision_id: UUID) -> Tuple[List[Expense], Decimal]:
    """Expenses newest first, plus the ledger total."""
    if not Decision.objects.filter(id=decision_id).exists():
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")

    expenses = (
        Expense.objects
        .filter(decision_id=decision_id)
        .select_related('paid_by')
        .order_by('-created_at')
    )
    total = expenses.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    return list(expenses), total


def _validate_amount(amount) -> Decimal:
    if isinstance(amount, float):
        # Floats silently lose sub-cent precision
        raise InvalidExpenseError("Amount must be a decimal, not a float")
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidExpenseError(f"Invalid amount: {amount}")

    if not amount.is_finite() or amount <= 0:
        raise InvalidExpenseError("Valid amount is required")
    if amount != amount.quantize(Decimal('0.01')):
        raise InvalidExpenseError("Amount cannot have more than 2 decimal places")
    return amount


def _validate_split(decision: Decision, split_mode: str, split_among: List) -> List[str]:
    if split_mode == SplitMode.EVEN:
        if split_among:
            raise InvalidExpenseError("Even splits cannot list members")
        return []

    if split_mode != SplitMode.CUSTOM:
        raise InvalidExpenseError(f"Invalid split mode: {split_mode}")
    if not split_among:
        raise InvalidExpenseError("Custom split requires at least one member")

    members = []
    for raw in split_among:
        try:
            ref = VoterRef.parse(raw)
        except InvalidVoterRefError as e:
            raise InvalidExpenseError(str(e))
        try:
            resolve_participant(decision=decision, voter_ref=ref)
        except NotAParticipantError:
            raise InvalidExpenseError(f"{ref} is not a participant of this decision")
        if str(ref) not in members:
            members.append(str(ref))
    return members
