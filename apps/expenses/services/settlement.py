"""
Settlement Service Module
=========================

Turns a decision's ledger into the payments that square everybody up.

Algorithm:
    1. Every payer is credited the full amount of each expense they paid.
    2. Every member of the expense's split set is debited an equal share.
       The split set is the expense's custom member list, or all
       participants for even splits.
    3. Parties owing more than ``EPSILON`` are debtors, parties owed more
       than ``EPSILON`` are creditors. Both lists are sorted by descending
       magnitude, ties by participant order.
    4. Greedy matching: the largest debtor pays the largest creditor
       ``min(debt, credit)``; whoever drops below ``EPSILON`` is done.

Greedy matching does not guarantee the fewest possible transfers
(that problem is NP-hard), but it is predictable and zeroes the ledger.

Balances are accumulated at full ``Decimal`` precision and rounded to
cents once, before matching, using running totals so the rounded
balances still net to exactly zero. Each party's transfers then add up
to its rounded balance to the cent.

Example:
    Three friends, two even expenses::

        >>> settle(
        ...     ['user:a', 'user:b', 'user:c'],
        ...     [LedgerEntry('user:a', Decimal('30'), ()),
        ...      LedgerEntry('user:b', Decimal('15'), ())],
        ... ).transfers
        [Transfer(from_ref='user:c', to_ref='user:a', amount=Decimal('15.00'))]
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, NamedTuple, Sequence
from uuid import UUID

from django.conf import settings

from apps.decisions.models import Decision, RSVPStatus
from apps.expenses.models import Expense, SplitMode

from .exceptions import DecisionNotFoundError

logger = logging.getLogger(__name__)

EPSILON = Decimal('0.01')
CENT = Decimal('0.01')


class LedgerEntry(NamedTuple):
    """One expense reduced to what settlement needs."""
    payer: str
    amount: Decimal
    split_among: Sequence[str]


class Transfer(NamedTuple):
    from_ref: str
    to_ref: str
    amount: Decimal


class Settlement(NamedTuple):
    balances: Dict[str, Decimal]
    transfers: List[Transfer]
    total: Decimal


def settle(participants: Sequence[str], entries: Iterable[LedgerEntry]) -> Settlement:
    """
    Compute balances and greedy transfers for a ledger.

    Args:
        participants: Voter refs of everyone billable, in insertion order.
            They form the split set of entries without custom members.
        entries: Ledger entries; an empty ``split_among`` means even split.

    Returns:
        Settlement with cent balances that net to zero, the transfers
        that clear them, and the ledger total (sum of amounts).
    """
    entries = list(entries)
    total = sum((entry.amount for entry in entries), Decimal('0'))

    if not participants:
        return Settlement(balances={}, transfers=[], total=total)

    balances: Dict[str, Decimal] = {ref: Decimal('0') for ref in participants}

    for entry in entries:
        balances[entry.payer] = balances.get(entry.payer, Decimal('0')) + entry.amount

        split_set = list(entry.split_among) or list(participants)
        share = entry.amount / len(split_set)
        for ref in split_set:
            balances[ref] = balances.get(ref, Decimal('0')) - share

    balances = _round_to_cents(balances)
    return Settlement(
        balances=balances,
        transfers=_greedy_transfers(balances),
        total=total,
    )


def _round_to_cents(balances: Dict[str, Decimal]) -> Dict[str, Decimal]:
    """
    Round full-precision balances to cents so they still net to zero.

    Each party gets the difference of the rounded running totals, which
    hands the rounding remainder to whoever crosses a half cent. Every
    rounded balance is within one cent of the exact one.
    """
    rounded = {}
    running = Decimal('0')
    previous = Decimal('0.00')
    for ref, balance in balances.items():
        running += balance
        # Adding zero turns a -0.00 into 0.00
        current = running.quantize(CENT, rounding=ROUND_HALF_UP) + 0
        rounded[ref] = current - previous
        previous = current
    return rounded


def _greedy_transfers(balances: Dict[str, Decimal]) -> List[Transfer]:
    # Balances are whole cents here, so every transfer is too
    order = {ref: index for index, ref in enumerate(balances)}

    debtors = [[ref, -amount] for ref, amount in balances.items() if amount < -EPSILON]
    creditors = [[ref, amount] for ref, amount in balances.items() if amount > EPSILON]
    debtors.sort(key=lambda party: (-party[1], order[party[0]]))
    creditors.sort(key=lambda party: (-party[1], order[party[0]]))

    transfers = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor, creditor = debtors[i], creditors[j]
        amount = min(debtor[1], creditor[1])

        transfers.append(Transfer(
            from_ref=debtor[0],
            to_ref=creditor[0],
            amount=amount,
        ))

        debtor[1] -= amount
        creditor[1] -= amount
        if debtor[1] < EPSILON:
            i += 1
        if creditor[1] < EPSILON:
            j += 1

    return transfers


def compute_settlement(*, decision_id: UUID) -> Settlement:
    """
    Settle the current ledger of a decision.

    Computed fresh on every call from whatever the ledger holds right now;
    nothing is persisted.

    Raises:
        DecisionNotFoundError: If the decision doesn't exist
    """
    try:
        decision = Decision.objects.get(id=decision_id)
    except Decision.DoesNotExist:
        raise DecisionNotFoundError(f"Decision with ID {decision_id} not found")

    roster = decision.participants.order_by('position')
    if settings.SETTLEMENT_EXCLUDE_NOT_GOING:
        roster = roster.exclude(rsvp_status=RSVPStatus.NOT_GOING)
    participants = [str(p.voter_ref) for p in roster]

    expenses = (
        Expense.objects
        .filter(decision=decision)
        .select_related('paid_by')
        .order_by('created_at')
    )
    entries = [
        LedgerEntry(
            payer=str(expense.paid_by.voter_ref),
            amount=expense.amount,
            split_among=expense.split_among if expense.split_mode == SplitMode.CUSTOM else (),
        )
        for expense in expenses
    ]

    result = settle(participants, entries)
    logger.info(
        "Settlement for decision %s: %d expenses, total %s, %d transfers",
        decision.id,
        len(entries),
        result.total,
        len(result.transfers),
    )
    return result
