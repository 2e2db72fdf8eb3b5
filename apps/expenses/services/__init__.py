"""
Expenses app services layer.

Ledger mutations and on-demand settlement. Settlements are pure reads
of the ledger and are never persisted.
"""

from .exceptions import (
    ExpensesServiceError,
    InvalidExpenseError,
    ExpenseNotFoundError,
    DecisionNotFoundError,
)

from .expense_management import (
    record_expense,
    delete_expense,
    list_expenses,
)

from .settlement import (
    EPSILON,
    LedgerEntry,
    Transfer,
    Settlement,
    settle,
    compute_settlement,
)


__all__ = [
    # Exceptions
    'ExpensesServiceError',
    'InvalidExpenseError',
    'ExpenseNotFoundError',
    'DecisionNotFoundError',

    # Ledger
    'record_expense',
    'delete_expense',
    'list_expenses',

    # Settlement
    'EPSILON',
    'LedgerEntry',
    'Transfer',
    'Settlement',
    'settle',
    'compute_settlement',
]
