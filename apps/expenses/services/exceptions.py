"""
Domain exceptions for expenses app.

This module defines the exception hierarchy for ledger and settlement
errors. Views catch these and convert them to HTTP responses:

    try:
        expense = record_expense(...)
    except ExpensesServiceError as e:
        return Response({'error': str(e)}, status=400)
"""


class ExpensesServiceError(Exception):
    """Base exception for expense service errors."""
    pass


class InvalidExpenseError(ExpensesServiceError):
    """
    Raised when an expense fails validation before it reaches the ledger.

    Non-positive amount, empty description, or an invalid split set.
    """
    pass


class ExpenseNotFoundError(ExpensesServiceError):
    """Raised when an expense does not exist."""
    pass


class DecisionNotFoundError(ExpensesServiceError):
    """Raised when the decision owning the ledger does not exist."""
    pass
