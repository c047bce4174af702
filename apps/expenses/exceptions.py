"""
Domain exceptions for the expenses app.

Expense services reuse the inventory error categories so the shared DRF
exception handler renders them the same way.

Exception Hierarchy:
    NotFoundError (apps.inventory.exceptions)
    └── ExpenseNotFoundError
"""

from apps.inventory.exceptions import NotFoundError, ValidationError


class ExpenseNotFoundError(NotFoundError):
    """Raised when expense does not exist."""

    code = 'expense_not_found'


__all__ = ['ExpenseNotFoundError', 'ValidationError']
