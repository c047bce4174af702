"""
Domain exceptions for the reports app.

Exception Hierarchy:
    ValidationError (apps.inventory.exceptions)
    └── InvalidPeriodError

Usage:
    from apps.reports.exceptions import InvalidPeriodError

    if period not in PERIODS:
        raise InvalidPeriodError("Invalid period", field='period')
"""

from apps.inventory.exceptions import ValidationError


class InvalidPeriodError(ValidationError):
    """
    Raised when the period selector is not one of the supported values.

    Valid periods are: monthly, 6months, yearly.
    """

    code = 'invalid_period'
