"""
General expense ledger services.

Expenses are dealership running costs (rent, salaries, advertising). They
are reported per period next to vehicle profit; see
``apps.reports.reporting.ProfitReports.net_profit_report``.

Grouping follows the reporting period:

    monthly          - one bucket per local day, newest first, with the
                       expenses of that day
    6months, yearly  - one bucket per local month, newest first, with the
                       month total and expense count
"""

import datetime
import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Sum, Count, QuerySet
from django.utils import timezone

from apps.accounts.identity import require_actor, actor_user, actor_label
from apps.inventory.services.guards import provided, validate_input
from apps.reports.periods import MONTHLY, get_period_range

from .exceptions import ExpenseNotFoundError, ValidationError
from .models import GeneralExpense
from .serializers import ExpenseInputSerializer, ExpenseUpdateSerializer, ExpenseFilterSerializer

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


# =============================================================================
# Input helpers
# =============================================================================

def _range_bound(value, field, *, end_of_day=False):
    """
    A ``list_expenses`` bound as an aware datetime.

    Dates and ISO date strings cover the whole local day: midnight for the
    start, 23:59:59.999999 with ``end_of_day``.
    """
    if value is None or isinstance(value, datetime.datetime):
        if value is not None and timezone.is_naive(value):
            return timezone.make_aware(value)
        return value
    day = validate_input(ExpenseFilterSerializer, {field: value})[field]
    moment = datetime.time.max if end_of_day else datetime.time.min
    return timezone.make_aware(datetime.datetime.combine(day, moment))


# =============================================================================
# CRUD
# =============================================================================

def get_expense(expense_id: UUID) -> GeneralExpense:
    """
    Raises:
        ExpenseNotFoundError: Unknown or malformed id.
    """
    try:
        return GeneralExpense.objects.select_related('created_by').get(pk=expense_id)
    except (GeneralExpense.DoesNotExist, DjangoValidationError, ValueError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")


def _lock_expense(expense_id):
    try:
        return GeneralExpense.objects.select_for_update().get(pk=expense_id)
    except (GeneralExpense.DoesNotExist, DjangoValidationError, ValueError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")


@transaction.atomic
def create_expense(
    *,
    actor,
    title: str,
    amount,
    description: str = '',
    expense_date=None,
) -> GeneralExpense:
    """
    Record a general expense.

    Args:
        actor: Caller identity.
        title: Up to 200 characters.
        amount: Non-negative amount.
        description: Up to 1000 characters.
        expense_date: Datetime or ISO 8601 string; defaults to now.

    Raises:
        ValidationError: Missing title, negative amount, bad date.
    """
    require_actor(actor)
    data = validate_input(ExpenseInputSerializer, provided(
        title=title,
        amount=amount,
        description=description,
        expense_date=expense_date,
    ))
    data.setdefault('expense_date', timezone.now())
    expense = GeneralExpense.objects.create(created_by=actor_user(actor), **data)

    logger.info("Expense %s (%s) created by %s", expense.pk, expense.amount, actor_label(actor))
    return expense


@transaction.atomic
def update_expense(expense_id: UUID, *, actor, **changes) -> GeneralExpense:
    """
    Change any of ``title``, ``description``, ``amount``, ``expense_date``.

    Raises:
        ExpenseNotFoundError: Unknown expense.
        ValidationError: Unknown field or invalid value.
    """
    require_actor(actor)
    unknown = set(changes) - set(ExpenseUpdateSerializer().fields)
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"{name} cannot be set on an expense", field=name)

    data = validate_input(ExpenseUpdateSerializer, changes, partial=True)

    expense = _lock_expense(expense_id)
    for name, value in data.items():
        setattr(expense, name, value)
    expense.save(update_fields=list(data) + ['updated_at'])

    logger.info("Expense %s updated by %s", expense.pk, actor_label(actor))
    return expense


@transaction.atomic
def delete_expense(expense_id: UUID, *, actor) -> None:
    """
    Raises:
        ExpenseNotFoundError: Unknown expense.
    """
    require_actor(actor)
    expense = _lock_expense(expense_id)
    expense_pk = expense.pk
    expense.delete()

    logger.info("Expense %s deleted by %s", expense_pk, actor_label(actor))


# =============================================================================
# Queries
# =============================================================================

def list_expenses(start=None, end=None) -> QuerySet:
    """
    Expenses newest first, optionally bounded (inclusive) by ``start``/``end``.

    Bare dates cover whole local days.
    """
    queryset = GeneralExpense.objects.select_related('created_by')
    start = _range_bound(start, 'start_date')
    end = _range_bound(end, 'end_date', end_of_day=True)

    if start and end and start > end:
        raise ValidationError("start_date must be before end_date", field='start_date')
    if start:
        queryset = queryset.filter(expense_date__gte=start)
    if end:
        queryset = queryset.filter(expense_date__lte=end)
    return queryset.order_by('-expense_date', '-created_at')


def expenses_in_range(start, end):
    """All expenses with ``start <= expense_date <= end`` as a list."""
    return list(list_expenses(start, end))


def expense_totals(expenses) -> dict:
    """``{'total_amount', 'count'}`` for a queryset or a list of expenses."""
    if isinstance(expenses, QuerySet):
        totals = expenses.aggregate(total=Sum('amount'), count=Count('id'))
        return {'total_amount': totals['total'] or ZERO, 'count': totals['count']}
    return {
        'total_amount': sum((expense.amount for expense in expenses), ZERO),
        'count': len(expenses),
    }


def group_expenses(expenses, period: str) -> list:
    """
    Bucket expenses for display.

    Returns:
        list: For ``monthly``, ``[{'date': 'YYYY-MM-DD', 'expenses': [...]}]``;
            otherwise ``[{'month': 'YYYY-MM', 'total_amount', 'count'}]``.
            Both sorted newest first, keys in local time.
    """
    if period == MONTHLY:
        days = {}
        for expense in expenses:
            key = timezone.localtime(expense.expense_date).date().isoformat()
            days.setdefault(key, {'date': key, 'expenses': []})['expenses'].append(expense)
        return [days[key] for key in sorted(days, reverse=True)]

    months = {}
    for expense in expenses:
        key = timezone.localtime(expense.expense_date).strftime('%Y-%m')
        bucket = months.setdefault(key, {'month': key, 'total_amount': ZERO, 'count': 0})
        bucket['total_amount'] += expense.amount
        bucket['count'] += 1
    return [months[key] for key in sorted(months, reverse=True)]


def expenses_by_period(period: str, now: Optional[datetime.datetime] = None) -> dict:
    """
    Expenses of a reporting period, grouped.

    Returns:
        dict: ``{'period', 'date_range': {'start_date', 'end_date'},
            'summary': {'total_amount', 'count'}, 'data': [...]}``

    Raises:
        InvalidPeriodError: Unknown period.
    """
    start, end = get_period_range(period, now)
    return expenses_in_period(period, start, end)


def expenses_in_period(period: str, start, end) -> dict:
    """``expenses_by_period`` over an already computed ``(start, end)`` window."""
    expenses = expenses_in_range(start, end)

    return {
        'period': period,
        'date_range': {'start_date': start, 'end_date': end},
        'summary': expense_totals(expenses),
        'data': group_expenses(expenses, period),
    }
