import pytest
from decimal import Decimal
from datetime import date, datetime
from zoneinfo import ZoneInfo

from django.utils import timezone

from apps.accounts.identity import SYSTEM_ACTOR, ActorRequiredError
from apps.expenses.models import GeneralExpense
from apps.expenses.services import (
    create_expense,
    update_expense,
    delete_expense,
    get_expense,
    list_expenses,
    expenses_in_range,
    expense_totals,
    group_expenses,
    expenses_by_period,
)
from apps.expenses.exceptions import ExpenseNotFoundError, ValidationError
from apps.reports.exceptions import InvalidPeriodError


def at(*args):
    return timezone.make_aware(datetime(*args))


@pytest.fixture
def add_expense(db):
    def _add(amount, when, title='Rent'):
        return GeneralExpense.objects.create(title=title, amount=Decimal(amount), expense_date=when)
    return _add


# =============================================================================
# CRUD
# =============================================================================

@pytest.mark.django_db
class TestExpenseCrud:

    def test_create(self, editor):
        expense = create_expense(
            actor=editor,
            title='  Office rent ',
            amount='1500.00',
            description='March',
            expense_date='2025-03-01',
        )

        assert expense.title == 'Office rent'
        assert expense.amount == Decimal('1500.00')
        assert expense.created_by == editor
        assert timezone.localtime(expense.expense_date).date() == date(2025, 3, 1)

    def test_create_defaults_to_now(self):
        before = timezone.now()
        expense = create_expense(actor=SYSTEM_ACTOR, title='Drinking water', amount=0)

        assert expense.expense_date >= before
        assert expense.amount == Decimal('0')
        assert expense.description == ''

    @pytest.mark.parametrize('kwargs,field', [
        ({'title': '', 'amount': '10'}, 'title'),
        ({'title': 'x' * 201, 'amount': '10'}, 'title'),
        ({'title': 'Ads', 'amount': '-1'}, 'amount'),
        ({'title': 'Ads', 'amount': None}, 'amount'),
        ({'title': 'Ads', 'amount': '10', 'description': 'd' * 1001}, 'description'),
        ({'title': 'Ads', 'amount': '10', 'expense_date': 'soon'}, 'expense_date'),
    ])
    def test_create_validation(self, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            create_expense(actor=SYSTEM_ACTOR, **kwargs)

        assert exc_info.value.field == field
        assert GeneralExpense.objects.count() == 0

    def test_create_requires_actor(self, db):
        with pytest.raises(ActorRequiredError):
            create_expense(actor=None, title='Ads', amount='10')

    def test_update(self, add_expense):
        expense = add_expense('100.00', at(2025, 3, 1, 9))

        updated = update_expense(expense.id, actor=SYSTEM_ACTOR, amount='120.50', title='Rent (fixed)')

        assert updated.amount == Decimal('120.50')
        assert updated.title == 'Rent (fixed)'
        assert get_expense(expense.id).amount == Decimal('120.50')

    def test_update_rejects_empty_title(self, add_expense):
        expense = add_expense('100.00', at(2025, 3, 1, 9))

        with pytest.raises(ValidationError):
            update_expense(expense.id, actor=SYSTEM_ACTOR, title='  ')

    def test_update_unknown_field(self, add_expense):
        expense = add_expense('100.00', at(2025, 3, 1, 9))

        with pytest.raises(ValidationError) as exc_info:
            update_expense(expense.id, actor=SYSTEM_ACTOR, created_by=None)

        assert exc_info.value.field == 'created_by'

    def test_delete(self, add_expense):
        expense = add_expense('100.00', at(2025, 3, 1, 9))

        delete_expense(expense.id, actor=SYSTEM_ACTOR)

        assert not GeneralExpense.objects.filter(pk=expense.id).exists()

    @pytest.mark.parametrize('expense_id', ['00000000-0000-0000-0000-000000000000', 'not-a-uuid'])
    def test_unknown_expense(self, db, expense_id):
        with pytest.raises(ExpenseNotFoundError):
            get_expense(expense_id)
        with pytest.raises(ExpenseNotFoundError):
            delete_expense(expense_id, actor=SYSTEM_ACTOR)


# =============================================================================
# Listing and grouping
# =============================================================================

@pytest.mark.django_db
class TestExpenseQueries:

    def test_list_is_newest_first(self, add_expense):
        older = add_expense('10', at(2025, 1, 5, 12))
        newer = add_expense('20', at(2025, 2, 5, 12))

        assert list(list_expenses()) == [newer, older]

    def test_list_date_bounds_are_inclusive_days(self, add_expense):
        add_expense('10', at(2025, 1, 31, 23, 30))
        inside = add_expense('20', at(2025, 2, 28, 23, 59))
        add_expense('30', at(2025, 3, 1, 0, 0))

        result = list(list_expenses(date(2025, 2, 1), date(2025, 2, 28)))

        assert result == [inside]

    def test_list_rejects_inverted_range(self, db):
        with pytest.raises(ValidationError):
            list_expenses('2025-03-01', '2025-02-01')

    def test_totals(self, add_expense):
        add_expense('10.50', at(2025, 1, 5, 12))
        add_expense('20.25', at(2025, 1, 6, 12))

        assert expense_totals(list_expenses()) == {'total_amount': Decimal('30.75'), 'count': 2}
        assert expense_totals(expenses_in_range(at(2025, 1, 6), at(2025, 1, 7))) == {
            'total_amount': Decimal('20.25'),
            'count': 1,
        }

    def test_totals_of_nothing(self, db):
        assert expense_totals(list_expenses()) == {'total_amount': Decimal('0.00'), 'count': 0}

    def test_group_daily(self, add_expense):
        first = add_expense('10', at(2025, 3, 2, 9))
        second = add_expense('15', at(2025, 3, 2, 18))
        third = add_expense('20', at(2025, 3, 5, 9))

        groups = group_expenses(expenses_in_range(at(2025, 3, 1), at(2025, 3, 31)), 'monthly')

        assert [group['date'] for group in groups] == ['2025-03-05', '2025-03-02']
        assert groups[0]['expenses'] == [third]
        assert set(groups[1]['expenses']) == {first, second}

    @pytest.mark.parametrize('period', ['6months', 'yearly'])
    def test_group_monthly(self, add_expense, period):
        add_expense('100', at(2025, 1, 10, 9))
        add_expense('50', at(2025, 1, 20, 9))
        add_expense('70', at(2025, 3, 1, 9))

        groups = group_expenses(list_expenses(), period)

        assert groups == [
            {'month': '2025-03', 'total_amount': Decimal('70'), 'count': 1},
            {'month': '2025-01', 'total_amount': Decimal('150'), 'count': 2},
        ]

    def test_grouping_uses_local_time(self, add_expense, settings):
        settings.TIME_ZONE = 'Asia/Phnom_Penh'
        # 2025-03-31 20:00 UTC is already April 1st in UTC+7
        add_expense('10', datetime(2025, 3, 31, 20, 0, tzinfo=ZoneInfo('UTC')))

        groups = group_expenses(list_expenses(), 'yearly')

        assert groups[0]['month'] == '2025-04'


@pytest.mark.django_db
class TestExpensesByPeriod:

    def test_monthly(self, add_expense):
        now = at(2025, 3, 15, 10)
        add_expense('10', at(2025, 2, 28, 23, 59))
        add_expense('25', at(2025, 3, 1, 0, 0))
        add_expense('40', at(2025, 3, 15, 22, 0))
        add_expense('99', at(2025, 3, 16, 0, 0))

        result = expenses_by_period('monthly', now=now)

        assert result['period'] == 'monthly'
        assert result['summary'] == {'total_amount': Decimal('65'), 'count': 2}
        assert [group['date'] for group in result['data']] == ['2025-03-15', '2025-03-01']
        assert result['date_range']['start_date'] == at(2025, 3, 1)

    def test_six_months(self, add_expense):
        now = at(2025, 3, 15, 10)
        add_expense('10', at(2024, 9, 30, 12))
        add_expense('20', at(2024, 10, 1, 12))
        add_expense('30', at(2025, 3, 2, 12))

        result = expenses_by_period('6months', now=now)

        assert result['summary']['count'] == 2
        assert [group['month'] for group in result['data']] == ['2025-03', '2024-10']

    def test_invalid_period(self, db):
        with pytest.raises(InvalidPeriodError):
            expenses_by_period('weekly')
