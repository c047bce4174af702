import pytest
from decimal import Decimal
from datetime import datetime
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from apps.expenses.models import GeneralExpense


@pytest.fixture
def expense(db):
    return GeneralExpense.objects.create(
        title='Showroom rent',
        amount=Decimal('1500.00'),
        expense_date=timezone.make_aware(datetime(2025, 3, 1, 9, 0)),
    )


def detail_url(expense):
    return reverse('expenses:expense-detail', kwargs={'pk': expense.pk})


# =============================================================================
# CRUD Tests
# =============================================================================

@pytest.mark.django_db
class TestExpenseAPI:
    """Tests for /api/expenses/"""

    def test_create(self, editor_client):
        response = editor_client.post(
            reverse('expenses:expense-list'),
            {'title': 'Newspaper ad', 'amount': '250.00', 'expense_date': '2025-03-10T12:00:00Z'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['title'] == 'Newspaper ad'
        assert response.data['amount'] == '250.00'
        assert response.data['created_by']['email'] == 'editor@example.com'

    def test_create_negative_amount(self, editor_client):
        response = editor_client.post(
            reverse('expenses:expense-list'),
            {'title': 'Refund?', 'amount': '-5.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'amount' in response.data

    def test_create_blank_title(self, editor_client):
        response = editor_client.post(
            reverse('expenses:expense-list'),
            {'title': '', 'amount': '5.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_with_summary(self, editor_client, expense):
        GeneralExpense.objects.create(
            title='Cleaning',
            amount=Decimal('80.00'),
            expense_date=timezone.make_aware(datetime(2025, 4, 2, 9, 0)),
        )

        response = editor_client.get(reverse('expenses:expense-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 2
        assert response.data['results'][0]['title'] == 'Cleaning'
        assert response.data['summary'] == {'total_amount': '1580.00', 'count': 2}

    def test_list_filtered_by_dates(self, editor_client, expense):
        response = editor_client.get(
            reverse('expenses:expense-list'),
            {'start_date': '2025-04-01', 'end_date': '2025-04-30'},
        )

        assert response.data['count'] == 0
        assert response.data['summary']['total_amount'] == '0.00'

    def test_list_inverted_dates(self, editor_client, db):
        response = editor_client.get(
            reverse('expenses:expense-list'),
            {'start_date': '2025-04-30', 'end_date': '2025-04-01'},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve(self, editor_client, expense):
        response = editor_client.get(detail_url(expense))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['amount'] == '1500.00'

    def test_retrieve_unknown(self, editor_client, db):
        url = reverse('expenses:expense-detail', kwargs={'pk': '00000000-0000-0000-0000-000000000000'})

        response = editor_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'expense_not_found'

    def test_partial_update(self, editor_client, expense):
        response = editor_client.patch(detail_url(expense), {'amount': '1450.00'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['amount'] == '1450.00'
        assert response.data['title'] == 'Showroom rent'

    def test_delete(self, editor_client, expense):
        response = editor_client.delete(detail_url(expense))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not GeneralExpense.objects.filter(pk=expense.pk).exists()


# =============================================================================
# Period Tests
# =============================================================================

@pytest.mark.django_db
class TestExpensePeriodAPI:
    """Tests for GET /api/expenses/period/"""

    def test_monthly_groups_by_day(self, editor_client):
        today = timezone.localtime()
        GeneralExpense.objects.create(title='Fuel', amount=Decimal('60.00'), expense_date=today)

        response = editor_client.get(reverse('expenses:expense-period'), {'period': 'monthly'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['period'] == 'monthly'
        assert response.data['summary'] == {'total_amount': '60.00', 'count': 1}
        assert response.data['data'][0]['date'] == today.date().isoformat()
        assert response.data['data'][0]['expenses'][0]['title'] == 'Fuel'

    def test_yearly_groups_by_month(self, editor_client):
        today = timezone.localtime()
        GeneralExpense.objects.create(title='Fuel', amount=Decimal('60.00'), expense_date=today)
        GeneralExpense.objects.create(title='Oil', amount=Decimal('40.00'), expense_date=today)

        response = editor_client.get(reverse('expenses:expense-period'), {'period': 'yearly'})

        assert response.data['data'] == [
            {'month': today.strftime('%Y-%m'), 'total_amount': '100.00', 'count': 2},
        ]

    def test_period_required(self, editor_client, db):
        response = editor_client.get(reverse('expenses:expense-period'))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_period(self, editor_client, db):
        response = editor_client.get(reverse('expenses:expense-period'), {'period': 'weekly'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_period'


# =============================================================================
# Permission Tests
# =============================================================================

@pytest.mark.django_db
class TestExpensePermissions:

    def test_viewer_cannot_list(self, viewer_client, expense):
        response = viewer_client.get(reverse('expenses:expense-list'))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_viewer_cannot_create(self, viewer_client, db):
        response = viewer_client.post(
            reverse('expenses:expense-list'),
            {'title': 'Ads', 'amount': '10.00'},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unauthenticated(self, api_client, db):
        response = api_client.get(reverse('expenses:expense-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_admin_can_delete(self, dealer_admin_client, expense):
        response = dealer_admin_client.delete(detail_url(expense))
        assert response.status_code == status.HTTP_204_NO_CONTENT
