import pytest
from io import StringIO
from django.core.management import call_command

from apps.accounts.models import User, UserRole
from apps.expenses.models import GeneralExpense
from apps.inventory.models import Vehicle, BoughtType


@pytest.mark.django_db
class TestCreateSampleData:

    def run(self, *args):
        out = StringIO()
        call_command('create_sample_data', *args, stdout=out)
        return out.getvalue()

    def test_creates_dealership_data(self):
        output = self.run()

        assert 'Sample data created successfully!' in output
        assert User.objects.get(email='editor@example.com').role == UserRole.EDITOR
        assert Vehicle.objects.count() == 6
        assert Vehicle.objects.filter(is_available=True).count() == 2
        assert Vehicle.objects.filter(bought_type=BoughtType.INSTALLMENT).count() == 2
        assert Vehicle.objects.filter(owner_book_transfer__transferred=True).count() == 1
        assert GeneralExpense.objects.count() == 4

    def test_rerun_does_not_duplicate_vehicles(self):
        self.run()
        output = self.run()

        assert 'Skipped' in output
        assert Vehicle.objects.count() == 6

    def test_clear(self):
        self.run()
        self.run('--clear')

        assert Vehicle.objects.count() == 6
        assert GeneralExpense.objects.count() == 4
