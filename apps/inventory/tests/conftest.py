import pytest
from decimal import Decimal
from datetime import date
from django.core.files.uploadedfile import SimpleUploadedFile

from apps.accounts.identity import SYSTEM_ACTOR
from apps.inventory.models import Vehicle, Repair, Transmission, Drivetrain
from apps.inventory.services import mark_sold_paid, mark_sold_installment


class FakeStorage:
    """In-memory storage backend; ``fail_after`` makes the n+1th save fail."""

    def __init__(self, fail_after=None, fail_delete=False):
        self.files = {}
        self.deleted = []
        self.fail_after = fail_after
        self.fail_delete = fail_delete

    def save(self, name, content):
        if self.fail_after is not None and len(self.files) >= self.fail_after:
            raise IOError('storage unavailable')
        self.files[name] = content
        return name

    def url(self, name):
        return f'https://cdn.example.com/{name}'

    def delete(self, name):
        if self.fail_delete:
            raise IOError('storage unavailable')
        self.deleted.append(name)
        self.files.pop(name, None)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def make_image():
    def _make(name='car.jpg'):
        return SimpleUploadedFile(name, b'\xff\xd8\xff fake image', content_type='image/jpeg')
    return _make


@pytest.fixture
def buyer():
    return {
        'name': 'Jane Buyer',
        'phone': '+420777123456',
        'email': 'jane@example.com',
        'passport': 'P1234567',
    }


@pytest.fixture
def make_vehicle(db):
    """Factory for available vehicles (purchase 15000, asking 25000)."""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        attrs = {
            'license_no': f'TEST{counter["n"]:03d}',
            'brand': 'Toyota',
            'model': 'Corolla',
            'year': 2018,
            'engine_power': '1.8L',
            'transmission': Transmission.AUTOMATIC,
            'color': 'Silver',
            'drivetrain': Drivetrain.FWD,
            'odometer': 60000,
            'purchase_date': date(2024, 1, 10),
            'purchase_price': Decimal('15000.00'),
            'price_to_sell': Decimal('25000.00'),
        }
        attrs.update(overrides)
        return Vehicle.objects.create(**attrs)

    return _make


@pytest.fixture
def vehicle(make_vehicle):
    """Available vehicle with 2000 of repairs."""
    vehicle = make_vehicle()
    Repair.objects.create(vehicle=vehicle, description='Brakes', cost=Decimal('1200.00'))
    Repair.objects.create(vehicle=vehicle, description='Tyres', cost=Decimal('800.00'))
    return vehicle


@pytest.fixture
def cash_sold_vehicle(vehicle, buyer):
    """``vehicle`` sold for cash at the asking price."""
    return mark_sold_paid(
        vehicle.id,
        actor=SYSTEM_ACTOR,
        price=Decimal('25000.00'),
        sale_date=date(2025, 3, 1),
        odometer_at_sale=61000,
        buyer=buyer,
    )


@pytest.fixture
def installment_vehicle(vehicle, buyer):
    """``vehicle`` sold on installment: 5000 down, 20000 over 10 x 2000."""
    return mark_sold_installment(
        vehicle.id,
        actor=SYSTEM_ACTOR,
        down_payment=Decimal('5000.00'),
        remaining_amount=Decimal('20000.00'),
        months=10,
        monthly_payment=Decimal('2000.00'),
        buyer=buyer,
        start_date=date(2025, 3, 1),
    )
