import logging
import pytest
from decimal import Decimal
from unittest.mock import patch

from django.db import IntegrityError

from apps.accounts.identity import SYSTEM_ACTOR, ActorRequiredError
from apps.inventory.models import Vehicle, VehicleImage, SaleRecord
from apps.inventory.services import (
    create_vehicle,
    update_vehicle,
    delete_vehicle,
    add_repair,
    get_vehicle,
    filter_vehicles,
    mark_sold_paid,
    transfer_ownership,
)
from apps.inventory.exceptions import (
    ValidationError,
    ConflictError,
    DuplicateLicenseError,
    VehicleNotFoundError,
)

from .conftest import FakeStorage


def vehicle_data(**overrides):
    data = {
        'license_no': 'ab123cd',
        'brand': 'Skoda',
        'model': 'Octavia',
        'year': 2019,
        'engine_power': '2.0 TDI',
        'transmission': 'Manual',
        'color': 'Blue',
        'drivetrain': 'FWD',
        'odometer': 85000,
        'purchase_date': '2024-05-01',
        'purchase_price': '12000.00',
        'price_to_sell': '16500.00',
    }
    data.update(overrides)
    return data


# =============================================================================
# Create
# =============================================================================

@pytest.mark.django_db
class TestCreateVehicle:

    def test_creates_available_vehicle(self, editor, storage, make_image):
        vehicle = create_vehicle(
            actor=editor,
            images=[make_image('front.jpg'), make_image('back.png')],
            repairs=[{'description': 'Oil change', 'cost': '150'}],
            storage=storage,
            **vehicle_data(),
        )

        assert vehicle.is_available is True
        assert vehicle.bought_type is None
        assert vehicle.license_no == 'AB123CD'
        assert vehicle.created_by == editor
        assert vehicle.purchase_price == Decimal('12000.00')
        assert vehicle.total_repair_cost == Decimal('150.00')
        assert vehicle.revision == 0

        images = list(vehicle.images.all())
        assert [image.position for image in images] == [0, 1]
        assert all(image.storage_id.startswith(f'car-showroom/{vehicle.pk}/') for image in images)
        assert images[0].url.startswith('https://cdn.example.com/')
        assert len(storage.files) == 2

    def test_license_is_optional(self, storage):
        vehicle = create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data(license_no=''))
        assert vehicle.license_no is None

    def test_duplicate_license(self, storage):
        create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data())

        with pytest.raises(DuplicateLicenseError) as exc_info:
            create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data(license_no='AB123CD '))

        assert exc_info.value.field == 'license_no'
        assert Vehicle.objects.count() == 1

    def test_other_integrity_errors_are_not_duplicates(self, storage, make_image):
        failure = IntegrityError('CHECK constraint failed: vehicle_availability_matches_bought_type')
        with patch.object(Vehicle.objects, 'create', side_effect=failure):
            with pytest.raises(IntegrityError):
                create_vehicle(
                    actor=SYSTEM_ACTOR,
                    images=[make_image('front.jpg')],
                    storage=storage,
                    **vehicle_data(),
                )

        assert len(storage.deleted) == 1
        assert not Vehicle.objects.exists()

    @pytest.mark.parametrize('field', ['brand', 'year', 'transmission', 'drivetrain',
                                       'purchase_date', 'purchase_price', 'price_to_sell'])
    def test_required_fields(self, storage, field):
        data = vehicle_data()
        del data[field]

        with pytest.raises(ValidationError) as exc_info:
            create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **data)

        assert exc_info.value.field == field

    @pytest.mark.parametrize('overrides,field', [
        ({'year': 1850}, 'year'),
        ({'transmission': 'CVT'}, 'transmission'),
        ({'drivetrain': 'XWD'}, 'drivetrain'),
        ({'purchase_price': '-1'}, 'purchase_price'),
        ({'odometer': -5}, 'odometer'),
        ({'purchase_date': 'yesterday'}, 'purchase_date'),
    ])
    def test_invalid_values(self, storage, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data(**overrides))

        assert exc_info.value.field == field

    def test_sale_fields_cannot_be_set(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data(is_available=False))

        assert exc_info.value.field == 'is_available'

    def test_bad_image_extension_uploads_nothing(self, storage, make_image):
        with pytest.raises(ValidationError) as exc_info:
            create_vehicle(
                actor=SYSTEM_ACTOR,
                images=[make_image('ok.jpg'), make_image('notes.pdf')],
                storage=storage,
                **vehicle_data(),
            )

        assert exc_info.value.field == 'images'
        assert storage.files == {}

    def test_image_limit(self, storage, make_image, settings):
        settings.MAX_VEHICLE_IMAGES = 2

        with pytest.raises(ValidationError):
            create_vehicle(
                actor=SYSTEM_ACTOR,
                images=[make_image() for _ in range(3)],
                storage=storage,
                **vehicle_data(),
            )

        assert storage.files == {}

    def test_failed_upload_removes_stored_images(self, make_image):
        storage = FakeStorage(fail_after=1)

        with pytest.raises(IOError):
            create_vehicle(
                actor=SYSTEM_ACTOR,
                images=[make_image('a.jpg'), make_image('b.jpg')],
                storage=storage,
                **vehicle_data(),
            )

        assert len(storage.deleted) == 1
        assert storage.files == {}
        assert Vehicle.objects.count() == 0

    def test_failed_write_removes_uploads(self, storage, make_image):
        with patch('apps.inventory.services.vehicle_management._add_images', side_effect=RuntimeError('db down')):
            with pytest.raises(RuntimeError):
                create_vehicle(
                    actor=SYSTEM_ACTOR,
                    images=[make_image('a.jpg')],
                    storage=storage,
                    **vehicle_data(),
                )

        assert storage.files == {}
        assert len(storage.deleted) == 1
        assert Vehicle.objects.count() == 0

    def test_cleanup_failure_is_logged(self, make_image, caplog):
        storage = FakeStorage(fail_delete=True)

        with patch('apps.inventory.services.vehicle_management._add_images', side_effect=RuntimeError('db down')):
            with caplog.at_level(logging.WARNING, logger='apps.inventory.services.image_storage'):
                with pytest.raises(RuntimeError):
                    create_vehicle(
                        actor=SYSTEM_ACTOR,
                        images=[make_image('a.jpg')],
                        storage=storage,
                        **vehicle_data(),
                    )

        assert 'Failed to delete image' in caplog.text

    def test_actor_required(self, storage):
        with pytest.raises(ActorRequiredError):
            create_vehicle(actor=None, storage=storage, **vehicle_data())


# =============================================================================
# Update
# =============================================================================

@pytest.mark.django_db
class TestUpdateVehicle:

    @pytest.fixture
    def listed(self, storage, make_image):
        return create_vehicle(
            actor=SYSTEM_ACTOR,
            images=[make_image('one.jpg'), make_image('two.jpg')],
            storage=storage,
            **vehicle_data(),
        )

    def test_updates_attributes(self, listed, storage, editor):
        updated = update_vehicle(
            listed.id,
            actor=editor,
            storage=storage,
            price_to_sell='15900.00',
            color=' Dark Blue ',
            odometer=86000,
        )

        assert updated.price_to_sell == Decimal('15900.00')
        assert updated.color == 'Dark Blue'
        assert updated.odometer == 86000
        assert updated.updated_by == editor
        assert updated.last_actor == 'editor@example.com'
        assert updated.revision == listed.revision + 1

    def test_replace_images(self, listed, storage, make_image):
        old_ids = set(listed.images.values_list('storage_id', flat=True))

        updated = update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, new_images=[make_image('new.png')])

        images = list(updated.images.all())
        assert len(images) == 1
        assert images[0].storage_id.endswith('.png')
        assert set(storage.deleted) == old_ids

    def test_keep_selected_images(self, listed, storage, make_image):
        first, second = listed.images.all()

        updated = update_vehicle(
            listed.id,
            actor=SYSTEM_ACTOR,
            storage=storage,
            new_images=[make_image('three.jpg')],
            replace_images=False,
            keep_image_ids=[first.storage_id],
        )

        images = list(updated.images.all())
        assert [image.storage_id for image in images][0] == first.storage_id
        assert [image.position for image in images] == [0, 1]
        assert storage.deleted == [second.storage_id]

    def test_without_images_keeps_existing(self, listed, storage):
        updated = update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, model='Octavia RS')

        assert updated.images.count() == 2
        assert storage.deleted == []

    def test_image_limit_counts_kept_images(self, listed, storage, make_image, settings):
        settings.MAX_VEHICLE_IMAGES = 2

        with pytest.raises(ValidationError):
            update_vehicle(
                listed.id,
                actor=SYSTEM_ACTOR,
                storage=storage,
                new_images=[make_image()],
                replace_images=False,
            )

    def test_failed_update_removes_new_uploads(self, listed, storage, make_image):
        with pytest.raises(ValidationError):
            update_vehicle(
                listed.id,
                actor=SYSTEM_ACTOR,
                storage=storage,
                new_images=[make_image('new.jpg')],
                odometer=100,
            )

        assert len(storage.deleted) == 1
        assert VehicleImage.objects.filter(vehicle_id=listed.id).count() == 2

    def test_license_cannot_change(self, listed, storage):
        with pytest.raises(ValidationError) as exc_info:
            update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, license_no='ZZ999ZZ')

        assert exc_info.value.field == 'license_no'

    def test_same_license_is_accepted(self, listed, storage):
        updated = update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, license_no='ab123cd')
        assert updated.license_no == 'AB123CD'

    def test_license_can_be_set_once(self, storage):
        vehicle = create_vehicle(actor=SYSTEM_ACTOR, storage=storage, **vehicle_data(license_no=None))

        updated = update_vehicle(vehicle.id, actor=SYSTEM_ACTOR, storage=storage, license_no='new1')
        assert updated.license_no == 'NEW1'

    def test_license_set_to_existing_value(self, listed, storage, make_vehicle):
        other = make_vehicle(license_no=None)

        with pytest.raises(DuplicateLicenseError):
            update_vehicle(other.id, actor=SYSTEM_ACTOR, storage=storage, license_no='AB123CD')

    def test_odometer_cannot_decrease(self, listed, storage):
        with pytest.raises(ValidationError) as exc_info:
            update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, odometer=1000)

        assert exc_info.value.field == 'odometer'

    def test_replace_repairs(self, vehicle, storage):
        updated = update_vehicle(
            vehicle.id,
            actor=SYSTEM_ACTOR,
            storage=storage,
            repairs=[{'description': 'Clutch', 'cost': '900', 'repair_date': '2024-06-01'}],
        )

        assert [repair.description for repair in updated.repairs.all()] == ['Clutch']
        assert updated.total_repair_cost == Decimal('900.00')

    def test_unknown_attribute(self, listed, storage):
        with pytest.raises(ValidationError) as exc_info:
            update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, bought_type='Paid')

        assert exc_info.value.field == 'bought_type'

    def test_stale_revision(self, listed, storage):
        update_vehicle(listed.id, actor=SYSTEM_ACTOR, storage=storage, color='Red')

        with pytest.raises(ConflictError):
            update_vehicle(
                listed.id,
                actor=SYSTEM_ACTOR,
                storage=storage,
                color='Green',
                expected_revision=listed.revision,
            )

        assert get_vehicle(listed.id).color == 'Red'

    def test_sold_vehicle_stays_sold(self, cash_sold_vehicle, storage):
        updated = update_vehicle(cash_sold_vehicle.id, actor=SYSTEM_ACTOR, storage=storage, color='Black')

        assert updated.is_available is False
        assert updated.sale.price == Decimal('25000.00')

    def test_unknown_vehicle(self, db, storage):
        with pytest.raises(VehicleNotFoundError):
            update_vehicle('00000000-0000-0000-0000-000000000000', actor=SYSTEM_ACTOR, storage=storage, color='Red')


# =============================================================================
# Repairs, delete, filters
# =============================================================================

@pytest.mark.django_db
class TestRepairsAndDelete:

    def test_add_repair(self, vehicle):
        updated = add_repair(vehicle.id, actor=SYSTEM_ACTOR, description='Battery', cost='300')

        assert updated.total_repair_cost == Decimal('2300.00')
        assert updated.revision == 1

    def test_add_repair_after_transfer(self, cash_sold_vehicle):
        transfer_ownership(cash_sold_vehicle.id, actor=SYSTEM_ACTOR)

        updated = add_repair(cash_sold_vehicle.id, actor=SYSTEM_ACTOR, description='Paint', cost='100')
        assert updated.total_repair_cost == Decimal('2100.00')

    @pytest.mark.parametrize('description,cost,field', [
        ('', '100', 'repairs.description'),
        ('Paint', '-1', 'repairs.cost'),
        ('Paint', None, 'repairs.cost'),
    ])
    def test_add_repair_validation(self, vehicle, description, cost, field):
        with pytest.raises(ValidationError) as exc_info:
            add_repair(vehicle.id, actor=SYSTEM_ACTOR, description=description, cost=cost)

        assert exc_info.value.field == field

    def test_delete_removes_rows_and_images(self, storage, make_image, buyer):
        vehicle = create_vehicle(
            actor=SYSTEM_ACTOR,
            images=[make_image()],
            storage=storage,
            **vehicle_data(),
        )
        mark_sold_paid(
            vehicle.id,
            actor=SYSTEM_ACTOR,
            price='16000',
            sale_date='2025-02-01',
            odometer_at_sale=85100,
            buyer=buyer,
        )

        delete_vehicle(vehicle.id, actor=SYSTEM_ACTOR, storage=storage)

        assert not Vehicle.objects.filter(pk=vehicle.id).exists()
        assert not SaleRecord.objects.filter(vehicle_id=vehicle.id).exists()
        assert storage.files == {}

    def test_delete_unknown(self, db, storage):
        with pytest.raises(VehicleNotFoundError):
            delete_vehicle('00000000-0000-0000-0000-000000000000', actor=SYSTEM_ACTOR, storage=storage)


@pytest.mark.django_db
class TestFilterVehicles:

    @pytest.fixture
    def stock(self, make_vehicle, buyer):
        available = make_vehicle(brand='Honda', model='Civic', year=2020)
        sold = make_vehicle(brand='Toyota', model='Yaris')
        mark_sold_paid(
            sold.id, actor=SYSTEM_ACTOR, price='9000', sale_date='2025-01-10',
            odometer_at_sale=60000, buyer=buyer,
        )
        return available, sold

    def test_status_filters(self, stock):
        available, sold = stock

        assert list(filter_vehicles(status='available')) == [available]
        assert list(filter_vehicles(status='sold')) == [sold]
        assert list(filter_vehicles(status='paid')) == [sold]
        assert list(filter_vehicles(status='installment')) == []
        assert list(filter_vehicles(status='transferred')) == []

    def test_attribute_filters(self, stock):
        available, _ = stock

        assert list(filter_vehicles(brand='honda')) == [available]
        assert list(filter_vehicles(year=2020)) == [available]
        assert list(filter_vehicles(search='civ')) == [available]

    def test_unknown_status(self, db):
        with pytest.raises(ValidationError) as exc_info:
            filter_vehicles(status='stolen')

        assert exc_info.value.field == 'status'
