"""
Vehicle CRUD around the sale core.

Images go to blob storage before the database write; if the write fails
the fresh uploads are removed again. Removing images that are no longer
referenced happens after the database change is committed, best effort.
"""

import logging
import uuid
from typing import Iterable, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, IntegrityError
from django.db.models import Q
from django.utils import timezone

from apps.accounts.identity import require_actor, actor_user, actor_label
from apps.inventory.models import Vehicle, VehicleImage, Repair, BoughtType
from apps.inventory.serializers import VehicleAttributesSerializer, RepairInputSerializer
from apps.inventory.exceptions import (
    ValidationError,
    VehicleNotFoundError,
    DuplicateLicenseError,
)

from .guards import lock_vehicle, commit_vehicle, provided, validate_input
from .image_storage import validate_images, upload_images, delete_images, vehicle_folder

logger = logging.getLogger(__name__)


def vehicle_queryset():
    """Vehicles with every row the sale state and profit need."""
    return (
        Vehicle.objects
        .select_related('sale', 'installment', 'owner_book_transfer', 'created_by', 'updated_by')
        .prefetch_related('images', 'repairs', 'installment__payments')
    )


def get_vehicle(vehicle_id: UUID) -> Vehicle:
    """
    Raises:
        VehicleNotFoundError: Unknown or malformed id.
    """
    try:
        return vehicle_queryset().get(pk=vehicle_id)
    except (Vehicle.DoesNotExist, DjangoValidationError, ValueError):
        raise VehicleNotFoundError(f"Vehicle with ID {vehicle_id} not found")


def filter_vehicles(
    *,
    status: Optional[str] = None,
    brand: Optional[str] = None,
    year: Optional[int] = None,
    transmission: Optional[str] = None,
    drivetrain: Optional[str] = None,
    search: Optional[str] = None,
):
    """Inventory listing filters; all arguments are optional."""
    queryset = vehicle_queryset()

    if status == 'available':
        queryset = queryset.filter(is_available=True)
    elif status == 'sold':
        queryset = queryset.filter(is_available=False)
    elif status == 'paid':
        queryset = queryset.filter(bought_type=BoughtType.PAID)
    elif status == 'installment':
        queryset = queryset.filter(bought_type=BoughtType.INSTALLMENT)
    elif status == 'transferred':
        queryset = queryset.filter(owner_book_transfer__transferred=True)
    elif status:
        raise ValidationError(f"Unknown status filter: {status}", field='status')

    if brand:
        queryset = queryset.filter(brand__iexact=brand)
    if year:
        queryset = queryset.filter(year=year)
    if transmission:
        queryset = queryset.filter(transmission=transmission)
    if drivetrain:
        queryset = queryset.filter(drivetrain=drivetrain)
    if search:
        queryset = queryset.filter(
            Q(brand__icontains=search) |
            Q(model__icontains=search) |
            Q(license_no__icontains=search)
        )
    return queryset


def _clean_attributes(attributes, *, partial):
    allowed = VehicleAttributesSerializer().fields
    unknown = set(attributes) - set(allowed)
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"{name} cannot be set on a vehicle", field=name)
    return validate_input(VehicleAttributesSerializer, attributes, partial=partial)


def _clean_repair(repair):
    if not isinstance(repair, dict):
        raise ValidationError("repairs must be a list of objects", field='repairs')
    row = dict(validate_input(RepairInputSerializer, provided(**repair), prefix='repairs'))
    row.setdefault('repair_date', timezone.localdate())
    return row


def _ensure_unique_license(license_no, exclude_id=None):
    if not license_no:
        return
    clash = Vehicle.objects.filter(license_no=license_no)
    if exclude_id is not None:
        clash = clash.exclude(pk=exclude_id)
    if clash.exists():
        raise DuplicateLicenseError(
            f"A vehicle with license number {license_no} already exists",
            field='license_no',
        )


def _add_images(vehicle, uploaded, start=0):
    VehicleImage.objects.bulk_create([
        VehicleImage(
            vehicle=vehicle,
            url=image['url'],
            storage_id=image['storage_id'],
            position=start + index,
        )
        for index, image in enumerate(uploaded)
    ])


def create_vehicle(
    *,
    actor,
    images: Iterable = (),
    repairs: Iterable = (),
    storage=None,
    **attributes,
) -> Vehicle:
    """
    Take a vehicle into inventory.

    Args:
        actor: Caller identity.
        images: Uploaded files (jpg/png), at most ``MAX_VEHICLE_IMAGES``.
        repairs: Iterable of ``{'description', 'cost', 'repair_date'}``.
        storage: Storage backend; defaults to ``default_storage``.
        **attributes: Vehicle fields.

    Raises:
        ValidationError: Missing or invalid attributes.
        DuplicateLicenseError: License number already in use.
    """
    require_actor(actor)
    images = list(images)
    cleaned = _clean_attributes(attributes, partial=False)
    repair_rows = [_clean_repair(repair) for repair in repairs]
    validate_images(images)
    _ensure_unique_license(cleaned.get('license_no'))

    vehicle_id = uuid.uuid4()
    uploaded = upload_images(images, folder=vehicle_folder(vehicle_id), storage=storage) if images else []

    try:
        with transaction.atomic():
            vehicle = Vehicle.objects.create(
                id=vehicle_id,
                created_by=actor_user(actor),
                updated_by=actor_user(actor),
                last_actor=actor_label(actor),
                **cleaned,
            )
            _add_images(vehicle, uploaded)
            Repair.objects.bulk_create([Repair(vehicle=vehicle, **row) for row in repair_rows])
    except IntegrityError:
        delete_images([image['storage_id'] for image in uploaded], storage=storage)
        # A plate registered concurrently; any other constraint propagates
        _ensure_unique_license(cleaned.get('license_no'))
        raise
    except Exception:
        delete_images([image['storage_id'] for image in uploaded], storage=storage)
        raise

    logger.info("Vehicle %s created by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)


def update_vehicle(
    vehicle_id: UUID,
    *,
    actor,
    new_images: Iterable = (),
    keep_image_ids: Optional[Iterable[str]] = None,
    replace_images: bool = True,
    repairs: Optional[Iterable] = None,
    storage=None,
    expected_revision: Optional[int] = None,
    **attributes,
) -> Vehicle:
    """
    Edit descriptive and commercial attributes, images and repairs.

    Image handling:
        - new images with ``replace_images`` drop every existing image
        - otherwise ``keep_image_ids`` (if given) selects the images to keep
        - new images are appended after the kept ones

    ``repairs`` replaces the whole repair list when given.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        ValidationError: Invalid values, license change, odometer decrease.
        DuplicateLicenseError: License number already in use.
    """
    require_actor(actor)
    new_images = list(new_images)
    cleaned = _clean_attributes(attributes, partial=True)
    repair_rows = None if repairs is None else [_clean_repair(repair) for repair in repairs]

    current = get_vehicle(vehicle_id)
    current_images = list(current.images.all())
    if new_images and replace_images:
        kept = []
    elif keep_image_ids is not None:
        keep = {str(storage_id) for storage_id in keep_image_ids}
        kept = [image for image in current_images if image.storage_id in keep]
    else:
        kept = current_images
    validate_images(new_images, existing_count=len(kept))

    uploaded = upload_images(new_images, folder=vehicle_folder(current.pk), storage=storage) if new_images else []
    removed = []

    try:
        with transaction.atomic():
            vehicle = lock_vehicle(vehicle_id, expected_revision)

            license_no = cleaned.get('license_no')
            if 'license_no' in cleaned and license_no != vehicle.license_no:
                if vehicle.license_no:
                    raise ValidationError(
                        "license_no cannot be changed once set",
                        field='license_no',
                    )
                _ensure_unique_license(license_no, exclude_id=vehicle.pk)

            if 'odometer' in cleaned and cleaned['odometer'] < vehicle.odometer:
                raise ValidationError(
                    f"odometer cannot decrease below {vehicle.odometer}",
                    field='odometer',
                )

            for name, value in cleaned.items():
                setattr(vehicle, name, value)

            kept_ids = {image.pk for image in kept}
            removed = [image for image in current_images if image.pk not in kept_ids]
            if removed:
                VehicleImage.objects.filter(pk__in=[image.pk for image in removed]).delete()
            if uploaded:
                _add_images(vehicle, uploaded, start=len(kept))

            if repair_rows is not None:
                vehicle.repairs.all().delete()
                Repair.objects.bulk_create([Repair(vehicle=vehicle, **row) for row in repair_rows])

            commit_vehicle(vehicle, actor, list(cleaned))
    except Exception:
        delete_images([image['storage_id'] for image in uploaded], storage=storage)
        raise

    if removed:
        delete_images([image.storage_id for image in removed], storage=storage)

    logger.info("Vehicle %s updated by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)


@transaction.atomic
def add_repair(
    vehicle_id: UUID,
    *,
    actor,
    description: str,
    cost,
    repair_date=None,
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """Append a repair; allowed in every sale state."""
    require_actor(actor)
    row = _clean_repair({'description': description, 'cost': cost, 'repair_date': repair_date})
    vehicle = lock_vehicle(vehicle_id, expected_revision)
    Repair.objects.create(vehicle=vehicle, **row)
    commit_vehicle(vehicle, actor)

    logger.info("Vehicle %s repair of %s added by %s", vehicle.pk, row['cost'], actor_label(actor))
    return get_vehicle(vehicle.pk)


def delete_vehicle(vehicle_id: UUID, *, actor, storage=None) -> None:
    """
    Remove a vehicle with its sale rows and stored images.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
    """
    require_actor(actor)
    with transaction.atomic():
        vehicle = lock_vehicle(vehicle_id)
        storage_ids = list(vehicle.images.values_list('storage_id', flat=True))
        vehicle_pk = vehicle.pk
        vehicle.delete()

    deleted = delete_images(storage_ids, storage=storage)
    logger.info(
        "Vehicle %s deleted by %s (%s/%s images removed)",
        vehicle_pk, actor_label(actor), deleted, len(storage_ids),
    )
