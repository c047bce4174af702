"""
Shared helpers for inventory mutations.

Every state-changing service follows the same shape::

    @transaction.atomic
    def some_change(vehicle_id, *, actor, ...):
        require_actor(actor)
        vehicle = lock_vehicle(vehicle_id)
        ...guards...
        commit_vehicle(vehicle, actor, changed_fields)

``lock_vehicle`` takes a row lock and ``commit_vehicle`` increments the
revision only if nobody else did in between, so two concurrent sales of
the same vehicle cannot both succeed even on backends that ignore
``SELECT ... FOR UPDATE``.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F
from django.utils import timezone
from rest_framework.settings import api_settings

from apps.accounts.identity import actor_user, actor_label
from apps.inventory.models import Vehicle
from apps.inventory.exceptions import (
    ValidationError,
    ConflictError,
    VehicleNotFoundError,
)


def lock_vehicle(vehicle_id, expected_revision=None) -> Vehicle:
    """
    Fetch a vehicle under a row lock.

    Raises:
        VehicleNotFoundError: Unknown or malformed id.
        ConflictError: ``expected_revision`` given and already stale.
    """
    try:
        vehicle = Vehicle.objects.select_for_update().get(pk=vehicle_id)
    except (Vehicle.DoesNotExist, DjangoValidationError, ValueError):
        raise VehicleNotFoundError(f"Vehicle with ID {vehicle_id} not found")

    if expected_revision is not None and vehicle.revision != expected_revision:
        raise ConflictError(
            f"Vehicle {vehicle.pk} was modified concurrently "
            f"(revision {vehicle.revision}, expected {expected_revision})",
            field='revision',
        )
    return vehicle


def commit_vehicle(vehicle, actor, fields=()):
    """
    Persist ``fields`` and bump the revision if it is still the one read.

    Raises:
        ConflictError: The row changed after it was read.
    """
    user = actor_user(actor)
    label = actor_label(actor)
    now = timezone.now()

    bumped = Vehicle.objects.filter(
        pk=vehicle.pk,
        revision=vehicle.revision,
    ).update(
        revision=F('revision') + 1,
        updated_by=user,
        last_actor=label,
        updated_at=now,
    )
    if not bumped:
        raise ConflictError(f"Vehicle {vehicle.pk} was modified concurrently")

    vehicle.revision += 1
    vehicle.updated_by = user
    vehicle.last_actor = label
    vehicle.updated_at = now

    if fields:
        vehicle.save(update_fields=list(fields))
    return vehicle


def provided(**values) -> dict:
    """Drop arguments left at ``None`` so serializers treat them as absent."""
    return {name: value for name, value in values.items() if value is not None}


def validate_input(serializer_class, data, *, partial=False, prefix=None):
    """
    Validate service arguments with the matching input serializer.

    The API runs the same serializers on request bodies; services run them
    again so direct callers get the same rules.

    Returns:
        The serializer's ``validated_data``.

    Raises:
        ValidationError: First failing field, as a dotted path
            (``buyer.passport``) under ``prefix``.
    """
    serializer = serializer_class(data=data, partial=partial)
    if not serializer.is_valid():
        field, message = _first_error(serializer.errors, [prefix] if prefix else [])
        raise ValidationError(f"{field}: {message}" if field else message, field=field)
    return serializer.validated_data


def _first_error(errors, path):
    if isinstance(errors, dict):
        name, detail = next(iter(errors.items()))
        if name != api_settings.NON_FIELD_ERRORS_KEY:
            path = path + [name]
        return _first_error(detail, path)
    if isinstance(errors, list):
        # many=True serializers report ``{}`` for the valid items
        return _first_error(next(item for item in errors if item), path)
    return '.'.join(path) or None, str(errors)
