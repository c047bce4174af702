"""
Vehicle image blob storage.

Thin adapter over Django's storage API so the backend (local filesystem,
S3 via django-storages, ...) is a settings concern. Uploads are all or
nothing; deletes are best effort and only logged.
"""

import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage

from apps.inventory.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png'}


def vehicle_folder(vehicle_id=None):
    base = getattr(settings, 'VEHICLE_IMAGE_FOLDER', 'car-showroom')
    return f"{base}/{vehicle_id}" if vehicle_id else base


def _extension(upload):
    name = getattr(upload, 'name', '') or ''
    return os.path.splitext(name)[1].lower()


def validate_images(files, *, existing_count=0):
    """
    Check extension and count before anything is uploaded.

    Raises:
        ValidationError: Unsupported format or too many images.
    """
    limit = getattr(settings, 'MAX_VEHICLE_IMAGES', 20)
    if existing_count + len(files) > limit:
        raise ValidationError(f"A vehicle can have at most {limit} images", field='images')
    for upload in files:
        if _extension(upload) not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported image format: {getattr(upload, 'name', upload)}",
                field='images',
            )


def upload_images(files, *, folder, storage=None):
    """
    Store uploaded files and return ``[{'url', 'storage_id'}]``.

    If any upload fails, the ones already stored are deleted before the
    error propagates.
    """
    storage = storage or default_storage
    stored = []
    try:
        for upload in files:
            name = f"{folder}/{uuid.uuid4().hex}{_extension(upload)}"
            storage_id = storage.save(name, upload)
            stored.append({'url': storage.url(storage_id), 'storage_id': storage_id})
    except Exception:
        delete_images([image['storage_id'] for image in stored], storage=storage)
        raise

    logger.debug("Uploaded %s image(s) to %s", len(stored), folder)
    return stored


def delete_images(storage_ids, *, storage=None):
    """Delete stored images; failures are logged and swallowed."""
    storage = storage or default_storage
    deleted = 0
    for storage_id in storage_ids:
        try:
            storage.delete(storage_id)
            deleted += 1
        except Exception:
            logger.warning("Failed to delete image %s", storage_id, exc_info=True)
    return deleted
