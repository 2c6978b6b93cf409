"""Signal handlers for assets app."""

import logging

from django.core.files.storage import default_storage
from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.assets.infrastructure.storage import release_file
from server.apps.assets.models import Asset

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=Asset)
def release_asset_files(
    sender: type[Asset],
    instance: Asset,
    **kwargs: object,
) -> None:
    """Release stored file and thumbnail when an Asset record is deleted.

    Runs for every delete path (logic layer, admin, owner cascade).
    Storage failures are logged and swallowed: the record is already
    gone and orphaned objects can be cleaned up later.

    Args:
        sender: The Asset model class.
        instance: The Asset instance being deleted.
        **kwargs: Additional signal arguments.
    """
    locators = [instance.file_url, instance.thumbnail_url]
    for locator in filter(None, locators):
        logger.info(
            'Releasing storage after asset delete: %s (ID: %s)',
            locator,
            instance.pk,
        )
        release_file(default_storage, locator)
