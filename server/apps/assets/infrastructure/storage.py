"""Storage helpers for asset files and thumbnails."""

import logging

from django.core.files.storage import Storage

logger = logging.getLogger(__name__)


def release_file(storage: Storage, name: str) -> bool:
    """Delete a locator whose database record no longer exists.

    Only the generic ``exists``/``delete`` storage API is used, so any
    configured backend works. Best effort: failures are logged, never
    raised, because the record is already gone and an orphaned object
    is harmless.

    Args:
        storage: Storage backend holding the file.
        name: Storage locator to release.

    Returns:
        True if the object was deleted, False otherwise.
    """
    try:
        if not storage.exists(name):
            logger.warning(
                'File not found in storage (already deleted?): %s',
                name,
            )
            return False
        storage.delete(name)
    except Exception:
        logger.exception('Failed to release file (orphaned): %s', name)
        return False

    logger.info('File released from storage: %s', name)
    return True
