import logging

from dealhub.integrations.storage import get_storage

logger = logging.getLogger(__name__)


async def purge_blobs(storage_keys: list[str]) -> None:
    """Delete stored blobs of removed attachments."""
    storage = get_storage()
    for key in storage_keys:
        try:
            storage.delete(key)
        except OSError as e:
            logger.error("Failed to purge blob %s: %s", key, e)
        else:
            logger.info("Purged blob %s", key)
