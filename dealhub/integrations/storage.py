import logging
from pathlib import Path
from uuid import uuid4

from dealhub.core.config import settings

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Stores attachment blobs as files under ``STORAGE_DIR``."""

    def __init__(self, root: str | None = None):
        self.root = Path(root or settings.STORAGE_DIR)

    def _path(self, key: str) -> Path:
        # keys are generated here, never taken from user input
        return self.root / key[:2] / key

    def put(self, data: bytes) -> str:
        key = uuid4().hex
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            logger.info("Blob %s already gone", key)
            return False
        path.unlink()
        return True


def get_storage() -> LocalBlobStorage:
    return LocalBlobStorage()
