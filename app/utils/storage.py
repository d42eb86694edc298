"""
Blob storage for original and signed documents
Paths are opaque, path-like keys relative to the bucket root
"""

import logging
import os
import tempfile
from pathlib import Path

from config import settings
from app.utils.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class BlobStore:
    """Blob store contract used by the signing pipeline"""

    def download(self, path: str) -> bytes:
        raise NotImplementedError

    def upload(self, path: str, data: bytes) -> None:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Filesystem blob store rooted at one bucket directory"""

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        if not path or not path.strip():
            raise StorageError("Empty storage path")

        target = (self.root / path.lstrip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Storage path escapes bucket: {path}")
        return target

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError(f"Document not found: {path}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def upload(self, path: str, data: bytes) -> None:
        """Write atomically, replacing any existing blob at the same path"""
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as buffer:
                    buffer.write(data)
                os.replace(tmp_path, target)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to store {path}: {e}") from e

        logger.info(f"Stored {len(data)} bytes at {path}")

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except StorageError:
            return False


def get_blob_store() -> BlobStore:
    """FastAPI dependency: blob store for the signature bucket"""
    return LocalBlobStore(settings.signature_storage_root)
