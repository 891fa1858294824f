"""
Pocketbook Backend — Filesystem Blob Store
===========================================

What:  BlobAdapter implementation keeping image payloads as files under a
       configured root directory.
How:   Blob paths ("/users/<account>/images/<image>") are mapped onto the
       root; writes go to a temporary file and are renamed into place so a
       reader never sees a half-written payload and a retried put simply
       replaces the previous file.
Who:   Selected at startup when BLOB_STORAGE_ENABLED is true; used only
       through OffloadedPayloads.

Directory Structure:
    blobs/
    └── users/
        └── <account_id>/
            └── images/
                └── <image_id>
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from pocketbook.exceptions import StoreUnavailableError, ValidationError
from pocketbook.storage.base import BlobAdapter

logger = logging.getLogger(__name__)

STORE_NAME = "blob store"


class LocalBlobStore(BlobAdapter):
    """
    Blob store on a local or mounted filesystem.

    Any OSError other than "file not found" is reported as
    StoreUnavailableError: the adapter cannot tell a full disk from an
    unmounted volume, and neither says anything about the blob itself.
    """

    def __init__(self, root: str, logger: Optional[logging.Logger] = None):
        self.root = Path(root).resolve()
        self._logger = logger or logging.getLogger(__name__)
        self.root.mkdir(parents=True, exist_ok=True)
        self._logger.info("LocalBlobStore initialized with root=%s", self.root)

    def _resolve(self, path: str) -> Path:
        """Map a blob path onto the root, refusing anything that escapes it."""
        full_path = (self.root / path.lstrip("/")).resolve()
        if self.root not in full_path.parents:
            raise ValidationError(message="Invalid blob path", field="path")
        return full_path

    async def put(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        temp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp, "wb") as f:
                await f.write(data)
            os.replace(temp, target)
        except OSError as e:
            self._logger.error("Failed to write blob %s: %s", path, str(e))
            if temp.exists():
                temp.unlink()
            raise StoreUnavailableError(
                store=STORE_NAME,
                context={"operation": "put", "path": path, "os_error": str(e)},
            ) from e
        self._logger.debug("Blob stored: %s (%d bytes)", path, len(data))

    async def get(self, path: str) -> Optional[bytes]:
        target = self._resolve(path)
        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            self._logger.error("Failed to read blob %s: %s", path, str(e))
            raise StoreUnavailableError(
                store=STORE_NAME,
                context={"operation": "get", "path": path, "os_error": str(e)},
            ) from e

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            os.remove(target)
        except FileNotFoundError:
            self._logger.debug("Blob already gone: %s", path)
        except OSError as e:
            self._logger.error("Failed to delete blob %s: %s", path, str(e))
            raise StoreUnavailableError(
                store=STORE_NAME,
                context={"operation": "delete", "path": path, "os_error": str(e)},
            ) from e

    async def ping(self) -> None:
        if not self.root.is_dir() or not os.access(self.root, os.W_OK):
            raise StoreUnavailableError(store=STORE_NAME, context={"root": str(self.root)})
