"""
Pocketbook Backend — Image Payload Strategies
==============================================

What:  Decides where the raw bytes of an image are read from, and whether
       they are also pushed to a blob store.
How:   Exactly one strategy is built at startup from BLOB_STORAGE_ENABLED
       and handed to the Interactor, which calls it after every image write,
       read and delete instead of checking the setting itself.

    InlinePayloads       the relational row is the only copy
    OffloadedPayloads    the row keeps a copy, but reads come from the blob
                         store at image_blob_path(account_id, image_id)

Switching the setting on a deployment that already holds images makes the
payload of older images unreadable until it is re-uploaded: the offloaded
strategy never falls back to the relational copy.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from pocketbook.config import Settings
from pocketbook.domain import Image
from pocketbook.exceptions import NotFoundError
from pocketbook.storage.base import BlobAdapter, image_blob_path


class PayloadStrategy(ABC):
    """Where image payloads live besides the relational row."""

    name: str = ""
    offloaded: bool = False

    @abstractmethod
    async def store(self, image: Image) -> None:
        """Called after the row has been written."""

    @abstractmethod
    async def load(self, image: Image) -> bytes:
        """Return the payload of an image whose row has just been read."""

    @abstractmethod
    async def remove(self, account_id: str, image_id: str) -> None:
        """Called after the row has been deleted."""

    async def ping(self) -> None:
        """Raise StoreUnavailableError when the payload location is unreachable."""


class InlinePayloads(PayloadStrategy):
    name = "inline"

    async def store(self, image: Image) -> None:
        return None

    async def load(self, image: Image) -> bytes:
        return image.payload

    async def remove(self, account_id: str, image_id: str) -> None:
        return None


class OffloadedPayloads(PayloadStrategy):
    name = "offloaded"
    offloaded = True

    def __init__(self, blob: BlobAdapter, logger: Optional[logging.Logger] = None):
        self.blob = blob
        self._logger = logger or logging.getLogger(__name__)

    async def store(self, image: Image) -> None:
        path = image_blob_path(image.account_id, image.id)
        await self.blob.put(path, image.payload)
        self._logger.debug("Payload offloaded to %s (%d bytes)", path, len(image.payload))

    async def load(self, image: Image) -> bytes:
        data = await self.blob.get(image_blob_path(image.account_id, image.id))
        if data is None:
            raise NotFoundError(resource="image payload", resource_id=image.id)
        return data

    async def remove(self, account_id: str, image_id: str) -> None:
        await self.blob.delete(image_blob_path(account_id, image_id))

    async def ping(self) -> None:
        await self.blob.ping()


def build_payload_strategy(
    settings: Settings,
    blob: Optional[BlobAdapter] = None,
    logger: Optional[logging.Logger] = None,
) -> PayloadStrategy:
    """
    Select the strategy for this process.

    `blob` overrides the filesystem store configured by BLOB_STORAGE_ROOT;
    it is ignored when blob storage is disabled.
    """
    if not settings.blob_storage_enabled:
        return InlinePayloads()
    if blob is None:
        from pocketbook.storage.blob import LocalBlobStore

        blob = LocalBlobStore(settings.blob_storage_root, logger=logger)
    return OffloadedPayloads(blob, logger=logger)
