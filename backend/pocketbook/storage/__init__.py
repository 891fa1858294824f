"""
Persistence adapters.

`base` defines the StorageAdapter / BlobAdapter contracts; `sql` and `blob`
are the production implementations, `memory` holds the in-memory doubles.
"""

from pocketbook.storage.base import BlobAdapter, StorageAdapter, image_blob_path

__all__ = ["BlobAdapter", "StorageAdapter", "image_blob_path"]
