"""Key/value blob storage backends."""

from sparkskills.storage.base import BlobInfo, BlobStore
from sparkskills.storage.local import LocalBlobStore
from sparkskills.storage.memory import InMemoryBlobStore

__all__ = ["BlobInfo", "BlobStore", "InMemoryBlobStore", "LocalBlobStore"]
