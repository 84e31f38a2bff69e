"""Base class for blob stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class BlobInfo:
    """A listing entry for a stored object."""

    key: str
    size: int
    uploaded: datetime


class BlobStore(ABC):
    """
    Abstract key/value blob store with prefix listing.

    Values are UTF-8 text (JSON documents in practice). Every operation
    is a suspension point; implementations may talk to remote storage.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the object body, or None if the key does not exist."""
        pass

    @abstractmethod
    async def put(self, key: str, body: str) -> None:
        """Write (or overwrite) an object."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error."""
        pass

    @abstractmethod
    async def list(self, prefix: str = "") -> list[BlobInfo]:
        """List objects whose key starts with ``prefix``, sorted by key."""
        pass
