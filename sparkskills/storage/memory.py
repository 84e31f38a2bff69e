"""In-process blob store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from sparkskills.storage.base import BlobInfo, BlobStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBlobStore(BlobStore):
    """
    Blob store backed by a dict.

    The upload timestamp comes from ``clock`` so tests can age objects
    without sleeping.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or _utcnow
        self._objects: dict[str, tuple[str, datetime]] = {}

    async def get(self, key: str) -> str | None:
        item = self._objects.get(key)
        return item[0] if item else None

    async def put(self, key: str, body: str) -> None:
        self._objects[key] = (body, self._clock())

    async def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    async def list(self, prefix: str = "") -> list[BlobInfo]:
        return [
            BlobInfo(key=key, size=len(body.encode("utf-8")), uploaded=uploaded)
            for key, (body, uploaded) in sorted(self._objects.items())
            if key.startswith(prefix)
        ]

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        return sorted(self._objects)
