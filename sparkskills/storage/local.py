"""Filesystem blob store, one file per key."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sparkskills.storage.base import BlobInfo, BlobStore


class LocalBlobStore(BlobStore):
    """
    Blob store that maps each key to a file under ``root``.

    Keys use ``/`` as separator and become nested directories. The file
    mtime serves as the upload timestamp.
    """

    def __init__(self, root: Path | None = None):
        self.root = root or (Path.home() / ".sparkskills" / "store")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Key escapes store root: {key}")
        return path

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    async def put(self, key: str, body: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def list(self, prefix: str = "") -> list[BlobInfo]:
        entries: list[BlobInfo] = []
        for path in self.root.rglob("*"):
            if not path.is_file():
                continue
            key = path.relative_to(self.root).as_posix()
            if not key.startswith(prefix):
                continue
            stat = path.stat()
            entries.append(BlobInfo(
                key=key,
                size=stat.st_size,
                uploaded=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            ))
        entries.sort(key=lambda e: e.key)
        return entries
