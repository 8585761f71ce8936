"""
Photo object storage.

Stores passport photos on the local filesystem under
``settings.photo_storage_dir`` and serves them from
``settings.photo_public_base_url``.  A CDN or bucket-backed store only has
to provide the same ``upload`` / ``delete`` coroutines.

File writes run in a worker thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from carbon_passport.config import settings
from carbon_passport.domain.errors import PhotoRejected, StorageUnavailable

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


@dataclass(frozen=True)
class PhotoUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class PhotoStorage:
    def __init__(
        self,
        root: str | Path | None = None,
        public_base_url: str | None = None,
        max_size_bytes: int | None = None,
        allowed_types: list[str] | None = None,
    ):
        self.root = Path(root or settings.photo_storage_dir)
        self.public_base_url = (public_base_url or settings.photo_public_base_url).rstrip("/")
        self.max_size_bytes = max_size_bytes or settings.max_photo_size_bytes
        self.allowed_types = list(allowed_types or settings.allowed_photo_types)

    def validate(self, photo: PhotoUpload) -> None:
        """Raise ``PhotoRejected`` for empty, oversized or non-image uploads."""
        if photo.size == 0:
            raise PhotoRejected("Photo file is empty")
        if photo.size > self.max_size_bytes:
            limit_mb = self.max_size_bytes / (1024 * 1024)
            raise PhotoRejected(
                f"Photo is too large; the maximum size is {limit_mb:g} MB"
            )
        if photo.content_type not in self.allowed_types:
            raise PhotoRejected(
                "Unsupported photo type; only JPEG, PNG and WebP are accepted"
            )

    def file_name_for(self, owner_id: str, photo: PhotoUpload) -> str:
        # Client file names are ignored; the suffix follows the validated type
        ext = _EXTENSIONS.get(photo.content_type, "jpg")
        stamp = int(time.time() * 1000)
        return f"passport-{owner_id}-{stamp}-{secrets.token_hex(3)}.{ext}"

    async def upload(self, photo: PhotoUpload, owner_id: str) -> str:
        """Validate and store *photo*; return its public URL."""
        self.validate(photo)
        name = self.file_name_for(owner_id, photo)
        target = self.root / name
        try:
            await asyncio.to_thread(self._write, target, photo.data)
        except OSError as exc:
            raise StorageUnavailable(f"Could not store photo {name}") from exc
        logger.info("Stored photo %s (%d bytes)", name, photo.size)
        return f"{self.public_base_url}/{name}"

    async def delete(self, photo_url: str) -> bool:
        name = Path(urlparse(photo_url).path).name
        if not name:
            return False
        target = self.root / name
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageUnavailable(f"Could not delete photo {name}") from exc
        return True

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
