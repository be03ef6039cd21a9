"""Blob storage on the local filesystem.

Keys look like `<proposal-or-general>/<stamp>-<rand>-<name>` and map to paths
under FILE_STORAGE_PATH; files are served publicly under PUBLIC_BASE_URL.
"""
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import aiofiles
import aiofiles.os

from proposal_files.config import settings
from proposal_files.services.stores import BlobNotFoundError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Handles blob read/write/delete under a root directory."""

    def __init__(self, base_path: Optional[str] = None, public_base_url: Optional[str] = None):
        self.base_path = Path(base_path or settings.FILE_STORAGE_PATH).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path):
            raise ValueError(f"Storage key escapes storage root: {key!r}")
        return path

    async def save(self, key: str, data: bytes, content_type: Optional[str]) -> None:
        """Write bytes under `key`. Content type is implied by the extension locally."""
        path = self._path_for(key)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        logger.debug("Stored blob %s (%d bytes, %s)", key, len(data), content_type)

    async def read(self, key: str) -> bytes:
        path = self._path_for(key)
        if not await aiofiles.os.path.exists(path):
            raise BlobNotFoundError(key)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, key: str) -> None:
        """Delete the blob; BlobNotFoundError when nothing is stored under `key`."""
        path = self._path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError as e:
            raise BlobNotFoundError(key) from e

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key)}"
