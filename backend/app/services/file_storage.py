"""File storage on the local content root.

Originals are stored as <content_root>/<uuid4>; thumbnails derived from them
sit next to the original as <original>_<width>.
"""
import logging
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from app.config import settings
from app.errors import StorageWriteFailed

logger = logging.getLogger(__name__)


def derivative_path(original_path: str, width: int) -> str:
    return f"{original_path}_{width}"


class FileStorageService:
    """Handles file read/write under the content root."""

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = Path(base_path) if base_path is not None else settings.content_root

    async def ensure_root(self) -> None:
        """Create the content root (recursively); a no-op when it already exists."""
        try:
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create content root {self.base_path}: {e}")
            raise StorageWriteFailed() from e

    async def save(self, file_bytes: bytes) -> str:
        """Write bytes under a fresh unique name. Returns the absolute storage path."""
        await self.ensure_root()
        file_path = self.base_path / str(uuid.uuid4())
        try:
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(file_bytes)
        except OSError as e:
            logger.error(f"Failed to write {file_path}: {e}")
            raise StorageWriteFailed() from e
        return str(file_path)

    async def write(self, storage_path: str, file_bytes: bytes) -> None:
        """Write bytes to an exact path, replacing whatever was there."""
        try:
            async with aiofiles.open(storage_path, "wb") as f:
                await f.write(file_bytes)
        except OSError as e:
            logger.error(f"Failed to write {storage_path}: {e}")
            raise StorageWriteFailed() from e

    async def read(self, storage_path: str) -> bytes:
        """Read file bytes from storage path."""
        async with aiofiles.open(storage_path, "rb") as f:
            return await f.read()

    async def exists(self, storage_path: str) -> bool:
        return await aiofiles.os.path.isfile(storage_path)

    async def delete(self, storage_path: str) -> None:
        """Delete file from storage; missing files are ignored."""
        if await aiofiles.os.path.exists(storage_path):
            await aiofiles.os.remove(storage_path)


file_storage = FileStorageService()


def get_file_storage() -> FileStorageService:
    """FastAPI dependency returning the process-wide storage handle."""
    return file_storage
