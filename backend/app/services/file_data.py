"""Read path for file contents and thumbnails."""
import mimetypes
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import InvalidSize, NoContent, NotFound
from app.services.file_repository import FileRepository
from app.services.file_storage import FileStorageService, derivative_path


@dataclass(frozen=True)
class FileData:
    path: str
    media_type: str
    name: str


def parse_size(size) -> Optional[int]:
    """Validate the optional ?size= value against the thumbnail widths."""
    if size is None or size == "":
        return None
    try:
        width = int(size)
    except (TypeError, ValueError) as e:
        raise InvalidSize() from e
    if width not in settings.THUMBNAIL_WIDTHS:
        raise InvalidSize()
    return width


async def get_file_data(
    db: AsyncSession,
    storage: FileStorageService,
    file_id: str,
    size=None,
    user_id: Optional[str] = None,
) -> FileData:
    """Resolve what to serve for file_id.

    Private files are only visible to their owner; everyone else, including
    callers without a session, gets NotFound. A missing thumbnail also reads
    as NotFound: the worker may simply not have produced it yet.
    """
    record = await FileRepository(db).find_by_id(file_id)
    if record is None:
        raise NotFound()
    if record.is_folder:
        raise NoContent()
    if not record.is_public and (user_id is None or user_id != record.user_id):
        raise NotFound()

    width = parse_size(size)
    path = record.local_path if width is None else derivative_path(record.local_path, width)
    if not path or not await storage.exists(path):
        raise NotFound()

    media_type = mimetypes.guess_type(record.name)[0] or "application/octet-stream"
    return FileData(path=path, media_type=media_type, name=record.name)
