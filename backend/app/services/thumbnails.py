"""Thumbnail derivatives for uploaded images.

A job goes Received -> Validated -> Loaded -> Rendered (x3) -> Persisted and
is then acked by the worker loop; any exception on the way fails the whole
job. Derivatives are written only after all three renders succeeded, and a
redelivered job simply overwrites the same <original>_<width> paths.
"""
import asyncio
import io
import logging
from typing import Iterable

from PIL import Image, ImageOps
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.errors import JobFailure, NotFound
from app.services.file_repository import FileRepository
from app.services.file_storage import FileStorageService, derivative_path, file_storage

logger = logging.getLogger(__name__)

# Formats Pillow can write back unchanged; anything else is saved as PNG.
_WRITABLE_FORMATS = {"JPEG", "PNG", "GIF", "WEBP", "BMP", "TIFF"}


def render_thumbnail(original: bytes, width: int) -> bytes:
    """Resize image bytes to width, keeping the aspect ratio and source format."""
    with Image.open(io.BytesIO(original)) as img:
        fmt = img.format if img.format in _WRITABLE_FORMATS else "PNG"
        img = ImageOps.exif_transpose(img)
        height = max(1, round(img.height * width / img.width))
        resized = img.resize((width, height), Image.Resampling.LANCZOS)
        if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        out = io.BytesIO()
        resized.save(out, format=fmt)
        return out.getvalue()


async def render_all(original: bytes, widths: Iterable[int]) -> dict[int, bytes]:
    """Render every width in worker threads; fails if any single render fails."""
    widths = list(widths)
    rendered = await asyncio.gather(
        *(asyncio.to_thread(render_thumbnail, original, w) for w in widths)
    )
    return dict(zip(widths, rendered))


async def generate_thumbnails(
    params: dict,
    session_factory: async_sessionmaker[AsyncSession],
    storage: FileStorageService = file_storage,
    widths: Iterable[int] = tuple(settings.THUMBNAIL_WIDTHS),
) -> dict:
    """Handle one thumbnail job payload ({fileId, userId, name})."""
    file_id = params.get("fileId")
    user_id = params.get("userId")
    if not file_id:
        raise JobFailure("Missing fileId")
    if not user_id:
        raise JobFailure("Missing userId")
    logger.info(f"Processing {params.get('name', '')}")

    async with session_factory() as db:
        try:
            record = await FileRepository(db).get(file_id, user_id)
        except NotFound as e:
            raise JobFailure("File not found") from e
    if not record.local_path:
        raise JobFailure("File has no content")

    try:
        original = await storage.read(record.local_path)
    except OSError as e:
        raise JobFailure(f"Cannot read original: {e}") from e

    rendered = await render_all(original, widths)

    paths = []
    for width, data in rendered.items():
        path = derivative_path(record.local_path, width)
        logger.info(f"Generating file: {record.local_path}, size: {width}")
        await storage.write(path, data)
        paths.append(path)
    return {"fileId": file_id, "thumbnails": paths}
