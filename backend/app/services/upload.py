"""Upload pipeline: validate, store bytes, record metadata, queue thumbnails."""
import base64
import binascii
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidInput, MissingField
from app.models.file_record import FILE_KINDS, FOLDER, IMAGE, FileRecord
from app.services import job_queue
from app.services.file_repository import FileRepository, is_root, normalize_parent_id
from app.services.file_storage import FileStorageService

logger = logging.getLogger(__name__)


def decode_payload(data: str) -> bytes:
    """Decode the base64 transport encoding of an upload."""
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput("Invalid data") from e


async def upload(
    db: AsyncSession,
    storage: FileStorageService,
    owner_id: str,
    name: Optional[str],
    kind: Optional[str],
    parent_id=0,
    is_public: bool = False,
    data: Optional[str] = None,
) -> FileRecord:
    """Create a folder, file or image for owner_id.

    Checks run in a fixed order and the first failure wins: name, type, data
    (non-folders only), then parent. Bytes are written before the record is
    inserted; a write failure leaves no metadata behind. For images a
    thumbnail job is enqueued after the record is committed. If that enqueue
    fails the upload still stands, without derivatives, and the failure is
    logged.
    """
    if not name:
        raise MissingField("Missing name")
    if not kind or kind not in FILE_KINDS:
        raise MissingField("Missing type")
    if not data and kind != FOLDER:
        raise MissingField("Missing data")

    repo = FileRepository(db)
    parent = normalize_parent_id(parent_id)
    if not is_root(parent):
        await repo.get_parent_folder(parent, owner_id)

    record = FileRecord(
        user_id=owner_id,
        name=name,
        type=kind,
        is_public=bool(is_public),
        parent_id=parent,
    )

    payload = decode_payload(data) if kind != FOLDER else None

    await storage.ensure_root()
    local_path = None
    if payload is not None:
        local_path = await storage.save(payload)
        record.local_path = local_path

    try:
        await repo.create(record)
    except Exception:
        await db.rollback()
        if local_path:
            await storage.delete(local_path)
        raise
    # Detached: a rollback below must not expire it
    db.expunge(record)

    if kind == IMAGE:
        try:
            await job_queue.enqueue(
                db,
                job_queue.THUMBNAIL_JOB,
                job_queue.thumbnail_job_params(record.id, owner_id),
            )
        except Exception as e:
            await db.rollback()
            logger.error(f"Could not enqueue thumbnails for file {record.id}; stored without derivatives: {e}")

    return record
