"""File metadata repository.

All lookups are owner scoped except find_by_id(), which only the public data
path uses. Ids coming from clients are checked against the stored id shape
first; a malformed id simply matches nothing.
"""
import logging
import re
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.config import settings
from app.errors import InvalidKind, InvalidParent, NotAFolder, NotFound
from app.models.file_record import FILE_KINDS, FOLDER, ROOT_PARENT_ID, FileRecord

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[0-9a-fA-F]{32}$")

# Largest OFFSET a 64-bit signed SQL integer can carry
MAX_OFFSET = 2**63 - 1


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


def is_root(parent_id) -> bool:
    """True for the root sentinel, 0 or "0". None means no parent was given."""
    return parent_id is None or str(parent_id) == ROOT_PARENT_ID


def normalize_parent_id(parent_id) -> str:
    """Map a client parent id to its stored form."""
    if is_root(parent_id):
        return ROOT_PARENT_ID
    return str(parent_id).lower()


# ── Query builders ───────────────────────────────────────────────

def by_id(file_id: str) -> list[ColumnElement[bool]]:
    return [FileRecord.id == file_id.lower()]


def by_id_and_owner(file_id: str, owner_id: str) -> list[ColumnElement[bool]]:
    return [FileRecord.id == file_id.lower(), FileRecord.user_id == owner_id]


def by_parent(owner_id: str, parent_id: str) -> list[ColumnElement[bool]]:
    return [FileRecord.user_id == owner_id, FileRecord.parent_id == parent_id]


class FileRepository:
    """CRUD over FileRecord rows for one database session."""

    def __init__(self, db: AsyncSession, page_size: int = settings.FILES_PAGE_SIZE):
        self.db = db
        self.page_size = page_size

    async def create(self, record: FileRecord, check_owner: bool = True) -> str:
        """Validate and insert record. Returns the new id.

        The parent must be an existing folder; with check_owner it must also
        belong to the record's owner.
        """
        if record.type not in FILE_KINDS:
            raise InvalidKind()
        record.parent_id = normalize_parent_id(record.parent_id)
        if record.parent_id != ROOT_PARENT_ID:
            owner_id = record.user_id if check_owner else None
            await self.get_parent_folder(record.parent_id, owner_id)
        if record.type == FOLDER:
            record.local_path = None

        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"Created {record.type} {record.id} for user {record.user_id}")
        return record.id

    async def get_parent_folder(self, parent_id: str, owner_id: Optional[str] = None) -> FileRecord:
        """Return the folder parent_id refers to.

        Raises InvalidParent when it does not exist (or is not visible to
        owner_id) and NotAFolder when it is a file.
        """
        if not is_valid_id(parent_id):
            raise InvalidParent()
        filters = by_id(parent_id) if owner_id is None else by_id_and_owner(parent_id, owner_id)
        parent = await self._first(filters)
        if parent is None:
            raise InvalidParent()
        if parent.type != FOLDER:
            raise NotAFolder()
        return parent

    async def get(self, file_id: str, owner_id: str) -> FileRecord:
        """Owner-scoped lookup. Other users' records are reported as NotFound."""
        if not is_valid_id(file_id) or not owner_id:
            raise NotFound()
        record = await self._first(by_id_and_owner(file_id, owner_id))
        if record is None:
            raise NotFound()
        return record

    async def find_by_id(self, file_id: str) -> Optional[FileRecord]:
        if not is_valid_id(file_id):
            return None
        return await self._first(by_id(file_id))

    async def list(self, owner_id: str, parent_id=ROOT_PARENT_ID, page: int = 0) -> list[FileRecord]:
        """One page of owner_id's records under parent_id, in insertion order."""
        parent = normalize_parent_id(parent_id)
        if parent != ROOT_PARENT_ID and not is_valid_id(parent):
            return []
        offset = max(int(page), 0) * self.page_size
        if offset > MAX_OFFSET:
            return []
        result = await self.db.execute(
            select(FileRecord)
            .where(*by_parent(owner_id, parent))
            .order_by(FileRecord.created_at, FileRecord.id)
            .offset(offset)
            .limit(self.page_size)
        )
        return list(result.scalars().all())

    async def set_visibility(self, file_id: str, owner_id: str, is_public: bool) -> FileRecord:
        record = await self.get(file_id, owner_id)
        await self.db.execute(
            update(FileRecord)
            .where(*by_id_and_owner(file_id, owner_id))
            .values(is_public=is_public)
        )
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(FileRecord))
        return result.scalar_one()

    async def _first(self, filters) -> Optional[FileRecord]:
        result = await self.db.execute(select(FileRecord).where(*filters).limit(1))
        return result.scalar_one_or_none()


def to_response(record: FileRecord) -> dict:
    """External representation: string ids, root parent rendered as 0."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "name": record.name,
        "type": record.type,
        "is_public": record.is_public,
        "parent_id": 0 if record.parent_id == ROOT_PARENT_ID else record.parent_id,
    }
