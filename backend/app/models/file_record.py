"""FileRecord model - file and folder metadata (bytes live under the content root)."""
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, IdMixin, TimestampMixin, UserMixin

FOLDER = "folder"
FILE = "file"
IMAGE = "image"
FILE_KINDS = (FOLDER, FILE, IMAGE)

# Stored parent_id for top-level records; rendered as the integer 0 on the wire.
ROOT_PARENT_ID = "0"


class FileRecord(Base, IdMixin, TimestampMixin, UserMixin):
    __tablename__ = "files"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    parent_id: Mapped[str] = mapped_column(String(32), default=ROOT_PARENT_ID, nullable=False, index=True)
    local_path: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER
