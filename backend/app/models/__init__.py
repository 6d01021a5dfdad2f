"""Import all models so SQLAlchemy metadata knows about them."""
from app.models.base import Base
from app.models.user import User
from app.models.file_record import FileRecord
from app.models.job import Job

__all__ = ["Base", "User", "FileRecord", "Job"]
