"""File request/response schemas."""
from typing import Optional, Union
from app.schemas.base import CamelModel


class FileUpload(CamelModel):
    # Presence checks happen in the upload pipeline so they can report in order
    name: Optional[str] = None
    type: Optional[str] = None
    parent_id: Union[int, str] = 0
    is_public: bool = False
    data: Optional[str] = None


class FileResponse(CamelModel):
    id: str
    user_id: str
    name: str
    type: str
    is_public: bool
    parent_id: Union[int, str]
