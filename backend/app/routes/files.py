"""Files API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.file_record import ROOT_PARENT_ID
from app.schemas.file import FileUpload, FileResponse as FileResponseSchema
from app.services.auth import optional_user, require_user
from app.services.file_data import get_file_data
from app.services.file_repository import FileRepository, to_response
from app.services.file_storage import FileStorageService, get_file_storage
from app.services.upload import upload

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", response_model=FileResponseSchema, status_code=201)
async def upload_file(
    body: FileUpload,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    """Create a folder, or upload a base64-encoded file or image."""
    record = await upload(
        db,
        storage,
        owner_id=user_id,
        name=body.name,
        kind=body.type,
        parent_id=body.parent_id,
        is_public=body.is_public,
        data=body.data,
    )
    return to_response(record)


@router.get("", response_model=list[FileResponseSchema])
async def list_files(
    parent_id: str = Query(ROOT_PARENT_ID, alias="parentId"),
    page: int = Query(0, ge=0),
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's files under a folder, 20 per page."""
    records = await FileRepository(db).list(user_id, parent_id, page)
    return [to_response(r) for r in records]


@router.get("/{file_id}", response_model=FileResponseSchema)
async def get_file_metadata(
    file_id: str,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Get file metadata by ID."""
    record = await FileRepository(db).get(file_id, user_id)
    return to_response(record)


@router.put("/{file_id}/publish", response_model=FileResponseSchema)
async def publish_file(
    file_id: str,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Make a file publicly readable."""
    record = await FileRepository(db).set_visibility(file_id, user_id, True)
    return to_response(record)


@router.put("/{file_id}/unpublish", response_model=FileResponseSchema)
async def unpublish_file(
    file_id: str,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Make a file private again."""
    record = await FileRepository(db).set_visibility(file_id, user_id, False)
    return to_response(record)


@router.get("/{file_id}/data")
async def download_file(
    file_id: str,
    size: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    """Serve a file's bytes, or one of its thumbnails with ?size=100|250|500."""
    data = await get_file_data(db, storage, file_id, size=size, user_id=user_id)
    return FileResponse(path=data.path, media_type=data.media_type)
