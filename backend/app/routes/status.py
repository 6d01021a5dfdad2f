"""Health and statistics routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db, is_alive as db_is_alive
from app.schemas.status import StatsResponse, StatusResponse
from app.services.cache import RedisClient, get_cache
from app.services.file_repository import FileRepository
from app.services.users import count_users

router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusResponse)
async def get_status(
    cache: RedisClient = Depends(get_cache),
    db: AsyncSession = Depends(get_db),
):
    """Report cache and database connectivity."""
    return {"redis": await cache.is_alive(), "db": await db_is_alive(db)}


@router.get("/stats", response_model=StatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Count users and files."""
    return {"users": await count_users(db), "files": await FileRepository(db).count()}
