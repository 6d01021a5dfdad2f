"""Users API routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import NotFound, Unauthorized
from app.schemas.user import UserCreate, UserResponse
from app.services.auth import require_user
from app.services.users import create_user, get_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
async def register_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an account."""
    user = await create_user(db, body.email, body.password)
    return {"id": user.id, "email": user.email}


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the account behind the current session."""
    try:
        user = await get_user(db, user_id)
    except NotFound as e:
        # Session outlived its account
        raise Unauthorized() from e
    return {"id": user.id, "email": user.email}
