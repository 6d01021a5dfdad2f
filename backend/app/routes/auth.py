"""Session routes: exchange credentials for a token, and sign out."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import Unauthorized
from app.schemas.user import TokenResponse
from app.services.auth import get_session_store
from app.services.session_store import SessionStore
from app.services.users import authenticate, parse_basic_auth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/connect", response_model=TokenResponse)
async def connect(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Sign in with Basic credentials; returns a session token valid for 24 hours."""
    credentials = parse_basic_auth(authorization)
    if credentials is None:
        raise Unauthorized()
    user = await authenticate(db, *credentials)
    if user is None:
        raise Unauthorized()
    token = await store.issue(user.id)
    return {"token": token}


@router.get("/disconnect", status_code=204)
async def disconnect(
    x_token: Optional[str] = Header(None),
    store: SessionStore = Depends(get_session_store),
):
    """Sign out. Unknown or expired tokens are rejected."""
    user_id = await store.resolve(x_token)
    if user_id is None:
        raise Unauthorized()
    await store.revoke(x_token)
    logger.info(f"User {user_id} signed out")
    return Response(status_code=204)
