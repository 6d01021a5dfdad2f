"""Session guard used by every authenticated handler.

authorize() returns a typed result instead of calling into a continuation,
so handlers decide explicitly what to do before they proceed.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Header

from app.errors import Unauthorized
from app.services.cache import RedisClient, get_cache
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authorized:
    user_id: str


@dataclass(frozen=True)
class NotAuthorized:
    reason: str = "Unauthorized"


AuthResult = Union[Authorized, NotAuthorized]


async def authorize(store: SessionStore, token: Optional[str]) -> AuthResult:
    """Resolve token to a user. Missing, unknown and expired tokens all fail closed."""
    if not token:
        return NotAuthorized("Missing token")
    user_id = await store.resolve(token)
    if user_id is None:
        return NotAuthorized("Unknown or expired token")
    return Authorized(user_id)


def get_session_store(cache: RedisClient = Depends(get_cache)) -> SessionStore:
    return SessionStore(cache)


async def optional_user(
    x_token: Optional[str] = Header(None),
    store: SessionStore = Depends(get_session_store),
) -> Optional[str]:
    """User id for the X-Token header, or None when there is no valid session."""
    result = await authorize(store, x_token)
    if isinstance(result, Authorized):
        return result.user_id
    return None


async def require_user(
    x_token: Optional[str] = Header(None),
    store: SessionStore = Depends(get_session_store),
) -> str:
    """User id for the X-Token header; raises Unauthorized otherwise."""
    result = await authorize(store, x_token)
    if isinstance(result, NotAuthorized):
        logger.debug(f"Rejected request: {result.reason}")
        raise Unauthorized()
    return result.user_id
