"""Session tokens kept in the key-value cache.

A session is a single ``auth_<token> -> user_id`` entry written with a fixed
TTL. Nothing is cached in-process, so a revoke is visible to every process
sharing the cache on the next lookup. Expiry is not sliding: resolve() never
touches the TTL.
"""
import logging
import uuid
from typing import Optional, Protocol

from app.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "auth_"


class KeyValueCache(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


def session_key(token: str) -> str:
    return f"{KEY_PREFIX}{token}"


class SessionStore:
    """Issues, resolves and revokes opaque session tokens."""

    def __init__(self, cache: KeyValueCache, ttl_seconds: int = settings.SESSION_TTL_SECONDS):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def issue(self, user_id: str) -> str:
        """Create a fresh token for user_id. Raises StoreUnavailable if the cache is down."""
        token = str(uuid.uuid4())
        await self.cache.set(session_key(token), str(user_id), self.ttl_seconds)
        logger.debug(f"Issued session for user {user_id}")
        return token

    async def resolve(self, token: Optional[str]) -> Optional[str]:
        """Return the user id for token, or None when absent, expired or never issued."""
        if not token:
            return None
        user_id = await self.cache.get(session_key(token))
        return user_id or None

    async def revoke(self, token: Optional[str]) -> None:
        """Delete the session; unknown tokens are ignored."""
        if not token:
            return
        await self.cache.delete(session_key(token))
