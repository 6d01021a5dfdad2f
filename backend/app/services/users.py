"""User accounts: registration and credential exchange."""
import base64
import binascii
import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import Conflict, MissingField, NotFound
from app.models.base import new_id
from app.models.user import User
from app.services import job_queue
from app.services.file_repository import is_valid_id

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def parse_basic_auth(header: Optional[str]) -> Optional[tuple[str, str]]:
    """Split an ``Authorization: Basic <base64(email:password)>`` header.

    Returns None for anything that isn't a well-formed Basic credential.
    """
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    email, sep, password = decoded.partition(":")
    if not sep or not email:
        return None
    return email, password


async def create_user(db: AsyncSession, email: Optional[str], password: Optional[str]) -> User:
    """Register a user and queue their welcome email."""
    if not email:
        raise MissingField("Missing email")
    if not password:
        raise MissingField("Missing password")

    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("Already exist")

    user = User(id=new_id(), email=email, password=hash_password(password))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same email
        await db.rollback()
        raise Conflict("Already exist") from e
    await db.refresh(user)
    db.expunge(user)
    logger.info(f"Registered user {user.id}")

    try:
        await job_queue.enqueue(db, job_queue.WELCOME_EMAIL_JOB, {"userId": user.id})
    except Exception as e:
        await db.rollback()
        logger.error(f"Could not enqueue welcome email for user {user.id}: {e}")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user matching the credentials, or None."""
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password):
        return None
    return user


async def get_user(db: AsyncSession, user_id: str) -> User:
    if not is_valid_id(user_id):
        raise NotFound()
    user = await db.get(User, user_id.lower())
    if user is None:
        raise NotFound()
    return user


async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return result.scalar_one()
