"""Shared test fixtures and configuration for backend tests."""
import base64
import io
import os
import tempfile

# Settings are read at import time; keep the module-level engine and content
# root away from real services before anything from app is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("FOLDER_PATH", os.path.join(tempfile.gettempdir(), "files_manager_tests"))
os.environ.setdefault("RUN_EMBEDDED_WORKER", "false")

from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from app.database import get_db, make_engine, make_session_factory
from app.main import app
from app.models import Base
from app.services.cache import get_cache
from app.services.file_storage import FileStorageService, get_file_storage
from app.services.session_store import SessionStore


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCache:
    """In-memory stand-in for RedisClient with a controllable clock."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self._data: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self.clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def is_alive(self) -> bool:
        return True

    def ttl_of(self, key: str) -> Optional[float]:
        entry = self._data.get(key)
        return None if entry is None else entry[1] - self.clock()


def image_bytes(width: int = 800, height: int = 600, fmt: str = "PNG") -> bytes:
    img = Image.new("RGB", (width, height), color=(200, 30, 90))
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> FakeCache:
    return FakeCache(clock)


@pytest.fixture
def session_store(cache) -> SessionStore:
    return SessionStore(cache, ttl_seconds=24 * 60 * 60)


@pytest.fixture
def storage(tmp_path) -> FileStorageService:
    # Deliberately not created: uploads must create it
    return FileStorageService(tmp_path / "content")


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'files_manager.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def api_client(session_factory, cache, storage):
    """AsyncClient against the app with the store, cache and content root swapped out."""
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_file_storage] = lambda: storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
