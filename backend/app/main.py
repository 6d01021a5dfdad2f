"""FastAPI application entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import async_session, engine
from app.errors import FilesManagerError, InvalidInput
from app.models import Base
from app.services.cache import redis_client

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, connect the cache, start the background worker."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client.connect()

    # Jobs left 'running' by a crashed worker go back to the queue
    from app.services import job_queue
    from app.services.job_worker import worker_loop
    async with async_session() as db:
        await job_queue.requeue_stale(db)

    worker_task = None
    if settings.RUN_EMBEDDED_WORKER:
        worker_task = asyncio.create_task(worker_loop(async_session))

    yield

    # Cleanup
    if worker_task:
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass
    await redis_client.close()
    await engine.dispose()


app = FastAPI(
    title="Files Manager API",
    version="1.0.0",
    description="Personal file storage with background thumbnail generation.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FilesManagerError)
async def files_manager_error_handler(request: Request, exc: FilesManagerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.kind},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    message = f"Invalid {field}" if field else InvalidInput.default_message
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"error": message, "kind": InvalidInput.kind},
    )


# Register routers
from app.routes.status import router as status_router
from app.routes.users import router as users_router
from app.routes.auth import router as auth_router
from app.routes.files import router as files_router
app.include_router(status_router)
app.include_router(users_router)
app.include_router(auth_router)
app.include_router(files_router)
