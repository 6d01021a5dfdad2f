"""Background job worker.

Claims queued jobs from the jobs table one at a time and dispatches them to
the registered handler. A handler acknowledges a job by returning and fails it
by raising; failed jobs go back to the queue's redelivery policy (see
job_queue.nack). Several workers may run side by side, in the API process
(see main.lifespan) or standalone (python -m app.worker).
"""
import asyncio
import logging
import traceback
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.errors import JobFailure
from app.models.user import User
from app.services import job_queue
from app.services.thumbnails import generate_thumbnails

logger = logging.getLogger(__name__)

JobHandler = Callable[[dict, async_sessionmaker[AsyncSession]], Awaitable[Optional[dict]]]

# Job handler registry - add new job types here
JOB_HANDLERS: dict[str, JobHandler] = {}


def register_job_handler(job_type: str):
    """Decorator to register a job handler function."""
    def decorator(func):
        JOB_HANDLERS[job_type] = func
        return func
    return decorator


def safe_error_message(e: Exception, fallback: str = "Job interrupted") -> str:
    """Extract a meaningful error message from an exception.

    Some exceptions produce an empty str(e); fall back to the class name.
    """
    msg = str(e).strip()
    if not msg:
        msg = f"{type(e).__name__}: {fallback}"
    return msg


async def process_job(job_type: str, params: dict, session_factory) -> Optional[dict]:
    """Dispatch job to the appropriate handler."""
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise JobFailure(f"Unknown job type: {job_type}")
    return await handler(params, session_factory)


async def run_once(
    session_factory: async_sessionmaker[AsyncSession],
    job_type: Optional[str] = None,
    max_attempts: int = settings.JOB_MAX_ATTEMPTS,
) -> Optional[str]:
    """Claim and process a single job. Returns its final status, or None if the queue was empty."""
    async with session_factory() as db:
        job = await job_queue.claim_next(db, job_type)
    if job is None:
        return None

    logger.info(f"Processing job {job.id} (type={job.job_type}, attempt={job.attempts})")
    try:
        await process_job(job.job_type, job.params or {}, session_factory)
    except Exception as e:
        logger.error(f"Job {job.id} failed: {e}")
        if not isinstance(e, JobFailure):
            logger.error(traceback.format_exc())
        async with session_factory() as db:
            return await job_queue.nack(db, job.id, safe_error_message(e), max_attempts=max_attempts)

    async with session_factory() as db:
        await job_queue.ack(db, job.id)
    logger.info(f"Job {job.id} completed")
    return "completed"


async def drain(session_factory: async_sessionmaker[AsyncSession], job_type: Optional[str] = None) -> int:
    """Process jobs until the queue is empty. Returns how many were processed."""
    processed = 0
    while await run_once(session_factory, job_type) is not None:
        processed += 1
    return processed


async def worker_loop(
    session_factory: async_sessionmaker[AsyncSession],
    poll_interval: float = settings.WORKER_POLL_INTERVAL,
    stale_minutes: int = settings.JOB_VISIBILITY_TIMEOUT_MINUTES,
):
    """Main worker loop. Drains the queue, then polls every poll_interval seconds."""
    logger.info("Job worker started")
    while True:
        try:
            async with session_factory() as db:
                await job_queue.requeue_stale(db, stale_minutes)
            await drain(session_factory)
        except asyncio.CancelledError:
            logger.info("Job worker stopped")
            raise
        except Exception as e:
            logger.error(f"Worker loop error: {e}")

        await asyncio.sleep(poll_interval)


# ── Job Handlers ─────────────────────────────────────────────────

@register_job_handler(job_queue.THUMBNAIL_JOB)
async def handle_thumbnail_generation(params: dict, session_factory) -> dict:
    """Render the 500/250/100 derivatives of an uploaded image."""
    return await generate_thumbnails(params, session_factory)


@register_job_handler(job_queue.WELCOME_EMAIL_JOB)
async def handle_welcome_email(params: dict, session_factory) -> dict:
    """Greet a newly registered user."""
    user_id = params.get("userId")
    if not user_id:
        raise JobFailure("Missing userId")
    async with session_factory() as db:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
    if user is None:
        raise JobFailure("User not found")
    logger.info(f"Welcome {user.email}!")
    return {"userId": user_id}
