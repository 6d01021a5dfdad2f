"""Durable job queue on top of the jobs table.

Producers call enqueue(), which commits a 'queued' row before returning, so a
producer crash after enqueue never loses the job. Consumers claim one row at
a time with a conditional UPDATE; two workers racing for the same row can't
both win. Delivery is at-least-once: a job that is not acked is put back in
the queue, either by nack() or, if the worker died, by requeue_stale().
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.job import COMPLETED, FAILED, QUEUED, RUNNING, Job

logger = logging.getLogger(__name__)

THUMBNAIL_JOB = "thumbnail-generation"
WELCOME_EMAIL_JOB = "welcome-email"


async def enqueue(db: AsyncSession, job_type: str, params: dict) -> Job:
    """Persist a new queued job and commit."""
    job = Job(job_type=job_type, params=params, status=QUEUED)
    db.add(job)
    await db.commit()
    await db.refresh(job)
    logger.info(f"Enqueued job {job.id} (type={job_type}) {params.get('name', '')}".rstrip())
    return job


async def claim_next(db: AsyncSession, job_type: Optional[str] = None) -> Optional[Job]:
    """Move the oldest queued job to 'running' and return it, or None if idle."""
    query = select(Job.id).where(Job.status == QUEUED).order_by(Job.created_at, Job.id).limit(5)
    if job_type:
        query = query.where(Job.job_type == job_type)
    candidates = (await db.execute(query)).scalars().all()

    for job_id in candidates:
        result = await db.execute(
            update(Job)
            .where(Job.id == job_id, Job.status == QUEUED)
            .values(
                status=RUNNING,
                started_at=datetime.now(timezone.utc),
                attempts=Job.attempts + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        # rowcount 0: another worker claimed it between select and update
        if result.rowcount == 1:
            return await db.get(Job, job_id, populate_existing=True)
    return None


async def ack(db: AsyncSession, job_id: str) -> None:
    """Mark a job completed. Only running jobs are acknowledged."""
    await db.execute(
        update(Job)
        .where(Job.id == job_id, Job.status == RUNNING)
        .values(status=COMPLETED, completed_at=datetime.now(timezone.utc), error_message=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def nack(
    db: AsyncSession,
    job_id: str,
    error: str,
    max_attempts: int = settings.JOB_MAX_ATTEMPTS,
) -> str:
    """Report a failed delivery. Returns the job's new status.

    The job is queued again until it has been attempted max_attempts times,
    then parked as 'failed'.
    """
    job = await db.get(Job, job_id, populate_existing=True)
    if job is None or job.status != RUNNING:
        return job.status if job else FAILED
    job.error_message = error[:2000]
    if job.attempts < max_attempts:
        job.status = QUEUED
        job.started_at = None
        logger.warning(f"Job {job_id} failed (attempt {job.attempts}/{max_attempts}), requeued: {error}")
    else:
        job.status = FAILED
        job.completed_at = datetime.now(timezone.utc)
        logger.error(f"Job {job_id} failed permanently after {job.attempts} attempt(s): {error}")
    await db.commit()
    return job.status


async def requeue_stale(
    db: AsyncSession,
    stale_minutes: int = settings.JOB_VISIBILITY_TIMEOUT_MINUTES,
    max_attempts: int = settings.JOB_MAX_ATTEMPTS,
) -> int:
    """Put jobs stuck in 'running' for longer than stale_minutes back in the queue.

    Covers workers that crashed or were killed mid-job. A stale job that has
    already been attempted max_attempts times is parked as 'failed' instead,
    the same way nack() treats it. Returns the number of jobs requeued.
    """
    now = datetime.now(timezone.utc)
    stale = and_(Job.status == RUNNING, Job.started_at < now - timedelta(minutes=stale_minutes))

    exhausted = await db.execute(
        update(Job)
        .where(stale, Job.attempts >= max_attempts)
        .values(status=FAILED, completed_at=now, error_message="No acknowledgment before timeout; attempts exhausted")
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        update(Job)
        .where(stale)
        .values(status=QUEUED, started_at=None, error_message="Redelivered: no acknowledgment before timeout")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if exhausted.rowcount:
        logger.error(f"{exhausted.rowcount} stale job(s) failed permanently after {max_attempts} attempt(s)")
    if result.rowcount:
        logger.warning(f"Requeued {result.rowcount} stale job(s) older than {stale_minutes} minutes")
    return result.rowcount or 0


def thumbnail_job_params(file_id: str, user_id: str) -> dict:
    return {
        "fileId": file_id,
        "userId": user_id,
        "name": f"Image thumbnail [{user_id}-{file_id}]",
    }
