"""Standalone worker process: python -m app.worker

Consumes the same jobs table as the embedded worker, so any number of these
can run next to the API.
"""
import asyncio
import logging

from app.config import settings
from app.database import async_session, engine
from app.models import Base
from app.services.job_worker import worker_loop

logger = logging.getLogger(__name__)


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        await worker_loop(async_session)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker interrupted, shutting down")
