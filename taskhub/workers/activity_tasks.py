"""
Activity ledger maintenance tasks.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.services.activity_ledger import ActivityLedger
from taskhub.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="taskhub.workers.activity_tasks.purge_expired_activity",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def purge_expired_activity(self) -> dict[str, int]:
    """Delete activity entries past the retention window."""
    try:
        from taskhub.core.database import AsyncSessionLocal, async_engine

        # Forked workers must not reuse the parent's pooled connections
        async_engine.sync_engine.dispose()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            purged = loop.run_until_complete(run_purge(AsyncSessionLocal))
        finally:
            loop.close()
        return {"purged": purged}
    except Exception as exc:
        logger.error("purge_expired_activity failed: %s", exc)
        raise self.retry(exc=exc)


async def run_purge(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
) -> int:
    async with session_factory() as session:
        purged = await ActivityLedger(session).purge_expired(now)
        await session.commit()
    return purged
