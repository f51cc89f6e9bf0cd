"""
Activity ledger.

Append-only audit trail of every mutation. Entries are written in the same
transaction as the mutation they describe; a failed write fails the
mutation. Reads are scoped, newest first, and never return entries older
than the retention window.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import settings
from taskhub.core.errors import BadRequestError, LedgerWriteError
from taskhub.models.activity_log import ActivityAction, ActivityLog
from taskhub.models.base import as_utc, utcnow

logger = logging.getLogger(__name__)


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return settings.ACTIVITY_DEFAULT_LIMIT
    return min(limit, settings.ACTIVITY_MAX_LIMIT)


def retention_horizon(now: datetime | None = None) -> datetime:
    return (now or utcnow()) - timedelta(days=settings.ACTIVITY_RETENTION_DAYS)


class ActivityLedger:
    """Writes and reads ActivityLog rows on the caller's session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Write
    # -----------------------------------------------------------------------

    async def record(
        self,
        action: ActivityAction,
        actor_id: UUID,
        description: str,
        team_id: UUID | None = None,
        project_id: UUID | None = None,
        task_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            action=action,
            user_id=actor_id,
            team_id=team_id,
            project_id=project_id,
            task_id=task_id,
            description=description[:500],
            meta=metadata or {},
        )
        self.db.add(entry)
        try:
            await self.db.flush()
        except SQLAlchemyError as exc:
            logger.error("Failed to write activity %s for user_id=%s: %s", action.value, actor_id, exc)
            raise LedgerWriteError("Could not record activity; the change was not applied") from exc
        return entry

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def for_team(self, team_id: UUID, limit: int | None = None) -> list[ActivityLog]:
        return await self._fetch(ActivityLog.team_id == team_id, limit=clamp_limit(limit))

    async def for_project(self, project_id: UUID, limit: int | None = None) -> list[ActivityLog]:
        return await self._fetch(ActivityLog.project_id == project_id, limit=clamp_limit(limit))

    async def for_user(self, user_id: UUID, limit: int | None = None) -> list[ActivityLog]:
        return await self._fetch(ActivityLog.user_id == user_id, limit=clamp_limit(limit))

    async def for_task(self, task_id: UUID) -> list[ActivityLog]:
        """Full history of one task, no limit."""
        return await self._fetch(ActivityLog.task_id == task_id, limit=None)

    async def in_range(
        self,
        start: datetime,
        end: datetime,
        user_id: UUID,
        team_id: UUID | None = None,
        project_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[ActivityLog]:
        """Entries by user_id created within [start, end], optionally narrowed further."""
        start, end = as_utc(start).astimezone(UTC), as_utc(end).astimezone(UTC)
        if end < start:
            raise BadRequestError("End date must not be before start date", code="INVALID_DATE_RANGE")
        criteria = [
            ActivityLog.user_id == user_id,
            ActivityLog.created_at >= start,
            ActivityLog.created_at <= end,
        ]
        if team_id is not None:
            criteria.append(ActivityLog.team_id == team_id)
        if project_id is not None:
            criteria.append(ActivityLog.project_id == project_id)
        return await self._fetch(*criteria, limit=clamp_limit(limit))

    async def _fetch(self, *criteria: Any, limit: int | None) -> list[ActivityLog]:
        stmt = (
            select(ActivityLog)
            .where(*criteria, ActivityLog.created_at >= retention_horizon())
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # -----------------------------------------------------------------------
    # Deletion
    # -----------------------------------------------------------------------

    async def delete_for_project(self, project_id: UUID, task_ids: list[UUID]) -> int:
        """Remove every entry scoped to the project or to any of its tasks."""
        clauses = [ActivityLog.project_id == project_id]
        if task_ids:
            clauses.append(ActivityLog.task_id.in_(task_ids))
        result = await self.db.execute(delete(ActivityLog).where(or_(*clauses)))
        return result.rowcount or 0

    async def delete_for_task(self, task_id: UUID) -> int:
        result = await self.db.execute(delete(ActivityLog).where(ActivityLog.task_id == task_id))
        return result.rowcount or 0

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete entries older than the retention window. Returns the number removed."""
        horizon = retention_horizon(now)
        result = await self.db.execute(delete(ActivityLog).where(ActivityLog.created_at < horizon))
        count = result.rowcount or 0
        logger.info("Purged %d activity entries older than %s", count, horizon.isoformat())
        return count
