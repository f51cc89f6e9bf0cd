"""
Activity schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from taskhub.schemas.common import UserSummaryResponse


class ActivityResponse(BaseModel):
    id: UUID
    action: str
    user_id: UUID
    team_id: UUID | None
    project_id: UUID | None
    task_id: UUID | None
    description: str
    metadata: dict[str, Any]
    created_at: datetime
    user: UserSummaryResponse | None = None


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]
    total: int
