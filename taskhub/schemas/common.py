"""
Schemas shared by several resources.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class UserSummaryResponse(BaseModel):
    """Compact user info embedded in team, task and activity responses."""

    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}
