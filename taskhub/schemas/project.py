from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, model_validator

from taskhub.models.project import ProjectStatus, dates_in_order, duration_days


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus = ProjectStatus.planning
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def end_not_before_start(self) -> ProjectCreateRequest:
        if not dates_in_order(self.start_date, self.end_date):
            raise ValueError("End date must be on or after start date")
        return self


class ProjectUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class ProjectResponse(BaseModel):
    id: UUID
    team_id: UUID
    name: str
    description: str | None
    status: ProjectStatus
    created_by: UUID
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_days(self) -> int | None:
        return duration_days(self.start_date, self.end_date)


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int


class TaskCountsResponse(BaseModel):
    total: int
    todo: int
    in_progress: int
    review: int
    completed: int
    completion_rate: int = Field(description="Percentage of tasks in Done, rounded")


class ProjectStatsResponse(BaseModel):
    project_id: UUID
    name: str
    status: str
    tasks: TaskCountsResponse
