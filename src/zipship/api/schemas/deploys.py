"""Pydantic schemas for deploy API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeployResponse(BaseModel):
    """Response schema for the ZIP deploy endpoint."""

    model_config = ConfigDict(from_attributes=True)

    deployment_id: int
    repo_url: str
    owner: str
    repo: str
    is_update: bool
    file_count: int
    warnings: list[str] = Field(default_factory=list)
    ai_applied: bool = False
    ai_changes: list[str] = Field(default_factory=list)


class DeploymentSummary(BaseModel):
    """One row of the user's deploy history."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_name: str
    status: str
    github_repo_url: str | None = None
    github_repo_owner: str | None = None
    github_repo_name: str | None = None
    files_count: int | None = None
    error_message: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
