"""Pydantic schemas for credit API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from zipship.services.credits import MAX_TEST_GRANT


class UserStatsResponse(BaseModel):
    """Deploy history and remaining credit; ``remaining_deploys`` is -1 when unlimited."""

    total_deploys: int
    remaining_deploys: int
    has_unlimited: bool


class GrantCreditsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int = Field(default=5, ge=1, le=MAX_TEST_GRANT)


class GrantCreditsResponse(BaseModel):
    success: bool
    granted: int
    message: str
