"""Pydantic schemas for GitHub connection endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class GitHubAuthResponse(BaseModel):
    """URL the client should open to start the OAuth flow."""

    auth_url: str


class GitHubStatusResponse(BaseModel):
    connected: bool
    username: str | None = None
    avatar_url: str | None = None


class GitHubDisconnectResponse(BaseModel):
    success: bool
