"""GitHub OAuth connection routes for the API."""

from __future__ import annotations

import logging
import os
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from zipship.api.dependencies import get_current_user_id, get_current_username
from zipship.api.schemas.github import (
    GitHubAuthResponse,
    GitHubDisconnectResponse,
    GitHubStatusResponse,
)
from zipship.services.github_client import (
    GitHubAPIError,
    GitHubClient,
    build_authorize_url,
    exchange_code_for_token,
)
from zipship.services.github_connection import (
    delete_github_connection,
    get_github_connection,
    save_github_connection,
)
from zipship.services.users import get_or_create_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/github", tags=["github"])


def _app_url() -> str:
    return os.getenv("APP_URL", "http://localhost:8000").rstrip("/")


@router.get("/auth", response_model=GitHubAuthResponse, summary="Start GitHub OAuth")
def start_auth(username: Annotated[str, Depends(get_current_username)]) -> GitHubAuthResponse:
    if not os.getenv("GITHUB_CLIENT_ID"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GitHub OAuth is not configured.",
        )
    return GitHubAuthResponse(auth_url=build_authorize_url(state=username, base_url=_app_url()))


@router.get(
    "/callback",
    summary="Complete GitHub OAuth",
    description="Exchange the OAuth code, store the connection, and redirect to the app.",
)
def oauth_callback(
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    if not code or not state:
        return RedirectResponse(f"{_app_url()}/?github_error=missing_params")

    try:
        token = exchange_code_for_token(code)
        github_user = GitHubClient(token).get_authenticated_user()
    except GitHubAPIError as exc:
        logger.warning("GitHub OAuth callback failed: %s", exc)
        return RedirectResponse(f"{_app_url()}/?github_error=auth_failed")

    # state is the unsigned username from /auth, so the token binds to whichever
    # account the caller names. Header identity has the same trust level.
    user_id = get_or_create_user(state)
    save_github_connection(user_id, github_user, token)
    return RedirectResponse(f"{_app_url()}/?github_connected=true")


@router.get("/status", response_model=GitHubStatusResponse, summary="GitHub connection status")
def connection_status(
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> GitHubStatusResponse:
    return GitHubStatusResponse(**get_github_connection(user_id))


@router.post(
    "/disconnect",
    response_model=GitHubDisconnectResponse,
    summary="Disconnect GitHub",
)
def disconnect(
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> GitHubDisconnectResponse:
    delete_github_connection(user_id)
    return GitHubDisconnectResponse(success=True)
