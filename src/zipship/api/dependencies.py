"""Shared dependencies for API routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from zipship.services.credits import AuthorizationPolicy
from zipship.services.users import get_or_create_user


def get_current_username(
    x_username: Annotated[
        str | None,
        Header(
            description=(
                "Current username. In production, this should be extracted "
                "from authenticated session/JWT token."
            )
        ),
    ] = None,
) -> str:
    """Get the current username from request context.

    NOTE: This is a simplified implementation using a header.
    In production, this should extract from JWT/session.

    Raises:
        HTTPException: If authentication is missing (401).
    """
    if not x_username or not x_username.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication. Please provide X-Username header.",
        )
    return x_username.strip()


def get_current_user_id(username: Annotated[str, Depends(get_current_username)]) -> int:
    """Resolve the caller to a user id, creating the account on first use."""
    return get_or_create_user(username)


def get_authorization_policy() -> AuthorizationPolicy:
    """Build the privilege policy from the current environment."""
    return AuthorizationPolicy()
