"""Storage and lookup of per-user GitHub OAuth connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from zipship.data.db import get_session
from zipship.data.models import GithubConnection
from zipship.errors import IdentityNotConnectedError

logger = logging.getLogger(__name__)

__all__ = [
    "GitHubCredential",
    "delete_github_connection",
    "get_github_connection",
    "resolve_credential",
    "save_github_connection",
]


@dataclass(frozen=True, slots=True)
class GitHubCredential:
    """Access token plus the GitHub login it belongs to."""

    token: str
    username: str

    def __repr__(self) -> str:
        return f"GitHubCredential(username={self.username!r}, token='***')"


def _get_connection(session: Session, user_id: int) -> GithubConnection | None:
    return session.query(GithubConnection).filter(GithubConnection.user_id == user_id).first()


def resolve_credential(user_id: int) -> GitHubCredential:
    """Return the stored GitHub credential for *user_id*.

    Raises:
        IdentityNotConnectedError: If the user never connected GitHub or disconnected.
    """
    with get_session() as session:
        connection = _get_connection(session, user_id)
        if connection is None or not connection.access_token:
            raise IdentityNotConnectedError()
        return GitHubCredential(token=connection.access_token, username=connection.github_username)


def save_github_connection(user_id: int, github_user: dict[str, Any], access_token: str) -> None:
    """Create or replace the user's connection with the latest token."""
    with get_session() as session:
        connection = _get_connection(session, user_id)
        if connection is None:
            connection = GithubConnection(user_id=user_id)
            session.add(connection)
        connection.github_user_id = str(github_user["id"])
        connection.github_username = github_user["login"]
        connection.github_avatar_url = github_user.get("avatar_url")
        connection.access_token = access_token

    logger.info("Stored GitHub connection for user %d (%s)", user_id, github_user["login"])


def get_github_connection(user_id: int) -> dict[str, Any]:
    """Return the public connection status; the token is never included."""
    with get_session() as session:
        connection = _get_connection(session, user_id)
        if connection is None:
            return {"connected": False, "username": None, "avatar_url": None}
        return {
            "connected": True,
            "username": connection.github_username,
            "avatar_url": connection.github_avatar_url,
        }


def delete_github_connection(user_id: int) -> bool:
    """Remove the user's connection. Returns False if there was none."""
    with get_session() as session:
        connection = _get_connection(session, user_id)
        if connection is None:
            return False
        session.delete(connection)
    logger.info("Removed GitHub connection for user %d", user_id)
    return True
