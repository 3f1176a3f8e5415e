"""User lookup helpers shared by the API routes and ledger services."""

from __future__ import annotations

from sqlalchemy.orm import Session

from zipship.data.db import get_session
from zipship.data.models import User


def get_user_by_username(session: Session, username: str) -> User | None:
    """Get a user by username."""
    return session.query(User).filter(User.username == username).first()


def get_or_create_user(username: str) -> int:
    """Return the id of *username*, creating the account on first use.

    Raises:
        ValueError: If the username is blank.
    """
    username_clean = username.strip()
    if not username_clean:
        raise ValueError("Username cannot be empty.")

    with get_session() as session:
        user = get_user_by_username(session, username_clean)
        if user is None:
            user = User(username=username_clean)
            session.add(user)
            session.flush()
        return user.id


def is_free_tier(user_id: int) -> bool:
    """Return True when the user has no paid subscription plan."""
    with get_session() as session:
        user = session.get(User, user_id)
        return user is None or user.is_free_tier
