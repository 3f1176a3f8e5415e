"""Deploy credit ledger.

Credits come from Purchase rows. A deploy consumes one credit from the oldest
active, unexpired grant that still has credit left (FIFO). Holding any
unlimited grant means nothing is ever consumed.
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from typing import TypedDict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from zipship.data.db import get_session
from zipship.data.models import UNLIMITED_DEPLOYS, Deployment, Purchase

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_TEST_GRANT",
    "AuthorizationPolicy",
    "UserStats",
    "create_purchase",
    "get_active_purchases",
    "get_user_stats",
    "grant_test_credits",
    "has_remaining_credit",
    "select_purchase_for_deploy",
]

MAX_TEST_GRANT = 10


class UserStats(TypedDict):
    """Credit summary for a user; ``remaining_deploys`` is -1 when unlimited."""

    total_deploys: int
    remaining_deploys: int
    has_unlimited: bool


class AuthorizationPolicy:
    """Decides which users may perform privileged operations.

    The allow-list comes from configuration (``ZIPSHIP_PRIVILEGED_USERS``,
    comma separated) rather than from code.
    """

    def __init__(self, privileged: set[str] | None = None) -> None:
        if privileged is None:
            raw = os.getenv("ZIPSHIP_PRIVILEGED_USERS", "")
            privileged = {name.strip() for name in raw.split(",") if name.strip()}
        self.privileged = {name.lower() for name in privileged}

    def is_privileged(self, username: str) -> bool:
        return username.strip().lower() in self.privileged


def _active_purchases_query(session: Session, user_id: int, now: datetime):
    return session.query(Purchase).filter(
        Purchase.user_id == user_id,
        Purchase.is_active.is_(True),
        or_(Purchase.expires_at.is_(None), Purchase.expires_at > now),
    )


def get_active_purchases(session: Session, user_id: int) -> list[Purchase]:
    """Return usable grants, oldest first."""
    now = datetime.now(UTC)
    purchases = (
        _active_purchases_query(session, user_id, now)
        .filter(
            or_(
                Purchase.deploys_included == UNLIMITED_DEPLOYS,
                Purchase.deploys_used < Purchase.deploys_included,
            )
        )
        .order_by(Purchase.created_at.asc(), Purchase.id.asc())
        .all()
    )
    return purchases


def select_purchase_for_deploy(session: Session, user_id: int) -> Purchase | None:
    """Pick the grant a new deploy is charged to.

    An unlimited grant wins outright so no counted credit is spent while one
    is held; otherwise the oldest grant with credit left is used.
    """
    purchases = get_active_purchases(session, user_id)
    unlimited = next((purchase for purchase in purchases if purchase.is_unlimited), None)
    if unlimited is not None:
        return unlimited
    return purchases[0] if purchases else None


def get_user_stats(user_id: int) -> UserStats:
    """Summarize deploy history and remaining credit for *user_id*."""
    with get_session() as session:
        purchases = _active_purchases_query(session, user_id, datetime.now(UTC)).all()
        total_deploys = session.query(Deployment).filter(Deployment.user_id == user_id).count()

        has_unlimited = any(purchase.is_unlimited for purchase in purchases)
        if has_unlimited:
            remaining = UNLIMITED_DEPLOYS
        else:
            remaining = sum(purchase.remaining for purchase in purchases)

        return UserStats(
            total_deploys=total_deploys,
            remaining_deploys=remaining,
            has_unlimited=has_unlimited,
        )


def has_remaining_credit(user_id: int) -> bool:
    """Return True when a deploy may proceed."""
    stats = get_user_stats(user_id)
    return stats["has_unlimited"] or stats["remaining_deploys"] > 0


def create_purchase(
    user_id: int,
    *,
    plan_type: str,
    deploys_included: int,
    amount_paid: int = 0,
    stripe_payment_id: str | None = None,
    expires_at: datetime | None = None,
) -> int:
    """Record a credit grant and return its id."""
    with get_session() as session:
        purchase = Purchase(
            user_id=user_id,
            plan_type=plan_type,
            deploys_included=deploys_included,
            deploys_used=0,
            amount_paid=amount_paid,
            stripe_payment_id=stripe_payment_id,
            expires_at=expires_at,
        )
        session.add(purchase)
        session.flush()
        return purchase.id


def grant_test_credits(user_id: int, amount: int = 5) -> int:
    """Grant free test credits (at most MAX_TEST_GRANT) and return the amount granted."""
    granted = max(1, min(amount, MAX_TEST_GRANT))
    create_purchase(
        user_id,
        plan_type="test",
        deploys_included=granted,
        stripe_payment_id=f"test_{int(datetime.now(UTC).timestamp())}",
    )
    logger.info("Granted %d test credits to user %d", granted, user_id)
    return granted
