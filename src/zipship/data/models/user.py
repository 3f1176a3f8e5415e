"""User account model.

Callers are identified by username only; authentication itself happens in
front of this service. The subscription plan decides free-tier behaviour.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zipship.data.db import Base

if TYPE_CHECKING:
    from zipship.data.models.deployment import Deployment
    from zipship.data.models.github_connection import GithubConnection
    from zipship.data.models.purchase import Purchase

FREE_PLAN = "starter"


class User(Base):
    """Application user account.

    Attributes:
        id: Auto-incrementing primary key.
        username: Unique handle supplied by the authenticating proxy.
        subscription_plan: ``starter`` (free), ``pro`` or ``agency``; None means free.
        created_at: UTC timestamp when the account was created.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    subscription_plan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    purchases: Mapped[list[Purchase]] = relationship(
        "Purchase", back_populates="user", cascade="all, delete-orphan"
    )
    deployments: Mapped[list[Deployment]] = relationship(
        "Deployment", back_populates="user", cascade="all, delete-orphan"
    )
    github_connection: Mapped[GithubConnection | None] = relationship(
        "GithubConnection", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_free_tier(self) -> bool:
        return not self.subscription_plan or self.subscription_plan == FREE_PLAN
