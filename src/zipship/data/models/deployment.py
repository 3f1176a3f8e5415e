"""ORM model recording each deploy attempt.

Rows are append-only: created as ``pending`` before any remote call and moved
exactly once to ``success`` or ``failed``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zipship.data.db import Base

if TYPE_CHECKING:
    from zipship.data.models.purchase import Purchase
    from zipship.data.models.user import User


class DeploymentStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Deployment(Base):
    """Persisted deploy attempt.

    Attributes:
        id: Auto-incrementing primary key.
        user_id: Owning user.
        purchase_id: Credit grant the attempt was charged to.
        project_name: Name as entered by the user (before sanitization).
        status: One of DeploymentStatus.
        github_repo_url: Repository URL, set on success.
        files_count: Files in the pushed tree, set on success.
        error_message: Human-readable reason, set on failure.
        created_at: UTC timestamp of the attempt.
        completed_at: UTC timestamp of the terminal transition.
    """

    __tablename__ = "deployments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True
    )
    project_name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DeploymentStatus.PENDING.value
    )
    github_repo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    github_repo_owner: Mapped[str | None] = mapped_column(String, nullable=True)
    github_repo_name: Mapped[str | None] = mapped_column(String, nullable=True)
    files_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="deployments")
    purchase: Mapped[Purchase | None] = relationship("Purchase", back_populates="deployments")
