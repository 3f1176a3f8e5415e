"""ORM model for deploy credit grants."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zipship.data.db import Base

if TYPE_CHECKING:
    from zipship.data.models.deployment import Deployment
    from zipship.data.models.user import User

UNLIMITED_DEPLOYS = -1


class Purchase(Base):
    """A block of deploy credits granted to a user.

    Attributes:
        deploys_included: Credits in the grant; ``UNLIMITED_DEPLOYS`` (-1) never runs out.
        deploys_used: Credits already consumed.
        amount_paid: Price in cents (0 for free and test grants).
        expires_at: Optional expiry for subscription grants.
        is_active: Inactive grants are ignored entirely.
    """

    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_type: Mapped[str] = mapped_column(String(32), nullable=False)
    deploys_included: Mapped[int] = mapped_column(Integer, nullable=False)
    deploys_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stripe_payment_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped[User] = relationship("User", back_populates="purchases")
    deployments: Mapped[list[Deployment]] = relationship("Deployment", back_populates="purchase")

    @property
    def is_unlimited(self) -> bool:
        return self.deploys_included == UNLIMITED_DEPLOYS

    @property
    def remaining(self) -> int:
        """Credits left; meaningless for unlimited grants."""
        return max(0, self.deploys_included - self.deploys_used)
