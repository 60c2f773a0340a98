"""User model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stencilflow.core.shared_models import SubscriptionStatus, UserPlan
from stencilflow.models._base import Base

if TYPE_CHECKING:
    from stencilflow.models.membership import Membership


class User(Base):
    """User model.

    Users are provisioned from Auth0 claims on their first authenticated request.
    The plan and subscription columns are kept in sync by the Stripe webhook.
    """

    __tablename__ = "user"

    full_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    auth0_id: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    plan: Mapped[str] = mapped_column(String, default=UserPlan.FREE.value, nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        String, default=SubscriptionStatus.INACTIVE.value, nullable=False
    )
    subscription_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    subscription_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    memberships: Mapped[List["Membership"]] = relationship(
        "Membership",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )
