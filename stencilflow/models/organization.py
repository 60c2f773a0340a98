"""Organization models."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UUID, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stencilflow.core.shared_models import SubscriptionStatus
from stencilflow.models._base import Base, UserMixin

if TYPE_CHECKING:
    from stencilflow.models.invite import Invite
    from stencilflow.models.membership import Membership


class Organization(Base, UserMixin):
    """Organization model.

    Organizations are never deleted. When the subscription behind one ends it is
    archived: ``archived_at`` is set, pending invites are cancelled and memberships
    are kept so the history stays readable.
    """

    __tablename__ = "organization"

    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    tier: Mapped[str] = mapped_column(String, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID, ForeignKey("user.id"), nullable=False)

    subscription_id: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    subscription_status: Mapped[str] = mapped_column(
        String, default=SubscriptionStatus.ACTIVE.value, nullable=False
    )
    subscription_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    memberships: Mapped[List["Membership"]] = relationship(
        "Membership",
        back_populates="organization",
        cascade="all, delete-orphan",
        lazy="noload",
    )
    invites: Mapped[List["Invite"]] = relationship(
        "Invite",
        back_populates="organization",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    @property
    def is_archived(self) -> bool:
        """Whether the organization has been archived."""
        return self.archived_at is not None
