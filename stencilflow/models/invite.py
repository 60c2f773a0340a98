"""Organization invite model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UUID, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stencilflow.core.shared_models import InviteStatus, MemberRole
from stencilflow.models._base import OrganizationBase

if TYPE_CHECKING:
    from stencilflow.models.organization import Organization


class Invite(OrganizationBase):
    """A single-use, time-boxed invitation to join an organization."""

    __tablename__ = "organization_invite"
    __table_args__ = (
        Index(
            "uq_organization_invite_pending_email",
            "organization_id",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, default=MemberRole.MEMBER.value, nullable=False)
    status: Mapped[str] = mapped_column(
        String, default=InviteStatus.PENDING.value, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    invited_by: Mapped[uuid.UUID] = mapped_column(UUID, ForeignKey("user.id"), nullable=False)
    accepted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID, ForeignKey("user.id"), nullable=True
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="invites", lazy="noload"
    )
