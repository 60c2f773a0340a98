"""Organization membership model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import UUID, DateTime, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.shared_models import MemberRole
from stencilflow.models._base import OrganizationBase

if TYPE_CHECKING:
    from stencilflow.models.organization import Organization
    from stencilflow.models.user import User


class Membership(OrganizationBase):
    """A user's seat in an organization.

    A user holds at most one seat per organization, and an organization has at most
    one ``owner`` row. Both are enforced by the database so concurrent writers end
    in an IntegrityError instead of a second row.
    """

    __tablename__ = "organization_member"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_member_user"),
        Index(
            "uq_organization_member_single_owner",
            "organization_id",
            unique=True,
            postgresql_where=text("role = 'owner'"),
            sqlite_where=text("role = 'owner'"),
        ),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String, default=MemberRole.MEMBER.value, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="memberships", lazy="noload")
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="memberships", lazy="noload"
    )
