"""Admin grant model."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UUID, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from stencilflow.core.shared_models import AdminRole
from stencilflow.models._base import Base


class AdminUser(Base):
    """Grants a user access to the admin API until ``expires_at`` (forever when null)."""

    __tablename__ = "admin_user"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID, ForeignKey("user.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String, default=AdminRole.ADMIN.value, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    granted_by_email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
