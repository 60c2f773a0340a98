"""Admin schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from stencilflow.core.shared_models import AdminRole


class AdminUserCreate(BaseModel):
    """Schema for granting admin access."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: UUID
    role: AdminRole = AdminRole.ADMIN
    expires_at: Optional[datetime] = None
    granted_by_email: Optional[str] = None


class AdminUser(BaseModel):
    """Schema for an admin grant."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    role: AdminRole
    expires_at: Optional[datetime] = None


class ExpiredInvitesResult(BaseModel):
    """Result of sweeping past-due invites."""

    expired_count: int
