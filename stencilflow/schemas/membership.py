"""Membership schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from stencilflow.core.shared_models import MemberRole


class MembershipCreate(BaseModel):
    """Schema for adding a user to an organization."""

    model_config = ConfigDict(use_enum_values=True)

    organization_id: UUID
    user_id: UUID
    role: MemberRole = MemberRole.MEMBER


class Membership(BaseModel):
    """Schema for a membership row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    user_id: UUID
    role: MemberRole
    joined_at: datetime


class Member(BaseModel):
    """A member as listed on the organization page."""

    user_id: UUID
    email: str
    full_name: Optional[str] = None
    role: MemberRole
    joined_at: datetime


class MemberList(BaseModel):
    """Members of an organization together with its seat usage."""

    members: list[Member]
    member_count: int
    max_members: int
    can_add_more: bool
