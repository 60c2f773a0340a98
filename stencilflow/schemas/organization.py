"""Organization schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stencilflow.core.shared_models import MemberRole, OrganizationTier, SubscriptionStatus


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Organization name cannot be empty")
    return v


class OrganizationBase(BaseModel):
    """Organization base schema."""

    name: str = Field(..., min_length=1, max_length=100, description="Organization name")


class OrganizationCreate(OrganizationBase):
    """Organization creation schema."""

    tier: OrganizationTier = Field(..., description="Plan the organization is created under")

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        """Names are stored trimmed and may not be blank."""
        return _strip_name(v)


class OrganizationUpdate(BaseModel):
    """Organization update schema. Only the fields that are set are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("name")
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        """Names are stored trimmed and may not be blank."""
        return _strip_name(v)


class Organization(OrganizationBase):
    """Organization schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    tier: OrganizationTier
    owner_id: UUID
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime


class OrganizationWithRole(Organization):
    """Organization schema with the caller's role in it."""

    role: MemberRole


class TransferOwnershipRequest(BaseModel):
    """Request body for handing an organization to another member."""

    user_id: UUID
