"""Schemas for organization invites."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.shared_models import InviteStatus, MemberRole, OrganizationTier


class InviteCreate(BaseModel):
    """Schema for inviting an email address to an organization."""

    email: EmailStr

    @field_validator("email")
    def normalize_email(cls, v: str) -> str:
        """Invites are matched case-insensitively, so store them lower-cased."""
        return v.lower()


class Invite(BaseModel):
    """Schema for an invite.

    ``status`` is the effective status: a pending invite past its expiry reads as
    ``expired`` even before the row itself has been swept.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    email: str
    role: MemberRole
    status: InviteStatus
    expires_at: datetime
    invited_by: UUID
    accepted_by: Optional[UUID] = None
    accepted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    @model_validator(mode="after")
    def apply_expiry(self) -> "Invite":
        """Report past-due pending invites as expired."""
        if self.status == InviteStatus.PENDING and self.expires_at <= utc_now_naive():
            self.status = InviteStatus.EXPIRED
        return self


class InviteWithToken(Invite):
    """Invite including its secret token. Only ever returned to the organization owner."""

    token: str


class InviteOrganization(BaseModel):
    """The organization an invite points to, as shown to the invitee."""

    id: UUID
    name: str
    tier: OrganizationTier


class InviteInviter(BaseModel):
    """The user who sent an invite, as shown to the invitee."""

    full_name: Optional[str] = None
    email: str


class InviteDetails(BaseModel):
    """Public view of an invite, looked up by token before accepting."""

    email: str
    status: InviteStatus
    expires_at: datetime
    organization: InviteOrganization
    inviter: Optional[InviteInviter] = None
