"""User schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from stencilflow.core.shared_models import SubscriptionStatus, UserPlan
from stencilflow.schemas.organization import OrganizationWithRole


class UserBase(BaseModel):
    """Base schema for User."""

    email: str
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for provisioning a user from identity claims."""

    model_config = ConfigDict(use_enum_values=True)

    email: EmailStr
    auth0_id: Optional[str] = None
    plan: UserPlan = UserPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE

    @field_validator("email")
    def normalize_email(cls, v: str) -> str:
        """Emails are stored lower-cased."""
        return v.lower()


class UserUpdate(BaseModel):
    """Schema for updating a user's profile or subscription."""

    model_config = ConfigDict(use_enum_values=True)

    full_name: Optional[str] = None
    plan: Optional[UserPlan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_id: Optional[str] = None
    subscription_expires_at: Optional[datetime] = None


class User(UserBase):
    """Schema for User as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auth0_id: Optional[str] = None
    is_active: bool = True
    plan: UserPlan = UserPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    subscription_id: Optional[str] = None
    subscription_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def has_active_subscription(self) -> bool:
        """Whether the subscription currently grants access to paid features."""
        return self.subscription_status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


class UserWithOrganizations(User):
    """User schema with the organizations the user belongs to."""

    organizations: list[OrganizationWithRole] = []
