"""Shared models for the backend."""

from enum import Enum


class OrganizationTier(str, Enum):
    """Plans that come with an organization."""

    STUDIO = "studio"
    ENTERPRISE = "enterprise"


class UserPlan(str, Enum):
    """Subscription plan of a user."""

    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    STUDIO = "studio"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    """Subscription status, mirroring the Stripe values we act on."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"


class MemberRole(str, Enum):
    """Role of a user inside an organization."""

    OWNER = "owner"
    MEMBER = "member"


class InviteStatus(str, Enum):
    """Invite lifecycle: pending moves to exactly one of the other states."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class AdminRole(str, Enum):
    """Admin grant levels."""

    ADMIN = "admin"
    SUPERADMIN = "superadmin"


# Seats per organization, owner included
ORGANIZATION_MEMBER_LIMITS: dict[OrganizationTier, int] = {
    OrganizationTier.STUDIO: 3,
    OrganizationTier.ENTERPRISE: 5,
}
