# flake8: noqa: F401
"""Schemas for the application."""

from .admin import AdminUser, AdminUserCreate, ExpiredInvitesResult
from .invite import (
    Invite,
    InviteCreate,
    InviteDetails,
    InviteInviter,
    InviteOrganization,
    InviteWithToken,
)
from .membership import Member, MemberList, Membership, MembershipCreate
from .organization import (
    Organization,
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationWithRole,
    TransferOwnershipRequest,
)
from .user import User, UserCreate, UserUpdate, UserWithOrganizations
