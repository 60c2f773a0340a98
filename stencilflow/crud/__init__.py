"""CRUD operations for the application."""

from .crud_admin_user import admin_user
from .crud_invite import invite
from .crud_membership import membership
from .crud_organization import organization
from .crud_user import user

__all__ = [
    "admin_user",
    "invite",
    "membership",
    "organization",
    "user",
]
