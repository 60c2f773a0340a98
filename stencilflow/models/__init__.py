"""Models for the application."""

from ._base import Base
from .admin_user import AdminUser
from .invite import Invite
from .membership import Membership
from .organization import Organization
from .user import User

__all__ = [
    "AdminUser",
    "Base",
    "Invite",
    "Membership",
    "Organization",
    "User",
]
