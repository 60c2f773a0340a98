"""CRUD operations for users."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.crud._base import CRUDBase
from stencilflow.models.user import User
from stencilflow.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """CRUD operations for users."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get a user by email, ignoring case.

        Args:
            db (AsyncSession): The database session.
            email (str): The email to look up.

        Returns:
            Optional[User]: The user, or None when no user has this email.
        """
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_auth0_id(self, db: AsyncSession, *, auth0_id: str) -> Optional[User]:
        """Get a user by their Auth0 subject."""
        result = await db.execute(select(User).where(User.auth0_id == auth0_id))
        return result.scalar_one_or_none()

    async def get_by_subscription_id(
        self, db: AsyncSession, *, subscription_id: str
    ) -> Optional[User]:
        """Get the user paying for a Stripe subscription."""
        result = await db.execute(select(User).where(User.subscription_id == subscription_id))
        return result.scalars().first()


user = CRUDUser(User)
