"""CRUD operations for organizations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.crud._base import CRUDBase
from stencilflow.models.membership import Membership
from stencilflow.models.organization import Organization
from stencilflow.schemas.organization import OrganizationCreate, OrganizationUpdate


class CRUDOrganization(CRUDBase[Organization, OrganizationCreate, OrganizationUpdate]):
    """CRUD operations for organizations."""

    async def get_for_update(self, db: AsyncSession, id: UUID) -> Optional[Organization]:
        """Get an organization and lock its row until the transaction ends.

        Serializes membership changes of one organization. SQLite has no row locks
        and ignores the clause.
        """
        result = await db.execute(
            select(Organization).where(Organization.id == id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_subscription_id(
        self, db: AsyncSession, *, subscription_id: str
    ) -> Optional[Organization]:
        """Get the organization funded by a Stripe subscription."""
        result = await db.execute(
            select(Organization).where(Organization.subscription_id == subscription_id)
        )
        return result.scalar_one_or_none()

    async def get_by_owner(self, db: AsyncSession, *, owner_id: UUID) -> list[Organization]:
        """Get the organizations owned by a user."""
        result = await db.execute(select(Organization).where(Organization.owner_id == owner_id))
        return list(result.scalars().all())

    async def get_user_organizations_with_roles(
        self, db: AsyncSession, *, user_id: UUID
    ) -> list[tuple[Organization, str]]:
        """Get every organization a user belongs to, with the user's role in each.

        Args:
            db (AsyncSession): The database session.
            user_id (UUID): The user.

        Returns:
            list[tuple[Organization, str]]: Pairs of organization and role, oldest
                membership first.
        """
        result = await db.execute(
            select(Organization, Membership.role)
            .join(Membership, Membership.organization_id == Organization.id)
            .where(Membership.user_id == user_id)
            .order_by(Membership.joined_at)
        )
        return [(organization, role) for organization, role in result.all()]


organization = CRUDOrganization(Organization)
