"""CRUD operations for organization memberships."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.core.shared_models import MemberRole
from stencilflow.crud._base import CRUDBase
from stencilflow.db.unit_of_work import UnitOfWork
from stencilflow.models.membership import Membership
from stencilflow.models.user import User
from stencilflow.schemas.membership import MembershipCreate


class CRUDMembership(CRUDBase[Membership, MembershipCreate, MembershipCreate]):
    """CRUD operations for organization memberships."""

    async def get_membership(
        self, db: AsyncSession, *, organization_id: UUID, user_id: UUID
    ) -> Optional[Membership]:
        """Get a user's membership in an organization, if any."""
        result = await db.execute(
            select(Membership).where(
                Membership.organization_id == organization_id,
                Membership.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_members_with_users(
        self, db: AsyncSession, *, organization_id: UUID
    ) -> list[tuple[Membership, User]]:
        """Get the memberships of an organization joined with their users, oldest first."""
        result = await db.execute(
            select(Membership, User)
            .join(User, User.id == Membership.user_id)
            .where(Membership.organization_id == organization_id)
            .order_by(Membership.joined_at, Membership.created_at)
        )
        return [(membership, user) for membership, user in result.all()]

    async def count_members(self, db: AsyncSession, *, organization_id: UUID) -> int:
        """Count the seats taken in an organization, owner included."""
        result = await db.execute(
            select(func.count())
            .select_from(Membership)
            .where(Membership.organization_id == organization_id)
        )
        return result.scalar_one()

    async def count_owners(self, db: AsyncSession, *, organization_id: UUID) -> int:
        """Count the owner memberships of an organization."""
        result = await db.execute(
            select(func.count())
            .select_from(Membership)
            .where(
                Membership.organization_id == organization_id,
                Membership.role == MemberRole.OWNER.value,
            )
        )
        return result.scalar_one()

    async def set_role(
        self,
        db: AsyncSession,
        *,
        organization_id: UUID,
        user_id: UUID,
        role: MemberRole,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Set a member's role with a single UPDATE statement.

        Statements run in the order they are issued, so demoting the old owner before
        promoting the new one keeps the single-owner index satisfied at every step.

        Returns:
            int: The number of rows changed.
        """
        result = await db.execute(
            update(Membership)
            .where(
                Membership.organization_id == organization_id,
                Membership.user_id == user_id,
            )
            .values(role=role.value)
            .execution_options(synchronize_session="evaluate")
        )

        if uow is None:
            await db.commit()

        return result.rowcount


membership = CRUDMembership(Membership)
