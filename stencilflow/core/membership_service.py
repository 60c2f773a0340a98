"""Service for organization memberships."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.exceptions import ConflictException, NotFoundException, PermissionException
from stencilflow.core.logging import logger
from stencilflow.core.shared_models import ORGANIZATION_MEMBER_LIMITS, MemberRole, OrganizationTier
from stencilflow.db.unit_of_work import UnitOfWork
from stencilflow.models.organization import Organization


class MembershipService:
    """Reads and changes who belongs to an organization.

    Every organization has exactly one owner membership. It is created together with
    the organization, moves only through ownership transfer and cannot be removed.
    """

    async def get_member_role(
        self, db: AsyncSession, organization_id: UUID, user_id: UUID
    ) -> Optional[MemberRole]:
        """Get a user's role in an organization, or None for non-members."""
        membership = await crud.membership.get_membership(
            db, organization_id=organization_id, user_id=user_id
        )
        return MemberRole(membership.role) if membership else None

    async def is_organization_member(
        self, db: AsyncSession, organization_id: UUID, user_id: UUID
    ) -> bool:
        """Whether the user holds any role in the organization."""
        return await self.get_member_role(db, organization_id, user_id) is not None

    async def is_organization_owner(
        self, db: AsyncSession, organization_id: UUID, user_id: UUID
    ) -> bool:
        """Whether the user owns the organization."""
        return await self.get_member_role(db, organization_id, user_id) == MemberRole.OWNER

    async def get_member_count(self, db: AsyncSession, organization_id: UUID) -> int:
        """Number of seats taken, owner included."""
        return await crud.membership.count_members(db, organization_id=organization_id)

    @staticmethod
    def max_members(tier: OrganizationTier | str) -> int:
        """Seat limit of a tier."""
        return ORGANIZATION_MEMBER_LIMITS[OrganizationTier(tier)]

    async def can_add_more_members(self, db: AsyncSession, organization: Organization) -> bool:
        """Whether the organization has a free seat."""
        count = await self.get_member_count(db, organization.id)
        return count < self.max_members(organization.tier)

    async def get_organization_members(
        self, db: AsyncSession, organization_id: UUID
    ) -> list[schemas.Member]:
        """List the members of an organization, in the order they joined."""
        rows = await crud.membership.get_members_with_users(db, organization_id=organization_id)
        return [
            schemas.Member(
                user_id=user.id,
                email=user.email,
                full_name=user.full_name,
                role=membership.role,
                joined_at=membership.joined_at,
            )
            for membership, user in rows
        ]

    async def get_member_list(
        self, db: AsyncSession, organization: Organization
    ) -> schemas.MemberList:
        """List the members of an organization together with its seat usage."""
        members = await self.get_organization_members(db, organization.id)
        max_members = self.max_members(organization.tier)
        return schemas.MemberList(
            members=members,
            member_count=len(members),
            max_members=max_members,
            can_add_more=len(members) < max_members,
        )

    async def remove_member(
        self,
        db: AsyncSession,
        organization_id: UUID,
        user_id: UUID,
        removed_by: schemas.User,
    ) -> None:
        """Remove a member from an organization.

        The organization row stays locked from the role check to the delete, so a
        concurrent ownership transfer cannot slip in between.

        Args:
            db: The database session.
            organization_id: The organization to remove the member from.
            user_id: The member to remove.
            removed_by: The caller, who must own the organization.

        Raises:
            NotFoundException: If the organization is not visible to the caller or
                the user is not a member.
            PermissionException: If the caller is a member but not the owner.
            ConflictException: If the target is the sole owner.
        """
        async with UnitOfWork(db) as uow:
            organization = await crud.organization.get_for_update(db, organization_id)
            caller = await crud.membership.get_membership(
                db, organization_id=organization_id, user_id=removed_by.id
            )
            if organization is None or caller is None:
                raise NotFoundException("Organization not found")
            if caller.role != MemberRole.OWNER.value:
                raise PermissionException("Only the organization owner can remove members")

            target = await crud.membership.get_membership(
                db, organization_id=organization_id, user_id=user_id
            )
            if target is None:
                raise NotFoundException("User is not a member of this organization")

            if target.role == MemberRole.OWNER.value:
                owners = await crud.membership.count_owners(db, organization_id=organization_id)
                if owners <= 1:
                    raise ConflictException(
                        "The organization owner cannot be removed; transfer ownership first"
                    )

            await crud.membership.remove(db, id=target.id, uow=uow)

        logger.with_context(
            organization_id=str(organization_id), removed_by=str(removed_by.id)
        ).info(f"Removed member {user_id} from organization")


membership_service = MembershipService()
