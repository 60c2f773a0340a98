"""Authorization checks on top of the authenticated user."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.config import settings
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.exceptions import NotFoundException, PermissionException
from stencilflow.core.logging import logger
from stencilflow.core.membership_service import membership_service
from stencilflow.core.shared_models import AdminRole, MemberRole
from stencilflow.models.membership import Membership


class IdentityService:
    """Answers what an authenticated user may do.

    Organization checks report a missing membership as NotFoundException, the same
    as a missing organization, so callers cannot discover which organizations exist.
    """

    async def _get_admin_role(self, db: AsyncSession, user: schemas.User) -> AdminRole | None:
        if user.email.lower() in settings.admin_emails:
            return AdminRole.SUPERADMIN

        grant = await crud.admin_user.get_by_user_id(db, user_id=user.id)
        if grant is None:
            return None
        if grant.expires_at is not None and grant.expires_at <= utc_now_naive():
            return None
        return AdminRole(grant.role)

    async def is_admin(self, db: AsyncSession, user: schemas.User) -> bool:
        """Whether the user may use the admin API.

        Fails closed: any error while resolving the grant is logged and denies access.
        """
        try:
            return await self._get_admin_role(db, user) is not None
        except Exception as e:
            logger.error(f"Admin check failed for user {user.id}, denying access: {e}")
            return False

    async def is_super_admin(self, db: AsyncSession, user: schemas.User) -> bool:
        """Whether the user holds a superadmin grant. Fails closed like ``is_admin``."""
        try:
            return await self._get_admin_role(db, user) == AdminRole.SUPERADMIN
        except Exception as e:
            logger.error(f"Superadmin check failed for user {user.id}, denying access: {e}")
            return False

    async def is_organization_member(
        self, db: AsyncSession, organization_id: UUID, user_id: UUID
    ) -> bool:
        """Whether the user belongs to the organization."""
        return await membership_service.is_organization_member(db, organization_id, user_id)

    async def is_organization_owner(
        self, db: AsyncSession, organization_id: UUID, user_id: UUID
    ) -> bool:
        """Whether the user owns the organization."""
        return await membership_service.is_organization_owner(db, organization_id, user_id)

    async def require_member(
        self, db: AsyncSession, organization_id: UUID, user: schemas.User
    ) -> Membership:
        """Return the user's membership or raise NotFoundException."""
        membership = await crud.membership.get_membership(
            db, organization_id=organization_id, user_id=user.id
        )
        if membership is None:
            raise NotFoundException("Organization not found")
        return membership

    async def require_owner(
        self, db: AsyncSession, organization_id: UUID, user: schemas.User
    ) -> Membership:
        """Return the user's owner membership.

        Raises:
            NotFoundException: If the user is not a member.
            PermissionException: If the user is a member but not the owner.
        """
        membership = await self.require_member(db, organization_id, user)
        if membership.role != MemberRole.OWNER.value:
            raise PermissionException("Only the organization owner can perform this action")
        return membership


identity_service = IdentityService()
