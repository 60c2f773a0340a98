"""Organization service."""

import re
import unicodedata
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.exceptions import (
    ConflictException,
    NotFoundException,
    PaymentRequiredException,
)
from stencilflow.core.identity_service import identity_service
from stencilflow.core.logging import logger
from stencilflow.core.shared_models import MemberRole, SubscriptionStatus
from stencilflow.db.unit_of_work import UnitOfWork
from stencilflow.models.organization import Organization

SLUG_MAX_LENGTH = 50


def generate_slug(name: str) -> str:
    """Derive a URL slug from an organization name.

    Accents are stripped, runs of anything but letters and digits become a single
    dash, and the result is capped at 50 characters.
    """
    normalized = unicodedata.normalize("NFD", name)
    ascii_only = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-") or "organization"


def _with_role(organization: Organization, role: MemberRole | str) -> schemas.OrganizationWithRole:
    return schemas.OrganizationWithRole(
        **schemas.Organization.model_validate(organization).model_dump(), role=role
    )


class OrganizationService:
    """Creates organizations and manages their lifecycle."""

    async def create_organization(
        self,
        db: AsyncSession,
        *,
        org_in: schemas.OrganizationCreate,
        owner: schemas.User,
        subscription_id: Optional[str] = None,
    ) -> schemas.OrganizationWithRole:
        """Create an organization with ``owner`` as its only member.

        The organization and the owner membership are written in one unit of work, so
        an organization without an owner is never committed.

        Args:
            db: The database session.
            org_in: Name and tier of the new organization.
            owner: The user who will own it.
            subscription_id: The Stripe subscription paying for it. Defaults to the
                owner's subscription.

        Returns:
            The organization, with the owner's role.

        Raises:
            PaymentRequiredException: If the owner's plan does not cover the tier.
            ConflictException: If the owner already owns an active organization.
        """
        if owner.plan.value != org_in.tier.value:
            raise PaymentRequiredException(
                message=f"A {org_in.tier.value} plan is required to create this organization"
            )
        if not owner.has_active_subscription:
            raise PaymentRequiredException(
                action_type="create_organization",
                payment_status=owner.subscription_status.value,
            )

        owned = await crud.organization.get_by_owner(db, owner_id=owner.id)
        if any(not organization.is_archived for organization in owned):
            raise ConflictException("User already owns an organization")

        try:
            async with UnitOfWork(db) as uow:
                organization = await crud.organization.create(
                    db,
                    obj_in={
                        "name": org_in.name,
                        "slug": generate_slug(org_in.name),
                        "tier": org_in.tier.value,
                        "owner_id": owner.id,
                        "subscription_id": subscription_id or owner.subscription_id,
                        "subscription_status": owner.subscription_status.value,
                        "subscription_expires_at": owner.subscription_expires_at,
                        "created_by_email": owner.email,
                        "modified_by_email": owner.email,
                    },
                    uow=uow,
                )
                await crud.membership.create(
                    db,
                    obj_in=schemas.MembershipCreate(
                        organization_id=organization.id,
                        user_id=owner.id,
                        role=MemberRole.OWNER,
                    ),
                    uow=uow,
                )
        except IntegrityError as e:
            raise ConflictException("Organization could not be created") from e

        logger.with_context(organization_id=str(organization.id), user_id=str(owner.id)).info(
            f"Created {org_in.tier.value} organization '{organization.name}'"
        )
        return _with_role(organization, MemberRole.OWNER)

    async def get_organization_by_id(self, db: AsyncSession, organization_id: UUID) -> Organization:
        """Get an organization without any access check.

        Raises:
            NotFoundException: If it does not exist.
        """
        organization = await crud.organization.get(db, id=organization_id)
        if organization is None:
            raise NotFoundException("Organization not found")
        return organization

    async def get_organization(
        self, db: AsyncSession, organization_id: UUID, user: schemas.User
    ) -> schemas.OrganizationWithRole:
        """Get an organization as seen by one of its members."""
        membership = await identity_service.require_member(db, organization_id, user)
        organization = await self.get_organization_by_id(db, organization_id)
        return _with_role(organization, membership.role)

    async def get_user_organizations(
        self, db: AsyncSession, user_id: UUID
    ) -> list[schemas.OrganizationWithRole]:
        """List every organization a user belongs to, with the user's role in each."""
        rows = await crud.organization.get_user_organizations_with_roles(db, user_id=user_id)
        return [_with_role(organization, role) for organization, role in rows]

    async def update_organization(
        self,
        db: AsyncSession,
        organization_id: UUID,
        org_in: schemas.OrganizationUpdate,
        user: schemas.User,
    ) -> schemas.OrganizationWithRole:
        """Apply the set fields of ``org_in``. Owner only.

        Raises:
            ConflictException: If the organization is archived.
        """
        await identity_service.require_owner(db, organization_id, user)
        organization = await self.get_organization_by_id(db, organization_id)
        if organization.is_archived:
            raise ConflictException("Organization is archived")

        changes = org_in.model_dump(exclude_unset=True, exclude_none=True)
        changes["modified_by_email"] = user.email
        organization = await crud.organization.update(db, db_obj=organization, obj_in=changes)
        return _with_role(organization, MemberRole.OWNER)

    async def transfer_ownership(
        self,
        db: AsyncSession,
        organization_id: UUID,
        new_owner_id: UUID,
        user: schemas.User,
    ) -> schemas.OrganizationWithRole:
        """Hand the organization to another member; the caller stays on as a member.

        Raises:
            NotFoundException: If the caller or the new owner is not a member.
            PermissionException: If the caller is not the owner.
            ConflictException: If the caller tries to transfer to themselves.
        """
        if new_owner_id == user.id:
            raise ConflictException("User already owns this organization")

        async with UnitOfWork(db) as uow:
            organization = await crud.organization.get_for_update(db, organization_id)
            if organization is None:
                raise NotFoundException("Organization not found")
            await identity_service.require_owner(db, organization_id, user)

            target = await crud.membership.get_membership(
                db, organization_id=organization_id, user_id=new_owner_id
            )
            if target is None:
                raise NotFoundException("User is not a member of this organization")

            # Demote first: the single-owner index is checked per statement
            await crud.membership.set_role(
                db,
                organization_id=organization_id,
                user_id=user.id,
                role=MemberRole.MEMBER,
                uow=uow,
            )
            await crud.membership.set_role(
                db,
                organization_id=organization_id,
                user_id=new_owner_id,
                role=MemberRole.OWNER,
                uow=uow,
            )
            organization = await crud.organization.update(
                db,
                db_obj=organization,
                obj_in={"owner_id": new_owner_id, "modified_by_email": user.email},
                uow=uow,
            )

        logger.with_context(organization_id=str(organization_id)).info(
            f"Ownership transferred from {user.id} to {new_owner_id}"
        )
        return _with_role(organization, MemberRole.MEMBER)

    async def update_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: str,
        status: SubscriptionStatus,
        expires_at: Optional[datetime] = None,
    ) -> Optional[Organization]:
        """Record a subscription change on the organization it funds, if there is one."""
        organization = await crud.organization.get_by_subscription_id(
            db, subscription_id=subscription_id
        )
        if organization is None:
            return None

        changes = {"subscription_status": status.value}
        if expires_at is not None:
            changes["subscription_expires_at"] = expires_at
        return await crud.organization.update(db, db_obj=organization, obj_in=changes)

    async def archive_organization(self, db: AsyncSession, organization_id: UUID) -> Organization:
        """Archive an organization.

        Pending invites are cancelled so no one joins an organization that is gone.
        Memberships are kept. Archiving twice is a no-op.
        """
        async with UnitOfWork(db) as uow:
            organization = await crud.organization.get_for_update(db, organization_id)
            if organization is None:
                raise NotFoundException("Organization not found")
            if organization.is_archived:
                return organization

            cancelled = await crud.invite.cancel_all_pending(
                db, organization_id=organization_id, uow=uow
            )
            organization = await crud.organization.update(
                db,
                db_obj=organization,
                obj_in={
                    "archived_at": utc_now_naive(),
                    "subscription_status": SubscriptionStatus.CANCELED.value,
                },
                uow=uow,
            )

        logger.with_context(organization_id=str(organization_id)).info(
            f"Archived organization, cancelled {cancelled} pending invites"
        )
        return organization

    async def list_organizations(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100
    ) -> list[schemas.Organization]:
        """List all organizations, newest first. For the admin API."""
        organizations = await crud.organization.get_multi(db, skip=skip, limit=limit)
        return [schemas.Organization.model_validate(org) for org in organizations]


organization_service = OrganizationService()
