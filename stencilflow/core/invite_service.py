"""Service for organization invites.

An invite moves from ``pending`` to exactly one of ``accepted``, ``cancelled`` or
``expired``. Every move out of ``pending`` is a conditional UPDATE, so when two
requests race for the same invite only one of them changes the row.
"""

import secrets
from datetime import timedelta
from typing import Awaitable, Callable, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.config import settings
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.email_service import build_invite_url, send_invite_email
from stencilflow.core.exceptions import (
    ConflictException,
    InviteAlreadyUsedException,
    InviteExpiredException,
    MemberLimitExceededException,
    NotFoundException,
    PermissionException,
)
from stencilflow.core.identity_service import identity_service
from stencilflow.core.logging import logger
from stencilflow.core.membership_service import membership_service
from stencilflow.core.shared_models import InviteStatus, MemberRole
from stencilflow.db.unit_of_work import UnitOfWork
from stencilflow.models.organization import Organization

InviteEmailSender = Callable[..., Awaitable[None]]


def generate_invite_token() -> str:
    """64 hex characters from a CSPRNG."""
    return secrets.token_hex(32)


def _raise_if_not_pending(invite: schemas.Invite) -> None:
    if invite.status == InviteStatus.EXPIRED:
        raise InviteExpiredException()
    if invite.status != InviteStatus.PENDING:
        raise InviteAlreadyUsedException(invite.status.value)


class InviteService:
    """Issues, accepts and cancels organization invites."""

    def __init__(self, email_sender: InviteEmailSender = send_invite_email):
        """Initialize the service.

        Args:
            email_sender: Coroutine function delivering the invite email.
        """
        self._send_invite_email = email_sender

    async def _ensure_seat_available(self, db: AsyncSession, organization: Organization) -> None:
        count = await membership_service.get_member_count(db, organization.id)
        limit = membership_service.max_members(organization.tier)
        if count >= limit:
            raise MemberLimitExceededException(limit=limit, current_count=count)

    async def _get_active_organization(
        self, db: AsyncSession, organization_id: UUID
    ) -> Organization:
        organization = await crud.organization.get(db, id=organization_id)
        if organization is None:
            raise NotFoundException("Organization not found")
        if organization.is_archived:
            raise ConflictException("Organization is archived")
        return organization

    async def create_invite(
        self,
        db: AsyncSession,
        organization_id: UUID,
        invite_in: schemas.InviteCreate,
        issuer: schemas.User,
    ) -> schemas.InviteWithToken:
        """Invite an email address to join an organization as a member.

        Args:
            db: The database session.
            organization_id: The organization to invite to.
            invite_in: The invitee's email.
            issuer: The caller, who must own the organization.

        Returns:
            The new pending invite, including its token.

        Raises:
            NotFoundException: If the organization is not visible to the issuer.
            PermissionException: If the issuer is not the owner.
            ConflictException: If the organization is archived, the email already
                belongs to a member, or a live pending invite exists for it.
            MemberLimitExceededException: If every seat is taken.
        """
        email = invite_in.email.lower()
        await identity_service.require_owner(db, organization_id, issuer)
        organization = await self._get_active_organization(db, organization_id)

        invitee = await crud.user.get_by_email(db, email=email)
        if invitee is not None and await membership_service.is_organization_member(
            db, organization_id, invitee.id
        ):
            raise ConflictException("User is already a member of this organization")

        await self._ensure_seat_available(db, organization)

        try:
            async with UnitOfWork(db) as uow:
                # Clears expired rows out of the way of the one-pending-invite index
                await crud.invite.expire_stale(
                    db, organization_id=organization_id, email=email, uow=uow
                )
                if await crud.invite.get_live_pending(
                    db, organization_id=organization_id, email=email
                ):
                    raise ConflictException("A pending invite already exists for this email")

                invite = await crud.invite.create(
                    db,
                    obj_in={
                        "organization_id": organization_id,
                        "email": email,
                        "role": MemberRole.MEMBER.value,
                        "token": generate_invite_token(),
                        "status": InviteStatus.PENDING.value,
                        "expires_at": utc_now_naive()
                        + timedelta(hours=settings.INVITE_EXPIRATION_HOURS),
                        "invited_by": issuer.id,
                    },
                    uow=uow,
                )
        except IntegrityError as e:
            raise ConflictException("A pending invite already exists for this email") from e

        result = schemas.InviteWithToken.model_validate(invite)
        logger.with_context(organization_id=str(organization_id), invite_id=str(result.id)).info(
            f"Invited {email} to organization"
        )

        await self._send_invite_email(
            to_email=email,
            organization_name=organization.name,
            inviter_name=issuer.full_name or issuer.email,
            invite_url=build_invite_url(result.token),
            expires_at=result.expires_at,
        )
        return result

    async def get_invite_by_token(self, db: AsyncSession, token: str) -> schemas.InviteDetails:
        """Look up an invite for the invitee, before they accept it.

        Expired invites are returned with status ``expired`` rather than hidden.

        Raises:
            NotFoundException: If no invite has this token.
        """
        db_invite = await crud.invite.get_by_token(db, token=token)
        if db_invite is None:
            raise NotFoundException("Invite not found")
        return await self._to_details(db, schemas.Invite.model_validate(db_invite))

    async def _to_details(self, db: AsyncSession, invite: schemas.Invite) -> schemas.InviteDetails:
        organization = await crud.organization.get(db, id=invite.organization_id)
        if organization is None:
            raise NotFoundException("Invite not found")
        inviter = await crud.user.get(db, id=invite.invited_by)

        return schemas.InviteDetails(
            email=invite.email,
            status=invite.status,
            expires_at=invite.expires_at,
            organization=schemas.InviteOrganization(
                id=organization.id, name=organization.name, tier=organization.tier
            ),
            inviter=(
                schemas.InviteInviter(full_name=inviter.full_name, email=inviter.email)
                if inviter
                else None
            ),
        )

    async def accept_invite(
        self, db: AsyncSession, token: str, user: schemas.User
    ) -> schemas.OrganizationWithRole:
        """Accept an invite and join its organization.

        Marking the invite accepted and creating the membership happen in one unit
        of work. If another request got to the invite first, the conditional update
        matches no row and nothing is written.

        Raises:
            NotFoundException: If no invite has this token.
            InviteExpiredException: If the invite is past its expiry.
            InviteAlreadyUsedException: If it was already accepted or cancelled.
            PermissionException: If it was sent to another email address.
            ConflictException: If the user is already a member.
            MemberLimitExceededException: If every seat is taken.
        """
        db_invite = await crud.invite.get_by_token(db, token=token)
        if db_invite is None:
            raise NotFoundException("Invite not found")
        invite = schemas.Invite.model_validate(db_invite)
        _raise_if_not_pending(invite)

        if user.email.lower() != invite.email:
            raise PermissionException("This invite was sent to a different email address")

        organization = await self._get_active_organization(db, invite.organization_id)
        if await membership_service.is_organization_member(db, organization.id, user.id):
            raise ConflictException("User is already a member of this organization")
        await self._ensure_seat_available(db, organization)

        try:
            async with UnitOfWork(db) as uow:
                accepted = await crud.invite.mark_accepted(
                    db, invite_id=invite.id, accepted_by=user.id, uow=uow
                )
                if not accepted:
                    current = await crud.invite.get_fresh(db, invite_id=invite.id)
                    _raise_if_not_pending(schemas.Invite.model_validate(current))
                    raise InviteAlreadyUsedException(InviteStatus.ACCEPTED.value)

                await crud.membership.create(
                    db,
                    obj_in=schemas.MembershipCreate(
                        organization_id=organization.id,
                        user_id=user.id,
                        role=MemberRole(invite.role),
                    ),
                    uow=uow,
                )
        except IntegrityError as e:
            raise ConflictException("User is already a member of this organization") from e

        logger.with_context(organization_id=str(organization.id), invite_id=str(invite.id)).info(
            f"User {user.id} accepted invite"
        )
        return schemas.OrganizationWithRole(
            **schemas.Organization.model_validate(organization).model_dump(),
            role=MemberRole(invite.role),
        )

    async def cancel_invite(
        self,
        db: AsyncSession,
        organization_id: UUID,
        invite_id: UUID,
        user: schemas.User,
    ) -> schemas.Invite:
        """Cancel a pending invite. Owner only.

        Raises:
            NotFoundException: If the invite does not belong to the organization.
            ConflictException: If the invite is no longer pending.
        """
        await identity_service.require_owner(db, organization_id, user)

        db_invite = await crud.invite.get_in_organization(
            db, organization_id=organization_id, invite_id=invite_id
        )
        if db_invite is None:
            raise NotFoundException("Invite not found")

        invite = schemas.Invite.model_validate(db_invite)
        if invite.status != InviteStatus.PENDING or not await crud.invite.mark_cancelled(
            db, invite_id=invite_id
        ):
            current = await crud.invite.get_fresh(db, invite_id=invite_id)
            status = schemas.Invite.model_validate(current).status.value
            raise ConflictException(f"Only pending invites can be cancelled; invite is {status}")

        logger.with_context(organization_id=str(organization_id), invite_id=str(invite_id)).info(
            "Cancelled invite"
        )
        return schemas.Invite.model_validate(await crud.invite.get_fresh(db, invite_id=invite_id))

    async def get_organization_invites(
        self,
        db: AsyncSession,
        organization_id: UUID,
        user: schemas.User,
        status: Optional[InviteStatus] = None,
    ) -> list[schemas.InviteWithToken]:
        """List an organization's invites in any status, newest first. Owner only."""
        await identity_service.require_owner(db, organization_id, user)
        invites = [
            schemas.InviteWithToken.model_validate(invite)
            for invite in await crud.invite.get_by_organization(
                db, organization_id=organization_id
            )
        ]
        if status is not None:
            invites = [invite for invite in invites if invite.status == status]
        return invites

    async def get_user_pending_invites(
        self, db: AsyncSession, email: str
    ) -> list[schemas.InviteDetails]:
        """List the live invites addressed to an email."""
        invites = await crud.invite.get_pending_for_email(db, email=email)
        return [await self._to_details(db, schemas.Invite.model_validate(i)) for i in invites]

    async def expire_stale_invites(self, db: AsyncSession) -> int:
        """Persist ``expired`` on every past-due pending invite. Returns how many."""
        count = await crud.invite.expire_stale(db)
        logger.info(f"Expired {count} stale invites")
        return count


invite_service = InviteService()
