"""CRUD operations for organization invites."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.shared_models import InviteStatus
from stencilflow.crud._base import CRUDBase
from stencilflow.db.unit_of_work import UnitOfWork
from stencilflow.models.invite import Invite
from stencilflow.schemas.invite import InviteCreate


class CRUDInvite(CRUDBase[Invite, InviteCreate, InviteCreate]):
    """CRUD operations for organization invites.

    Status transitions are conditional UPDATE statements that only match a row
    still in ``pending``. Their row count tells the caller whether it won.
    """

    async def get_by_token(self, db: AsyncSession, *, token: str) -> Optional[Invite]:
        """Get an invite by its token."""
        result = await db.execute(
            select(Invite)
            .where(Invite.token == token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_fresh(self, db: AsyncSession, *, invite_id: UUID) -> Optional[Invite]:
        """Re-read an invite from the database, overwriting any copy held by the session."""
        result = await db.execute(
            select(Invite)
            .where(Invite.id == invite_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_in_organization(
        self, db: AsyncSession, *, organization_id: UUID, invite_id: UUID
    ) -> Optional[Invite]:
        """Get an invite by ID, only if it belongs to the organization."""
        result = await db.execute(
            select(Invite).where(
                Invite.id == invite_id,
                Invite.organization_id == organization_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_organization(
        self,
        db: AsyncSession,
        *,
        organization_id: UUID,
        status: Optional[InviteStatus] = None,
    ) -> list[Invite]:
        """Get the invites of an organization, newest first.

        Args:
            db (AsyncSession): The database session.
            organization_id (UUID): The organization.
            status (Optional[InviteStatus]): Only return invites stored with this status.

        Returns:
            list[Invite]: The invites.
        """
        query = select(Invite).where(Invite.organization_id == organization_id)
        if status is not None:
            query = query.where(Invite.status == status.value)
        result = await db.execute(
            query.order_by(Invite.created_at.desc()).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_live_pending(
        self, db: AsyncSession, *, organization_id: UUID, email: str
    ) -> Optional[Invite]:
        """Get the unexpired pending invite for an email in an organization, if any."""
        result = await db.execute(
            select(Invite).where(
                Invite.organization_id == organization_id,
                Invite.email == email,
                Invite.status == InviteStatus.PENDING.value,
                Invite.expires_at > utc_now_naive(),
            )
        )
        return result.scalar_one_or_none()

    async def get_pending_for_email(self, db: AsyncSession, *, email: str) -> list[Invite]:
        """Get every unexpired pending invite addressed to an email."""
        result = await db.execute(
            select(Invite)
            .where(
                Invite.email == email.lower(),
                Invite.status == InviteStatus.PENDING.value,
                Invite.expires_at > utc_now_naive(),
            )
            .order_by(Invite.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_accepted(
        self,
        db: AsyncSession,
        *,
        invite_id: UUID,
        accepted_by: UUID,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Move a live pending invite to accepted.

        Returns:
            bool: False when the invite was no longer pending or had expired.
        """
        now = utc_now_naive()
        result = await db.execute(
            update(Invite)
            .where(
                Invite.id == invite_id,
                Invite.status == InviteStatus.PENDING.value,
                Invite.expires_at > now,
            )
            .values(
                status=InviteStatus.ACCEPTED.value,
                accepted_by=accepted_by,
                accepted_at=now,
                modified_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        if uow is None:
            await db.commit()

        return result.rowcount == 1

    async def mark_cancelled(
        self, db: AsyncSession, *, invite_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Move a live pending invite to cancelled.

        Returns:
            bool: False when the invite was no longer pending or had expired.
        """
        now = utc_now_naive()
        result = await db.execute(
            update(Invite)
            .where(
                Invite.id == invite_id,
                Invite.status == InviteStatus.PENDING.value,
                Invite.expires_at > now,
            )
            .values(status=InviteStatus.CANCELLED.value, cancelled_at=now, modified_at=now)
            .execution_options(synchronize_session=False)
        )

        if uow is None:
            await db.commit()

        return result.rowcount == 1

    async def expire_stale(
        self,
        db: AsyncSession,
        *,
        organization_id: Optional[UUID] = None,
        email: Optional[str] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Persist ``expired`` on pending invites that are past their expiry.

        Args:
            db (AsyncSession): The database session.
            organization_id (Optional[UUID]): Restrict the sweep to one organization.
            email (Optional[str]): Restrict the sweep to one invitee.
            uow (UnitOfWork, optional): Unit of work for transaction control.

        Returns:
            int: The number of invites that were expired.
        """
        now = utc_now_naive()
        query = update(Invite).where(
            Invite.status == InviteStatus.PENDING.value,
            Invite.expires_at <= now,
        )
        if organization_id is not None:
            query = query.where(Invite.organization_id == organization_id)
        if email is not None:
            query = query.where(Invite.email == email)

        result = await db.execute(
            query.values(status=InviteStatus.EXPIRED.value, modified_at=now).execution_options(
                synchronize_session=False
            )
        )

        if uow is None:
            await db.commit()

        return result.rowcount

    async def cancel_all_pending(
        self, db: AsyncSession, *, organization_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Cancel every pending invite of an organization. Returns the number cancelled."""
        now = utc_now_naive()
        result = await db.execute(
            update(Invite)
            .where(
                Invite.organization_id == organization_id,
                Invite.status == InviteStatus.PENDING.value,
            )
            .values(status=InviteStatus.CANCELLED.value, cancelled_at=now, modified_at=now)
            .execution_options(synchronize_session=False)
        )

        if uow is None:
            await db.commit()

        return result.rowcount


invite = CRUDInvite(Invite)
