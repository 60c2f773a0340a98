"""Unit tests for the invite service."""

import re
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from stencilflow import crud, schemas
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.exceptions import (
    ConflictException,
    InviteAlreadyUsedException,
    InviteExpiredException,
    MemberLimitExceededException,
    NotFoundException,
    PermissionException,
)
from stencilflow.core.invite_service import InviteService, generate_invite_token
from stencilflow.core.membership_service import membership_service
from stencilflow.core.organization_service import organization_service
from stencilflow.core.shared_models import InviteStatus, MemberRole, SubscriptionStatus, UserPlan
from tests.fixtures.common import add_member, make_organization, make_user


@pytest.fixture
def email_sender():
    return AsyncMock()


@pytest.fixture
def service(email_sender):
    return InviteService(email_sender=email_sender)


async def insert_invite(db, organization_id, email, invited_by, *, expires_in_hours=168):
    """Insert a pending invite directly, with any expiry."""
    return await crud.invite.create(
        db,
        obj_in={
            "organization_id": organization_id,
            "email": email,
            "role": MemberRole.MEMBER.value,
            "token": generate_invite_token(),
            "status": InviteStatus.PENDING.value,
            "expires_at": utc_now_naive() + timedelta(hours=expires_in_hours),
            "invited_by": invited_by,
        },
    )


def test_invite_tokens_are_long_and_random():
    first, second = generate_invite_token(), generate_invite_token()

    assert re.fullmatch(r"[0-9a-f]{64}", first)
    assert first != second


async def test_create_invite(db_session, service, email_sender, owner_user, studio_organization):
    invite = await service.create_invite(
        db_session,
        studio_organization.id,
        schemas.InviteCreate(email="New.Person@X.com"),
        owner_user,
    )

    assert invite.email == "new.person@x.com"
    assert invite.status == InviteStatus.PENDING
    assert invite.role == MemberRole.MEMBER
    assert invite.invited_by == owner_user.id
    assert timedelta(hours=167) < invite.expires_at - utc_now_naive() <= timedelta(hours=168)

    email_sender.assert_awaited_once()
    kwargs = email_sender.await_args.kwargs
    assert kwargs["to_email"] == "new.person@x.com"
    assert kwargs["organization_name"] == "Acme Stencils"
    assert kwargs["inviter_name"] == "Olivia Owner"
    assert kwargs["invite_url"].endswith(f"/invite/{invite.token}")


async def test_only_owner_can_invite(db_session, service, member_user, outsider_user,
                                     studio_organization):
    await add_member(db_session, studio_organization.id, member_user)
    invite_in = schemas.InviteCreate(email="new@x.com")

    with pytest.raises(PermissionException):
        await service.create_invite(db_session, studio_organization.id, invite_in, member_user)
    with pytest.raises(NotFoundException):
        await service.create_invite(db_session, studio_organization.id, invite_in, outsider_user)


async def test_duplicate_pending_invite_conflicts(db_session, service, owner_user,
                                                  studio_organization):
    invite_in = schemas.InviteCreate(email="new@x.com")
    await service.create_invite(db_session, studio_organization.id, invite_in, owner_user)

    with pytest.raises(ConflictException):
        await service.create_invite(
            db_session, studio_organization.id, schemas.InviteCreate(email="NEW@x.com"), owner_user
        )


async def test_reinvite_after_cancel_and_after_expiry(db_session, service, owner_user,
                                                      studio_organization):
    first = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="new@x.com"), owner_user
    )
    await service.cancel_invite(db_session, studio_organization.id, first.id, owner_user)

    second = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="new@x.com"), owner_user
    )
    assert second.id != first.id
    assert second.token != first.token

    stale = await insert_invite(
        db_session, studio_organization.id, "late@x.com", owner_user.id, expires_in_hours=-1
    )
    third = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="late@x.com"), owner_user
    )
    assert third.status == InviteStatus.PENDING
    assert (await crud.invite.get_fresh(db_session, invite_id=stale.id)).status == "expired"


async def test_reinvite_after_accept_needs_member_removed(db_session, service, owner_user,
                                                          member_user, studio_organization):
    invite_in = schemas.InviteCreate(email="user@x.com")
    first = await service.create_invite(db_session, studio_organization.id, invite_in, owner_user)
    await service.accept_invite(db_session, first.token, member_user)

    with pytest.raises(ConflictException):
        await service.create_invite(db_session, studio_organization.id, invite_in, owner_user)

    await membership_service.remove_member(
        db_session, studio_organization.id, member_user.id, owner_user
    )
    second = await service.create_invite(
        db_session, studio_organization.id, invite_in, owner_user
    )

    assert second.status == InviteStatus.PENDING
    assert second.id != first.id


async def test_inviting_existing_member_conflicts(db_session, service, owner_user, member_user,
                                                  studio_organization):
    await add_member(db_session, studio_organization.id, member_user)

    with pytest.raises(ConflictException):
        await service.create_invite(
            db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
        )


async def test_invite_blocked_when_seats_are_full(db_session, service, email_sender, owner_user,
                                                  member_user, studio_organization):
    await add_member(db_session, studio_organization.id, member_user)
    await add_member(db_session, studio_organization.id, await make_user(db_session, "c@x.com"))

    with pytest.raises(MemberLimitExceededException) as exc_info:
        await service.create_invite(
            db_session, studio_organization.id, schemas.InviteCreate(email="d@x.com"), owner_user
        )

    assert exc_info.value.limit == 3
    assert exc_info.value.current_count == 3
    email_sender.assert_not_awaited()


async def test_invite_to_archived_organization_conflicts(db_session, service, owner_user,
                                                         studio_organization):
    await organization_service.archive_organization(db_session, studio_organization.id)

    with pytest.raises(ConflictException):
        await service.create_invite(
            db_session, studio_organization.id, schemas.InviteCreate(email="new@x.com"), owner_user
        )


async def test_get_invite_by_token(db_session, service, owner_user, studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="new@x.com"), owner_user
    )

    details = await service.get_invite_by_token(db_session, invite.token)

    assert details.email == "new@x.com"
    assert details.status == InviteStatus.PENDING
    assert details.organization.name == "Acme Stencils"
    assert details.inviter.email == "owner@stencilflow.com"

    with pytest.raises(NotFoundException):
        await service.get_invite_by_token(db_session, "0" * 64)


async def test_accept_invite(db_session, service, owner_user, member_user, studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )

    organization = await service.accept_invite(db_session, invite.token, member_user)

    assert organization.id == studio_organization.id
    assert organization.role == MemberRole.MEMBER
    assert await membership_service.get_member_role(
        db_session, studio_organization.id, member_user.id
    ) == MemberRole.MEMBER

    accepted = await crud.invite.get_fresh(db_session, invite_id=invite.id)
    assert accepted.status == InviteStatus.ACCEPTED.value
    assert accepted.accepted_by == member_user.id
    assert accepted.accepted_at is not None


async def test_invite_cannot_be_accepted_twice(db_session, service, owner_user, member_user,
                                               studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )
    await service.accept_invite(db_session, invite.token, member_user)

    with pytest.raises(InviteAlreadyUsedException) as exc_info:
        await service.accept_invite(db_session, invite.token, member_user)

    assert exc_info.value.status == "accepted"
    assert await membership_service.get_member_count(db_session, studio_organization.id) == 2


async def test_accept_with_other_email_is_forbidden(db_session, service, owner_user, outsider_user,
                                                    studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )

    with pytest.raises(PermissionException):
        await service.accept_invite(db_session, invite.token, outsider_user)

    assert (await crud.invite.get_fresh(db_session, invite_id=invite.id)).status == "pending"


async def test_expired_invite(db_session, service, owner_user, member_user, studio_organization):
    invite = await insert_invite(
        db_session, studio_organization.id, "user@x.com", owner_user.id, expires_in_hours=-1
    )

    details = await service.get_invite_by_token(db_session, invite.token)
    assert details.status == InviteStatus.EXPIRED

    with pytest.raises(InviteExpiredException):
        await service.accept_invite(db_session, invite.token, member_user)
    assert not await membership_service.is_organization_member(
        db_session, studio_organization.id, member_user.id
    )


async def test_accept_rechecks_member_limit(db_session, service, owner_user, member_user,
                                            studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )
    await add_member(db_session, studio_organization.id, await make_user(db_session, "b@x.com"))
    await add_member(db_session, studio_organization.id, await make_user(db_session, "c@x.com"))

    with pytest.raises(MemberLimitExceededException):
        await service.accept_invite(db_session, invite.token, member_user)

    assert (await crud.invite.get_fresh(db_session, invite_id=invite.id)).status == "pending"


async def test_cancel_invite(db_session, service, owner_user, member_user, studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )

    cancelled = await service.cancel_invite(
        db_session, studio_organization.id, invite.id, owner_user
    )
    assert cancelled.status == InviteStatus.CANCELLED
    assert cancelled.cancelled_at is not None

    with pytest.raises(ConflictException):
        await service.cancel_invite(db_session, studio_organization.id, invite.id, owner_user)
    with pytest.raises(InviteAlreadyUsedException):
        await service.accept_invite(db_session, invite.token, member_user)


async def test_archived_organization_rejects_accept(db_session, service, owner_user, member_user,
                                                    studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )
    await organization_service.archive_organization(db_session, studio_organization.id)

    with pytest.raises(ConflictException):
        await service.accept_invite(db_session, invite.token, member_user)


async def test_organization_invites_filtered_by_effective_status(
    db_session, service, owner_user, member_user, studio_organization
):
    await add_member(db_session, studio_organization.id, member_user)
    live = await insert_invite(db_session, studio_organization.id, "a@x.com", owner_user.id)
    stale = await insert_invite(
        db_session, studio_organization.id, "b@x.com", owner_user.id, expires_in_hours=-1
    )

    everything = await service.get_organization_invites(
        db_session, studio_organization.id, owner_user
    )
    expired = await service.get_organization_invites(
        db_session, studio_organization.id, owner_user, status=InviteStatus.EXPIRED
    )

    assert {i.id for i in everything} == {live.id, stale.id}
    assert [i.id for i in expired] == [stale.id]
    with pytest.raises(PermissionException):
        await service.get_organization_invites(db_session, studio_organization.id, member_user)


async def test_user_pending_invites_skip_expired(db_session, service, owner_user,
                                                 studio_organization):
    other_owner = await make_user(
        db_session,
        "boss@x.com",
        plan=UserPlan.STUDIO,
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    other = await make_organization(db_session, other_owner, name="Other Studio")
    await insert_invite(db_session, studio_organization.id, "user@x.com", owner_user.id)
    await insert_invite(db_session, other.id, "user@x.com", other_owner.id, expires_in_hours=-1)

    invites = await service.get_user_pending_invites(db_session, "USER@x.com")

    assert len(invites) == 1
    assert invites[0].organization.id == studio_organization.id


async def test_expire_stale_invites(db_session, service, owner_user, studio_organization):
    await insert_invite(db_session, studio_organization.id, "a@x.com", owner_user.id)
    stale = await insert_invite(
        db_session, studio_organization.id, "b@x.com", owner_user.id, expires_in_hours=-1
    )

    assert await service.expire_stale_invites(db_session) == 1
    assert await service.expire_stale_invites(db_session) == 0
    assert (await crud.invite.get_fresh(db_session, invite_id=stale.id)).status == "expired"


async def test_concurrent_accept_lets_only_one_through(db_session, session_factory, service,
                                                       owner_user, member_user,
                                                       studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )
    is_member = membership_service.is_organization_member
    calls = []

    async def accept_elsewhere_first(db, organization_id, user_id):
        # The other request wins while this one is between its checks and the update
        if not calls:
            calls.append(user_id)
            async with session_factory() as other:
                await service.accept_invite(other, invite.token, member_user)
            return False
        return await is_member(db, organization_id, user_id)

    with patch.object(
        membership_service, "is_organization_member", side_effect=accept_elsewhere_first
    ):
        with pytest.raises(InviteAlreadyUsedException) as exc_info:
            await service.accept_invite(db_session, invite.token, member_user)

    assert exc_info.value.status == "accepted"
    assert await membership_service.get_member_count(db_session, studio_organization.id) == 2


async def test_accept_maps_duplicate_membership_to_conflict(db_session, service, owner_user,
                                                            member_user, studio_organization):
    invite = await service.create_invite(
        db_session, studio_organization.id, schemas.InviteCreate(email="user@x.com"), owner_user
    )
    await add_member(db_session, studio_organization.id, member_user)

    with patch.object(membership_service, "is_organization_member", AsyncMock(return_value=False)):
        with pytest.raises(ConflictException) as exc_info:
            await service.accept_invite(db_session, invite.token, member_user)

    assert isinstance(exc_info.value.__cause__, IntegrityError)
    assert (await crud.invite.get_fresh(db_session, invite_id=invite.id)).status == "pending"
    assert await membership_service.get_member_count(db_session, studio_organization.id) == 2
