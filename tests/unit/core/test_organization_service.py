"""Unit tests for the organization service."""

import uuid

import pytest

from stencilflow import crud, schemas
from stencilflow.core.exceptions import (
    ConflictException,
    NotFoundException,
    PaymentRequiredException,
    PermissionException,
)
from stencilflow.core.organization_service import generate_slug, organization_service
from stencilflow.core.shared_models import (
    InviteStatus,
    MemberRole,
    OrganizationTier,
    SubscriptionStatus,
    UserPlan,
)
from tests.fixtures.common import add_member, make_organization, make_user


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Acme Stencils", "acme-stencils"),
        ("  Ateliê São João!! ", "atelie-sao-joao"),
        ("!!!", "organization"),
        ("a" * 80, "a" * 50),
    ],
)
def test_generate_slug(name, slug):
    assert generate_slug(name) == slug


async def test_create_organization_makes_caller_the_only_owner(db_session, owner_user):
    organization = await make_organization(db_session, owner_user)

    assert organization.role == MemberRole.OWNER
    assert organization.owner_id == owner_user.id
    assert organization.tier == OrganizationTier.STUDIO
    assert organization.slug == "acme-stencils"

    assert await crud.membership.count_owners(db_session, organization_id=organization.id) == 1
    members = await crud.membership.get_members_with_users(
        db_session, organization_id=organization.id
    )
    assert [(m.user_id, m.role) for m, _ in members] == [(owner_user.id, "owner")]


async def test_create_organization_requires_matching_plan(db_session):
    pro_user = await make_user(
        db_session,
        "pro@stencilflow.com",
        plan=UserPlan.PRO,
        subscription_status=SubscriptionStatus.ACTIVE,
    )

    with pytest.raises(PaymentRequiredException):
        await make_organization(db_session, pro_user, tier=OrganizationTier.STUDIO)


async def test_create_organization_requires_active_subscription(db_session):
    lapsed = await make_user(
        db_session,
        "lapsed@stencilflow.com",
        plan=UserPlan.STUDIO,
        subscription_status=SubscriptionStatus.PAST_DUE,
    )

    with pytest.raises(PaymentRequiredException):
        await make_organization(db_session, lapsed)


async def test_owner_cannot_create_second_organization(db_session, owner_user, studio_organization):
    with pytest.raises(ConflictException):
        await make_organization(db_session, owner_user, name="Second")


async def test_get_organization_hides_it_from_non_members(
    db_session, studio_organization, outsider_user
):
    with pytest.raises(NotFoundException):
        await organization_service.get_organization(
            db_session, studio_organization.id, outsider_user
        )


async def test_get_organization_by_id_missing(db_session):
    with pytest.raises(NotFoundException):
        await organization_service.get_organization_by_id(db_session, uuid.uuid4())


async def test_get_user_organizations_includes_role(
    db_session, studio_organization, member_user
):
    await add_member(db_session, studio_organization.id, member_user)

    organizations = await organization_service.get_user_organizations(db_session, member_user.id)

    assert [(o.id, o.role) for o in organizations] == [
        (studio_organization.id, MemberRole.MEMBER)
    ]


async def test_update_organization_is_owner_only(
    db_session, owner_user, member_user, studio_organization
):
    await add_member(db_session, studio_organization.id, member_user)

    with pytest.raises(PermissionException):
        await organization_service.update_organization(
            db_session,
            studio_organization.id,
            schemas.OrganizationUpdate(name="Hijacked"),
            member_user,
        )

    updated = await organization_service.update_organization(
        db_session,
        studio_organization.id,
        schemas.OrganizationUpdate(name="  Acme Prints  "),
        owner_user,
    )
    assert updated.name == "Acme Prints"


async def test_archived_organization_cannot_be_renamed(db_session, owner_user, studio_organization):
    await organization_service.archive_organization(db_session, studio_organization.id)

    with pytest.raises(ConflictException):
        await organization_service.update_organization(
            db_session,
            studio_organization.id,
            schemas.OrganizationUpdate(name="Acme Prints"),
            owner_user,
        )

    organization = await organization_service.get_organization_by_id(
        db_session, studio_organization.id
    )
    assert organization.name == "Acme Stencils"


async def test_transfer_ownership_keeps_single_owner(
    db_session, owner_user, member_user, studio_organization
):
    await add_member(db_session, studio_organization.id, member_user)

    result = await organization_service.transfer_ownership(
        db_session, studio_organization.id, member_user.id, owner_user
    )

    assert result.role == MemberRole.MEMBER
    assert result.owner_id == member_user.id
    assert await crud.membership.count_owners(
        db_session, organization_id=studio_organization.id
    ) == 1
    new_owner = await crud.membership.get_membership(
        db_session, organization_id=studio_organization.id, user_id=member_user.id
    )
    assert new_owner.role == MemberRole.OWNER.value


async def test_transfer_ownership_to_non_member(
    db_session, owner_user, outsider_user, studio_organization
):
    with pytest.raises(NotFoundException):
        await organization_service.transfer_ownership(
            db_session, studio_organization.id, outsider_user.id, owner_user
        )

    assert await crud.membership.count_owners(
        db_session, organization_id=studio_organization.id
    ) == 1


async def test_transfer_ownership_by_member_is_forbidden(
    db_session, owner_user, member_user, studio_organization
):
    await add_member(db_session, studio_organization.id, member_user)

    with pytest.raises(PermissionException):
        await organization_service.transfer_ownership(
            db_session, studio_organization.id, owner_user.id, member_user
        )


async def test_archive_cancels_pending_invites_and_keeps_members(
    db_session, owner_user, member_user, studio_organization
):
    await add_member(db_session, studio_organization.id, member_user)
    invite = await crud.invite.create(
        db_session,
        obj_in={
            "organization_id": studio_organization.id,
            "email": "later@x.com",
            "role": "member",
            "token": "a" * 64,
            "status": "pending",
            "expires_at": studio_organization.created_at.replace(year=2999),
            "invited_by": owner_user.id,
        },
    )

    organization = await organization_service.archive_organization(
        db_session, studio_organization.id
    )
    again = await organization_service.archive_organization(db_session, studio_organization.id)

    assert organization.is_archived
    assert again.archived_at == organization.archived_at
    assert organization.subscription_status == SubscriptionStatus.CANCELED.value
    refreshed = await crud.invite.get_fresh(db_session, invite_id=invite.id)
    assert refreshed.status == InviteStatus.CANCELLED.value
    assert await crud.membership.count_members(
        db_session, organization_id=studio_organization.id
    ) == 2


async def test_update_subscription_by_subscription_id(db_session, owner_user):
    organization = await organization_service.create_organization(
        db_session,
        org_in=schemas.OrganizationCreate(name="Billed", tier=OrganizationTier.STUDIO),
        owner=owner_user,
        subscription_id="sub_123",
    )

    updated = await organization_service.update_subscription(
        db_session, subscription_id="sub_123", status=SubscriptionStatus.PAST_DUE
    )

    assert updated.id == organization.id
    assert updated.subscription_status == SubscriptionStatus.PAST_DUE.value
    assert (
        await organization_service.update_subscription(
            db_session, subscription_id="sub_unknown", status=SubscriptionStatus.ACTIVE
        )
        is None
    )
