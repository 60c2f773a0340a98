"""Unit tests for the membership service."""

import uuid

import pytest

from stencilflow import crud
from stencilflow.core.exceptions import ConflictException, NotFoundException, PermissionException
from stencilflow.core.membership_service import membership_service
from stencilflow.core.shared_models import MemberRole, OrganizationTier
from tests.fixtures.common import add_member, make_user


def test_max_members_by_tier():
    assert membership_service.max_members(OrganizationTier.STUDIO) == 3
    assert membership_service.max_members("enterprise") == 5


async def test_roles_and_predicates(db_session, owner_user, member_user, outsider_user,
                                    studio_organization):
    await add_member(db_session, studio_organization.id, member_user)
    org_id = studio_organization.id

    assert await membership_service.get_member_role(db_session, org_id, owner_user.id) == (
        MemberRole.OWNER
    )
    assert await membership_service.is_organization_owner(db_session, org_id, owner_user.id)
    assert await membership_service.is_organization_member(db_session, org_id, member_user.id)
    assert not await membership_service.is_organization_owner(db_session, org_id, member_user.id)
    assert not await membership_service.is_organization_member(
        db_session, org_id, outsider_user.id
    )


async def test_member_list_reports_seat_usage(db_session, owner_user, member_user,
                                              studio_organization):
    await add_member(db_session, studio_organization.id, member_user)
    organization = await crud.organization.get(db_session, id=studio_organization.id)

    member_list = await membership_service.get_member_list(db_session, organization)

    assert [m.email for m in member_list.members] == ["owner@stencilflow.com", "user@x.com"]
    assert member_list.member_count == 2
    assert member_list.max_members == 3
    assert member_list.can_add_more is True

    third = await make_user(db_session, "third@x.com")
    await add_member(db_session, studio_organization.id, third)
    assert await membership_service.can_add_more_members(db_session, organization) is False


async def test_remove_member(db_session, owner_user, member_user, studio_organization):
    await add_member(db_session, studio_organization.id, member_user)

    await membership_service.remove_member(
        db_session, studio_organization.id, member_user.id, owner_user
    )

    assert not await membership_service.is_organization_member(
        db_session, studio_organization.id, member_user.id
    )
    assert await membership_service.get_member_count(db_session, studio_organization.id) == 1


async def test_removing_sole_owner_conflicts(db_session, owner_user, studio_organization):
    with pytest.raises(ConflictException):
        await membership_service.remove_member(
            db_session, studio_organization.id, owner_user.id, owner_user
        )

    assert await membership_service.is_organization_owner(
        db_session, studio_organization.id, owner_user.id
    )


async def test_member_cannot_remove_others(db_session, owner_user, member_user,
                                           studio_organization):
    await add_member(db_session, studio_organization.id, member_user)

    with pytest.raises(PermissionException):
        await membership_service.remove_member(
            db_session, studio_organization.id, owner_user.id, member_user
        )


async def test_outsider_sees_not_found(db_session, owner_user, outsider_user, studio_organization):
    with pytest.raises(NotFoundException):
        await membership_service.remove_member(
            db_session, studio_organization.id, owner_user.id, outsider_user
        )


async def test_removing_non_member_is_not_found(db_session, owner_user, studio_organization):
    with pytest.raises(NotFoundException):
        await membership_service.remove_member(
            db_session, studio_organization.id, uuid.uuid4(), owner_user
        )
