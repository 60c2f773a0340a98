"""Unit tests for the identity service."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from stencilflow import crud, schemas
from stencilflow.core.config import settings
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.exceptions import NotFoundException, PermissionException
from stencilflow.core.identity_service import identity_service
from stencilflow.core.shared_models import AdminRole
from tests.fixtures.common import add_member


async def test_user_without_grant_is_not_admin(db_session, member_user):
    assert await identity_service.is_admin(db_session, member_user) is False


async def test_admin_grant(db_session, member_user):
    await crud.admin_user.create(
        db_session, obj_in=schemas.AdminUserCreate(user_id=member_user.id)
    )

    assert await identity_service.is_admin(db_session, member_user) is True
    assert await identity_service.is_super_admin(db_session, member_user) is False


async def test_expired_grant_is_not_admin(db_session, member_user):
    await crud.admin_user.create(
        db_session,
        obj_in=schemas.AdminUserCreate(
            user_id=member_user.id,
            role=AdminRole.SUPERADMIN,
            expires_at=utc_now_naive() - timedelta(minutes=1),
        ),
    )

    assert await identity_service.is_admin(db_session, member_user) is False


async def test_admin_emails_setting(db_session, member_user, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "someone@stencilflow.com, USER@x.com")

    assert await identity_service.is_admin(db_session, member_user) is True
    assert await identity_service.is_super_admin(db_session, member_user) is True


async def test_admin_check_fails_closed(db_session, member_user):
    with patch.object(
        crud.admin_user, "get_by_user_id", AsyncMock(side_effect=RuntimeError("db down"))
    ):
        assert await identity_service.is_admin(db_session, member_user) is False


async def test_require_member_and_owner(db_session, owner_user, member_user, outsider_user,
                                        studio_organization):
    await add_member(db_session, studio_organization.id, member_user)
    org_id = studio_organization.id

    assert (await identity_service.require_owner(db_session, org_id, owner_user)).role == "owner"
    assert (await identity_service.require_member(db_session, org_id, member_user)).role == (
        "member"
    )

    with pytest.raises(PermissionException):
        await identity_service.require_owner(db_session, org_id, member_user)
    with pytest.raises(NotFoundException):
        await identity_service.require_member(db_session, org_id, outsider_user)
    with pytest.raises(NotFoundException):
        await identity_service.require_owner(db_session, org_id, outsider_user)
