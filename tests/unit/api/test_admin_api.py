"""API tests for the admin endpoints."""

from datetime import timedelta

import pytest

from stencilflow import crud, schemas
from stencilflow.core.config import settings
from stencilflow.core.datetime_utils import utc_now_naive
from stencilflow.core.invite_service import generate_invite_token
from tests.fixtures.api import as_user
from tests.fixtures.common import make_user

ADMIN = as_user("ops@stencilflow.com")


@pytest.fixture
def admin_emails(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "ops@stencilflow.com")


async def test_non_admin_is_forbidden(api_client, studio_organization):
    response = await api_client.get(
        "/admin/organizations", headers=as_user("owner@stencilflow.com")
    )

    assert response.status_code == 403


async def test_list_all_organizations(api_client, admin_emails, studio_organization):
    response = await api_client.get("/admin/organizations", headers=ADMIN)

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [str(studio_organization.id)]


async def test_expire_stale_invites(api_client, db_session, admin_emails, owner_user,
                                    studio_organization):
    stale = await crud.invite.create(
        db_session,
        obj_in={
            "organization_id": studio_organization.id,
            "email": "late@x.com",
            "role": "member",
            "token": generate_invite_token(),
            "status": "pending",
            "expires_at": utc_now_naive() - timedelta(hours=1),
            "invited_by": owner_user.id,
        },
    )

    response = await api_client.post("/admin/invites/expire", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"expired_count": 1}
    assert (await crud.invite.get_fresh(db_session, invite_id=stale.id)).status == "expired"


async def test_archive_organization(api_client, admin_emails, studio_organization):
    response = await api_client.post(
        f"/admin/organizations/{studio_organization.id}/archive", headers=ADMIN
    )

    assert response.status_code == 200
    assert response.json()["archived_at"] is not None
    assert response.json()["subscription_status"] == "canceled"

    response = await api_client.post(
        f"/organizations/{studio_organization.id}/invite",
        json={"email": "new@x.com"},
        headers=as_user("owner@stencilflow.com"),
    )
    assert response.status_code == 409


async def test_archive_requires_superadmin(api_client, db_session, studio_organization):
    support = await make_user(db_session, "support@stencilflow.com")
    await crud.admin_user.create(db_session, obj_in=schemas.AdminUserCreate(user_id=support.id))
    headers = as_user("support@stencilflow.com")

    listed = await api_client.get("/admin/organizations", headers=headers)
    archived = await api_client.post(
        f"/admin/organizations/{studio_organization.id}/archive", headers=headers
    )

    assert listed.status_code == 200
    assert archived.status_code == 403
    organization = await crud.organization.get(db_session, id=studio_organization.id)
    assert organization.archived_at is None
