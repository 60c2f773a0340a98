"""Common test fixtures and factories."""

from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.organization_service import organization_service
from stencilflow.core.shared_models import OrganizationTier, SubscriptionStatus, UserPlan


async def make_user(
    db: AsyncSession,
    email: str,
    plan: UserPlan = UserPlan.FREE,
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE,
    full_name: Optional[str] = None,
) -> schemas.User:
    """Insert a user and return its schema."""
    user = await crud.user.create(
        db,
        obj_in=schemas.UserCreate(
            email=email,
            full_name=full_name,
            plan=plan,
            subscription_status=subscription_status,
        ),
    )
    return schemas.User.model_validate(user)


async def make_organization(
    db: AsyncSession,
    owner: schemas.User,
    name: str = "Acme Stencils",
    tier: OrganizationTier = OrganizationTier.STUDIO,
) -> schemas.OrganizationWithRole:
    """Create an organization through the service, so the owner membership exists too."""
    return await organization_service.create_organization(
        db, org_in=schemas.OrganizationCreate(name=name, tier=tier), owner=owner
    )


async def add_member(
    db: AsyncSession, organization_id, user: schemas.User
) -> None:
    """Give a user a member seat directly, bypassing invites."""
    await crud.membership.create(
        db,
        obj_in=schemas.MembershipCreate(organization_id=organization_id, user_id=user.id),
    )


@pytest.fixture
async def owner_user(db_session) -> schemas.User:
    """A user with an active Studio subscription."""
    return await make_user(
        db_session,
        "owner@stencilflow.com",
        plan=UserPlan.STUDIO,
        subscription_status=SubscriptionStatus.ACTIVE,
        full_name="Olivia Owner",
    )


@pytest.fixture
async def member_user(db_session) -> schemas.User:
    """A free user who will be invited."""
    return await make_user(db_session, "user@x.com", full_name="Uma User")


@pytest.fixture
async def outsider_user(db_session) -> schemas.User:
    """A user unrelated to any organization."""
    return await make_user(db_session, "outsider@x.com")


@pytest.fixture
async def studio_organization(db_session, owner_user) -> schemas.OrganizationWithRole:
    """A Studio organization owned by ``owner_user``."""
    return await make_organization(db_session, owner_user)
