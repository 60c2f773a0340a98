"""The API module that contains the endpoints for users."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import schemas
from stencilflow.api import deps
from stencilflow.api.context import ApiContext
from stencilflow.core.invite_service import invite_service
from stencilflow.core.organization_service import organization_service

router = APIRouter()


@router.get("/me", response_model=schemas.UserWithOrganizations)
async def read_current_user(
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.UserWithOrganizations:
    """Get the authenticated user with every organization they belong to.

    Args:
    ----
        db (AsyncSession): The database session.
        ctx (ApiContext): The current request context.

    Returns:
    -------
        schemas.UserWithOrganizations: The user and their organizations with roles.

    """
    organizations = await organization_service.get_user_organizations(db, ctx.user_id)
    return schemas.UserWithOrganizations(**ctx.user.model_dump(), organizations=organizations)


@router.get("/me/invites", response_model=list[schemas.InviteDetails])
async def read_my_pending_invites(
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> list[schemas.InviteDetails]:
    """List the live invites addressed to the authenticated user's email."""
    return await invite_service.get_user_pending_invites(db, ctx.user.email)
