"""API endpoints for invitees."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import schemas
from stencilflow.api import deps
from stencilflow.api.context import ApiContext
from stencilflow.core.invite_service import invite_service

router = APIRouter()


@router.get("/{token}", response_model=schemas.InviteDetails)
async def get_invite(
    token: str,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.InviteDetails:
    """Look up an invite by its token. No authentication required.

    Expired invites are returned with status ``expired``.
    """
    return await invite_service.get_invite_by_token(db, token)


@router.post(
    "/{token}",
    response_model=schemas.OrganizationWithRole,
    dependencies=[Depends(deps.rate_limit)],
)
async def accept_invite(
    token: str,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.OrganizationWithRole:
    """Accept an invite and join its organization.

    The invite must have been sent to the authenticated user's email.

    Returns:
        The organization joined, with the member role
    """
    organization = await invite_service.accept_invite(db, token, ctx.user)
    ctx.logger.info(f"Joined organization {organization.id}")
    return organization
