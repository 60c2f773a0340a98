"""API endpoints for organizations, their members and their invites."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import schemas
from stencilflow.api import deps
from stencilflow.api.context import ApiContext
from stencilflow.core.identity_service import identity_service
from stencilflow.core.invite_service import invite_service
from stencilflow.core.membership_service import membership_service
from stencilflow.core.organization_service import organization_service
from stencilflow.core.shared_models import InviteStatus

router = APIRouter()


@router.post(
    "",
    response_model=schemas.OrganizationWithRole,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.rate_limit)],
)
async def create_organization(
    organization_data: schemas.OrganizationCreate,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.OrganizationWithRole:
    """Create a new organization with the current user as its owner.

    The user's plan has to match the requested tier and their subscription has to
    be active.

    Args:
        organization_data: The organization data to create
        db: Database session
        ctx: The current request context

    Returns:
        The created organization with the owner role
    """
    organization = await organization_service.create_organization(
        db, org_in=organization_data, owner=ctx.user
    )
    ctx.logger.info(f"Created organization {organization.id}")
    return organization


@router.get("", response_model=list[schemas.OrganizationWithRole])
async def list_user_organizations(
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> list[schemas.OrganizationWithRole]:
    """Get all organizations the current user belongs to, with the user's role in each."""
    return await organization_service.get_user_organizations(db, ctx.user_id)


@router.get("/{organization_id}", response_model=schemas.OrganizationWithRole)
async def get_organization(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.OrganizationWithRole:
    """Get an organization. Organizations the user is not a member of are not found."""
    return await organization_service.get_organization(db, organization_id, ctx.user)


@router.patch(
    "/{organization_id}",
    response_model=schemas.OrganizationWithRole,
    dependencies=[Depends(deps.rate_limit)],
)
async def update_organization(
    organization_id: UUID,
    organization_data: schemas.OrganizationUpdate,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.OrganizationWithRole:
    """Update an organization. Owner only."""
    return await organization_service.update_organization(
        db, organization_id, organization_data, ctx.user
    )


@router.post(
    "/{organization_id}/transfer-ownership",
    response_model=schemas.OrganizationWithRole,
    dependencies=[Depends(deps.rate_limit)],
)
async def transfer_ownership(
    organization_id: UUID,
    transfer: schemas.TransferOwnershipRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.OrganizationWithRole:
    """Hand the organization to another member. The caller stays on as a member.

    Returns:
        The organization with the caller's new role
    """
    organization = await organization_service.transfer_ownership(
        db, organization_id, transfer.user_id, ctx.user
    )
    ctx.logger.info(f"Transferred organization {organization_id} to {transfer.user_id}")
    return organization


@router.get("/{organization_id}/members", response_model=schemas.MemberList)
async def list_members(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.MemberList:
    """List the members of an organization together with its seat usage. Members only."""
    await identity_service.require_member(db, organization_id, ctx.user)
    organization = await organization_service.get_organization_by_id(db, organization_id)
    return await membership_service.get_member_list(db, organization)


@router.delete(
    "/{organization_id}/members",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(deps.rate_limit)],
)
async def remove_member(
    organization_id: UUID,
    user_id: UUID = Query(..., description="The member to remove"),
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> Response:
    """Remove a member from an organization. Owner only; the owner cannot be removed."""
    await membership_service.remove_member(db, organization_id, user_id, ctx.user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{organization_id}/invite",
    response_model=schemas.InviteWithToken,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.rate_limit)],
)
async def create_invite(
    organization_id: UUID,
    invite_data: schemas.InviteCreate,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.InviteWithToken:
    """Invite an email address to the organization. Owner only.

    The invitee receives an email with a link containing the invite token.
    """
    return await invite_service.create_invite(db, organization_id, invite_data, ctx.user)


@router.get("/{organization_id}/invite", response_model=list[schemas.InviteWithToken])
async def list_invites(
    organization_id: UUID,
    invite_status: Optional[InviteStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> list[schemas.InviteWithToken]:
    """List the organization's invites, newest first. Owner only.

    Args:
        organization_id: The organization
        invite_status: Only return invites in this effective status
        db: Database session
        ctx: The current request context
    """
    return await invite_service.get_organization_invites(
        db, organization_id, ctx.user, status=invite_status
    )


@router.delete(
    "/{organization_id}/invite",
    response_model=schemas.Invite,
    dependencies=[Depends(deps.rate_limit)],
)
async def cancel_invite(
    organization_id: UUID,
    invite_id: UUID = Query(..., description="The invite to cancel"),
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.Invite:
    """Cancel a pending invite. Owner only."""
    return await invite_service.cancel_invite(db, organization_id, invite_id, ctx.user)
