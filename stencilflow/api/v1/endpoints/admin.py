"""Admin-only API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import schemas
from stencilflow.api import deps
from stencilflow.api.context import ApiContext
from stencilflow.core.invite_service import invite_service
from stencilflow.core.organization_service import organization_service

router = APIRouter()


@router.get("/organizations", response_model=list[schemas.Organization])
async def list_all_organizations(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.require_admin),
) -> list[schemas.Organization]:
    """List every organization, archived ones included, newest first."""
    return await organization_service.list_organizations(db, skip=skip, limit=limit)


@router.post(
    "/invites/expire",
    response_model=schemas.ExpiredInvitesResult,
    dependencies=[Depends(deps.rate_limit)],
)
async def expire_stale_invites(
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.require_admin),
) -> schemas.ExpiredInvitesResult:
    """Persist the expired status on every pending invite past its expiry."""
    expired_count = await invite_service.expire_stale_invites(db)
    ctx.logger.info(f"Admin expired {expired_count} invites")
    return schemas.ExpiredInvitesResult(expired_count=expired_count)


@router.post(
    "/organizations/{organization_id}/archive",
    response_model=schemas.Organization,
    dependencies=[Depends(deps.rate_limit)],
)
async def archive_organization(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.require_super_admin),
) -> schemas.Organization:
    """Archive an organization and cancel its pending invites."""
    organization = await organization_service.archive_organization(db, organization_id)
    ctx.logger.info(f"Admin archived organization {organization_id}")
    return schemas.Organization.model_validate(organization)
