"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional

from fastapi import Depends, Request, Response
from fastapi_auth0 import Auth0User
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.api.auth import Identity, auth0, identity_from_auth0_user
from stencilflow.api.context import ApiContext
from stencilflow.core.config import settings
from stencilflow.core.exceptions import (
    PermissionException,
    RateLimitExceededException,
    UnauthenticatedException,
)
from stencilflow.core.identity_service import identity_service
from stencilflow.core.logging import logger
from stencilflow.core.rate_limiter import RateLimiter, api_limiter, get_rate_limit_identifier
from stencilflow.db.session import get_db
from stencilflow.integrations.stripe_client import StripeClient, stripe_client
from stencilflow.models.user import User

__all__ = [
    "get_db",
    "get_identity",
    "get_user",
    "get_context",
    "get_rate_limiter",
    "rate_limit",
    "require_admin",
    "require_super_admin",
    "get_stripe_client",
]


async def get_identity(
    auth0_user: Optional[Auth0User] = Depends(auth0.get_user),
) -> Optional[Identity]:
    """Resolve the bearer token into the caller's identity, or None when there is none."""
    return identity_from_auth0_user(auth0_user)


async def _provision_user(db: AsyncSession, identity: Identity) -> User:
    """Find the user behind an identity, creating or linking the row on first sight."""
    user = await crud.user.get_by_auth0_id(db, auth0_id=identity.sub)
    if user:
        return user

    user = await crud.user.get_by_email(db, email=identity.email)
    if user:
        if user.auth0_id is None:
            user = await crud.user.update(db, db_obj=user, obj_in={"auth0_id": identity.sub})
        return user

    try:
        user = await crud.user.create(
            db,
            obj_in=schemas.UserCreate(
                email=identity.email, full_name=identity.name, auth0_id=identity.sub
            ),
        )
    except IntegrityError:
        # A concurrent request provisioned the same user first
        await db.rollback()
        user = await crud.user.get_by_email(db, email=identity.email)
        if user is None:
            raise
        return user

    logger.info(f"Provisioned user {user.id} for {identity.email}")
    return user


async def get_user(
    db: AsyncSession = Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
) -> schemas.User:
    """Map the caller's identity onto a user row.

    Args:
    ----
        db (AsyncSession): Database session.
        identity (Optional[Identity]): The caller's identity.

    Returns:
    -------
        schemas.User: The user, provisioned from the identity claims on first sight.

    Raises:
    ------
        UnauthenticatedException: If there is no identity or it carries no email.
        PermissionException: If the user has been deactivated.

    """
    if identity is None:
        raise UnauthenticatedException()
    if not identity.email:
        raise UnauthenticatedException("Identity does not include an email address")

    user = schemas.User.model_validate(await _provision_user(db, identity))
    if not user.is_active:
        raise PermissionException("User account is disabled")
    return user


async def get_context(
    request: Request,
    user: schemas.User = Depends(get_user),
) -> ApiContext:
    """Create unified API context for the request.

    Args:
    ----
        request (Request): The FastAPI request object.
        user (schemas.User): The authenticated user.

    Returns:
    -------
        ApiContext: Unified API context with auth and logging.

    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    auth_method = "auth0" if settings.AUTH_ENABLED else "system"

    return ApiContext(
        request_id=request_id,
        user=user,
        auth_method=auth_method,
        logger=logger.with_context(
            request_id=request_id,
            user_id=str(user.id),
            user_email=user.email,
            auth_method=auth_method,
            context_base="api",
        ),
    )


def get_rate_limiter() -> RateLimiter:
    """The limiter guarding mutating endpoints."""
    return api_limiter


async def rate_limit(
    request: Request,
    response: Response,
    identity: Optional[Identity] = Depends(get_identity),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Count the request against the caller and reject it once the window is used up.

    Runs before the user is looked up, so a rejected request never touches the database.

    Raises:
    ------
        RateLimitExceededException: If the caller has no requests left in this window.

    """
    identifier = get_rate_limit_identifier(request, identity.sub if identity else None)
    result = await limiter.check(identifier)

    if not result.success:
        logger.warning(f"Rate limit exceeded for {identifier} on {request.url.path}")
        raise RateLimitExceededException(
            limit=result.limit, remaining=result.remaining, reset=result.reset
        )

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset)


async def require_admin(
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
) -> ApiContext:
    """Allow the request only for admins.

    Raises:
    ------
        PermissionException: If the user is not an admin.

    """
    if not await identity_service.is_admin(db, ctx.user):
        ctx.logger.warning("Admin access denied")
        raise PermissionException("Admin access required")
    return ctx


async def require_super_admin(
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
) -> ApiContext:
    """Allow the request only for superadmins, for destructive admin actions."""
    if not await identity_service.is_super_admin(db, ctx.user):
        ctx.logger.warning("Superadmin access denied")
        raise PermissionException("Superadmin access required")
    return ctx


def get_stripe_client() -> Optional[StripeClient]:
    """The Stripe client, None when billing is disabled."""
    return stripe_client
