"""Initialize the database with the first superuser."""

from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.config import settings
from stencilflow.core.logging import logger
from stencilflow.core.shared_models import AdminRole


async def init_db(db: AsyncSession) -> None:
    """Make sure the first superuser exists and holds a superadmin grant.

    Args:
    ----
        db (AsyncSession): The database session.
    """
    user = await crud.user.get_by_email(db, email=settings.FIRST_SUPERUSER)
    if user is None:
        logger.info(f"User {settings.FIRST_SUPERUSER} not found, creating...")
        user = await crud.user.create(
            db,
            obj_in=schemas.UserCreate(email=settings.FIRST_SUPERUSER, full_name="Superuser"),
        )

    if await crud.admin_user.get_by_user_id(db, user_id=user.id) is None:
        await crud.admin_user.create(
            db,
            obj_in=schemas.AdminUserCreate(
                user_id=user.id,
                role=AdminRole.SUPERADMIN,
                granted_by_email="system",
            ),
        )
        logger.info(f"Granted superadmin to {settings.FIRST_SUPERUSER}")
