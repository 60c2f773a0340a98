"""CRUD operations for admin grants."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.crud._base import CRUDBase
from stencilflow.models.admin_user import AdminUser
from stencilflow.schemas.admin import AdminUserCreate


class CRUDAdminUser(CRUDBase[AdminUser, AdminUserCreate, AdminUserCreate]):
    """CRUD operations for admin grants."""

    async def get_by_user_id(self, db: AsyncSession, *, user_id: UUID) -> Optional[AdminUser]:
        """Get the admin grant of a user, expired or not."""
        result = await db.execute(select(AdminUser).where(AdminUser.user_id == user_id))
        return result.scalar_one_or_none()


admin_user = CRUDAdminUser(AdminUser)
