"""Unit of work for database transactions."""

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Groups several CRUD writes into one transaction.

    CRUD methods commit on their own unless they are handed a ``uow``; with one they
    only flush. The block commits when it exits cleanly and rolls back when it raises,
    so an organization is never stored without its owner membership and an invite
    is never marked accepted without the membership it grants.

    Usage:
    -----
    ```python
    async with UnitOfWork(db) as uow:
        organization = await crud.organization.create(db, obj_in=org_in, uow=uow)
        await crud.membership.create(db, obj_in=owner_in, uow=uow)
    ```

    """

    def __init__(self, session: AsyncSession):
        """Wrap ``session``; nothing is sent to the database until the block ends."""
        self.session = session
        self._outcome: str | None = None  # "committed" or "rolled_back" once finished

    @property
    def committed(self) -> bool:
        """Whether the block ended in a commit."""
        return self._outcome == "committed"

    async def commit(self) -> None:
        """Commit now. A finished unit of work ignores the call."""
        if self._outcome is None:
            await self.session.commit()
            self._outcome = "committed"

    async def rollback(self) -> None:
        """Roll back now. A finished unit of work ignores the call."""
        if self._outcome is None:
            await self.session.rollback()
            self._outcome = "rolled_back"

    async def __aenter__(self) -> "UnitOfWork":
        """Start the block."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Finish the block: roll back on an exception, commit otherwise."""
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
