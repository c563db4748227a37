"""Accounting repository for Attendify backend."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.accounting import Accounting


class AccountingRepository:
    """Repository for Accounting entities (one per event)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_event_id(self, event_id: int, for_update: bool = False) -> Accounting | None:
        """Retrieve the accounting record of an event.

        Args:
            event_id: Owning event id
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            Accounting if found, None otherwise
        """
        query = select(Accounting).where(Accounting.event_id == event_id)  # type: ignore[arg-type]
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, accounting: Accounting) -> Accounting:
        self.session.add(accounting)
        await self.session.flush()
        return accounting
