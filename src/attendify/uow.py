"""Transaction boundary shared by the orchestrator, claim service and API routes."""

from typing import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendify.repositories.accounting import AccountingRepository
from attendify.repositories.claim import ClaimRepository
from attendify.repositories.event import EventRepository
from attendify.repositories.nft import NFTRepository
from attendify.repositories.participation import ParticipationRepository
from attendify.repositories.user import UserRepository

logger = structlog.get_logger()


class UnitOfWork:
    """One session plus every repository bound to it.

    Commits when the block exits cleanly and rolls back otherwise:
        async with await uow_factory() as uow:
            event = await uow.events.get_for_update(event_id)
            event.mark_closed()
    """

    def __init__(self, session: AsyncSession):
        self.session = session

        self.users = UserRepository(session)
        self.events = EventRepository(session)
        self.accountings = AccountingRepository(session)
        self.nfts = NFTRepository(session)
        self.claims = ClaimRepository(session)
        self.participations = ParticipationRepository(session)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.debug("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


UnitOfWorkFactory = Callable[[], Awaitable[UnitOfWork]]


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWorkFactory:
    """Each call opens a fresh session; stored on app.state and handed to services."""

    async def _create_uow():
        return UnitOfWork(session_factory())

    return _create_uow
