"""Participation repository - event attendee membership."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.participation import Participation
from attendify.models.user import User


class ParticipationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_attendee(self, event_id: int, wallet_address: str) -> Participation:
        """Add a user to an event's attendees.

        Raises:
            IntegrityError: If the user already attends the event
        """
        participation = Participation(event_id=event_id, user_wallet_address=wallet_address)
        self.session.add(participation)
        await self.session.flush()
        return participation

    async def has_attendee(self, event_id: int, wallet_address: str) -> bool:
        result = await self.session.execute(
            select(Participation.id)
            .where(Participation.event_id == event_id)
            .where(Participation.user_wallet_address == wallet_address)
        )
        return result.first() is not None

    async def count_attendees(self, event_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Participation).where(Participation.event_id == event_id)
        )
        return result.scalar_one()

    async def list_attendees(self, event_id: int) -> list[User]:
        result = await self.session.execute(
            select(User)
            .join(Participation, Participation.user_wallet_address == User.wallet_address)  # type: ignore[arg-type]
            .where(Participation.event_id == event_id)
            .order_by(Participation.id)
        )
        return list(result.scalars().all())
