"""Event repository for Attendify backend.

Provides data access methods for Event entities. Status changes go through
get_for_update() so that read-modify-write sequences hold a row lock.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.event import OPEN_STATUSES, Event, EventStatus, NetworkIdentifier
from attendify.models.participation import Participation


def _on_network(query, network_id: NetworkIdentifier | int | None):
    """Restrict a query to one network; UNKNOWN or None means any network."""
    if network_id is None or network_id == NetworkIdentifier.UNKNOWN:
        return query
    return query.where(Event.network_id == int(network_id))


class EventRepository:
    """Repository for Event entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, event_id: int) -> Event | None:
        """Retrieve event by id.

        Args:
            event_id: Event identifier (also the NFT taxon)

        Returns:
            Event if found, None otherwise
        """
        result = await self.session.execute(select(Event).where(Event.id == event_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_for_update(self, event_id: int) -> Event | None:
        """Retrieve event with a row-level lock held until commit or rollback.

        Args:
            event_id: Event identifier

        Returns:
            Locked event if found, None otherwise
        """
        result = await self.session.execute(
            select(Event).where(Event.id == event_id).with_for_update()  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def add(self, event: Event) -> Event:
        """Persist new event to database.

        Args:
            event: Event entity with a pre-assigned id

        Returns:
            Persisted event
        """
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_max_id(self) -> int | None:
        """Return the highest event id in use, None for an empty table."""
        result = await self.session.execute(select(func.max(Event.id)))
        return result.scalar_one_or_none()

    async def list_all(
        self, network_id: NetworkIdentifier | None = None, limit: int = 100
    ) -> list[Event]:
        query = _on_network(select(Event), network_id).order_by(Event.id.desc()).limit(limit)  # type: ignore[union-attr]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_public(
        self, network_id: NetworkIdentifier | None = None, limit: int = 100
    ) -> list[Event]:
        """List active events open for self-service signup, newest first."""
        query = (
            _on_network(select(Event), network_id)
            .where(Event.is_managed == False)  # noqa: E712
            .where(Event.status == EventStatus.ACTIVE)
            .order_by(Event.id.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_owned(
        self,
        owner_wallet_address: str,
        network_id: NetworkIdentifier | None = None,
        limit: int = 100,
    ) -> list[Event]:
        query = (
            _on_network(select(Event), network_id)
            .where(Event.owner_wallet_address == owner_wallet_address)
            .order_by(Event.id.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_attended(self, wallet_address: str) -> list[Event]:
        """List events the wallet participates in."""
        result = await self.session.execute(
            select(Event)
            .join(Participation, Participation.event_id == Event.id)  # type: ignore[arg-type]
            .where(Participation.user_wallet_address == wallet_address)
            .order_by(Event.id.desc())  # type: ignore[union-attr]
        )
        return list(result.scalars().all())

    async def list_by_status(
        self,
        status: EventStatus,
        network_id: NetworkIdentifier | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """List events in one lifecycle status, oldest first."""
        query = (
            _on_network(select(Event), network_id)
            .where(Event.status == status)
            .order_by(Event.id)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_expired(
        self, now: datetime, network_id: NetworkIdentifier | None = None
    ) -> list[Event]:
        """List active events whose end date has passed."""
        query = (
            _on_network(select(Event), network_id)
            .where(Event.status == EventStatus.ACTIVE)
            .where(Event.date_end < now)
            .order_by(Event.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def sum_open_token_count(self, owner_wallet_address: str) -> int:
        """Total token supply across the owner's events that still hold slots."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Event.token_count), 0))
            .where(Event.owner_wallet_address == owner_wallet_address)
            .where(Event.status.in_([int(s) for s in OPEN_STATUSES]))  # type: ignore[attr-defined]
        )
        return int(result.scalar_one())

    async def count_by_status(
        self, network_id: NetworkIdentifier | None = None
    ) -> dict[EventStatus, int]:
        """Count events per lifecycle status; statuses with no events report 0."""
        query = _on_network(select(Event.status, func.count()), network_id).group_by(Event.status)
        result = await self.session.execute(query)
        counts = {status: 0 for status in EventStatus}
        for status, count in result.all():
            counts[EventStatus(status)] = count
        return counts
