"""Claim repository for Attendify backend.

The unique constraint on claims.token_id is the linearization point for
concurrent joins: add() surfaces the IntegrityError to the caller.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.claim import Claim
from attendify.models.event import Event, NetworkIdentifier
from attendify.models.nft import NFT


class ClaimRepository:
    """Repository for Claim entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, claim: Claim) -> Claim:
        """Persist a new claim.

        Raises:
            IntegrityError: If the token already backs another claim
        """
        self.session.add(claim)
        await self.session.flush()
        return claim

    async def get_for_event(
        self, owner_wallet_address: str, event_id: int, for_update: bool = False
    ) -> Claim | None:
        """Retrieve a user's claim on an event's token."""
        query = (
            select(Claim)
            .join(NFT, NFT.id == Claim.token_id)  # type: ignore[arg-type]
            .where(Claim.owner_wallet_address == owner_wallet_address)
            .where(NFT.event_id == event_id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_owner(
        self,
        owner_wallet_address: str,
        network_id: NetworkIdentifier | None = None,
        limit: int = 100,
    ) -> list[tuple[Claim, Event]]:
        """List a user's claims together with their events, newest first."""
        query = (
            select(Claim, Event)
            .join(NFT, NFT.id == Claim.token_id)  # type: ignore[arg-type]
            .join(Event, Event.id == NFT.event_id)  # type: ignore[arg-type]
            .where(Claim.owner_wallet_address == owner_wallet_address)
        )
        if network_id is not None and network_id != NetworkIdentifier.UNKNOWN:
            query = query.where(Event.network_id == int(network_id))
        result = await self.session.execute(query.order_by(Claim.id.desc()).limit(limit))  # type: ignore[union-attr]
        return [(claim, event) for claim, event in result.all()]

    async def count(
        self, network_id: NetworkIdentifier | None = None, claimed_only: bool = False
    ) -> int:
        query = select(func.count()).select_from(Claim)
        if network_id is not None and network_id != NetworkIdentifier.UNKNOWN:
            query = (
                query.join(NFT, NFT.id == Claim.token_id)  # type: ignore[arg-type]
                .join(Event, Event.id == NFT.event_id)  # type: ignore[arg-type]
                .where(Event.network_id == int(network_id))
            )
        if claimed_only:
            query = query.where(Claim.claimed == True)  # noqa: E712
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_by_event(self, event_id: int, for_update: bool = False) -> list[Claim]:
        query = (
            select(Claim)
            .join(NFT, NFT.id == Claim.token_id)  # type: ignore[arg-type]
            .where(NFT.event_id == event_id)
            .order_by(Claim.id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())
