"""NFT repository for Attendify backend."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.claim import Claim
from attendify.models.event import Event, NetworkIdentifier
from attendify.models.nft import NFT


class NFTRepository:
    """Repository for NFT entities, the local cache of minted tokens."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, token_id: str) -> NFT | None:
        result = await self.session.execute(select(NFT).where(NFT.id == token_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def add(self, nft: NFT) -> NFT:
        self.session.add(nft)
        await self.session.flush()
        return nft

    async def list_by_event(self, event_id: int) -> list[NFT]:
        result = await self.session.execute(
            select(NFT).where(NFT.event_id == event_id).order_by(NFT.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def list_unclaimed(self, event_id: int) -> list[NFT]:
        """List event tokens that no claim points at yet.

        Returns:
            Unclaimed tokens in stable id order
        """
        result = await self.session.execute(
            select(NFT)
            .outerjoin(Claim, Claim.token_id == NFT.id)  # type: ignore[arg-type]
            .where(NFT.event_id == event_id)
            .where(Claim.id == None)  # noqa: E711
            .order_by(NFT.id)
        )
        return list(result.scalars().all())

    async def sync_event_tokens(
        self, event_id: int, issuer_wallet_address: str, token_ids: list[str]
    ) -> int:
        """Create rows for ledger tokens that have no local record yet.

        Args:
            event_id: Event the tokens were minted for
            issuer_wallet_address: Wallet holding the tokens
            token_ids: NFTokenIDs discovered on the ledger

        Returns:
            Number of rows created
        """
        known = {nft.id for nft in await self.list_by_event(event_id)}
        created = 0
        for token_id in token_ids:
            if token_id in known:
                continue
            self.session.add(
                NFT(id=token_id, issuer_wallet_address=issuer_wallet_address, event_id=event_id)
            )
            known.add(token_id)
            created += 1
        if created:
            await self.session.flush()
        return created

    async def count(self, network_id: NetworkIdentifier | None = None) -> int:
        query = select(func.count()).select_from(NFT)
        if network_id is not None and network_id != NetworkIdentifier.UNKNOWN:
            query = query.join(Event, Event.id == NFT.event_id).where(  # type: ignore[arg-type]
                Event.network_id == int(network_id)
            )
        result = await self.session.execute(query)
        return result.scalar_one()
