"""Claim and sell-offer management.

Attendees get their token through a zero-price sell offer restricted to their
wallet. The offer disappearing from the ledger means it was accepted, so the
claimed flag is reconciled lazily whenever a claim is read.
"""

import structlog
from sqlalchemy.exc import IntegrityError
from xrpl.models.transactions import NFTokenCreateOffer, NFTokenCreateOfferFlag

from attendify.models.claim import Claim
from attendify.models.event import Event, EventStatus
from attendify.models.nft import NFT
from attendify.services.exceptions import AttendifyError
from attendify.services.ledger.gateway import LedgerConnection, LedgerGateway
from attendify.uow import UnitOfWork, UnitOfWorkFactory

logger = structlog.get_logger()


async def reconcile_event_tokens(
    uow: UnitOfWork, connection: LedgerConnection, event_id: int
) -> list[NFT]:
    """Mirror the vault's tokens of an event into the local NFT table.

    The ledger is the source of truth for token existence; rows are created
    for discovered tokens that have no local record yet.

    Returns:
        All local NFT rows of the event
    """
    tokens = await connection.get_account_nfts(connection.address, taxon=event_id)
    by_issuer: dict[str, list[str]] = {}
    for token in tokens:
        by_issuer.setdefault(token.get("Issuer", connection.address), []).append(
            token["NFTokenID"]
        )

    created = 0
    for issuer, token_ids in by_issuer.items():
        created += await uow.nfts.sync_event_tokens(event_id, issuer, token_ids)
    if created:
        logger.info("claim.tokens_reconciled", event_id=event_id, created=created)

    return await uow.nfts.list_by_event(event_id)


async def create_sell_offer(
    connection: LedgerConnection, wallet_address: str, token_id: str
) -> tuple[str, int]:
    """Offer a token to one wallet for free.

    Returns:
        Tuple of (offer index, fee spent)

    Raises:
        AttendifyError: If the wallet does not exist or the offer cannot be found afterwards
    """
    if not await connection.account_exists(wallet_address):
        raise AttendifyError("Account not found on XRPL")

    finalized = await connection.submit_and_wait(
        NFTokenCreateOffer(
            account=connection.address,
            nftoken_id=token_id,
            amount="0",
            flags=NFTokenCreateOfferFlag.TF_SELL_NFTOKEN,
            destination=wallet_address,
        )
    )

    offers = await connection.get_sell_offers(token_id)
    offer = next((o for o in offers if o.get("destination") == wallet_address), None)
    if offer is None:
        raise AttendifyError("Unable to create sell offer")

    logger.info(
        "claim.offer_created",
        token_id=token_id,
        destination=wallet_address,
        offer_index=offer["nft_offer_index"],
        tx_hash=finalized.hash,
    )
    return offer["nft_offer_index"], finalized.fee


async def check_sell_offer(connection: LedgerConnection, token_id: str, offer_index: str) -> bool:
    """Whether a sell offer for a token is still open on the ledger."""
    offers = await connection.get_sell_offers(token_id)
    return any(o.get("nft_offer_index") == offer_index for o in offers)


class ClaimService:
    """Assigns event tokens to attendees and tracks their sell offers."""

    def __init__(self, uow_factory: UnitOfWorkFactory, gateway: LedgerGateway):
        self.uow_factory = uow_factory
        self.gateway = gateway

    async def _add_fee(self, uow: UnitOfWork, event_id: int, fee: int) -> None:
        accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
        if accounting is not None and fee:
            accounting.add_tx_fee(fee)
            uow.session.add(accounting)

    async def add_participant(
        self,
        event_id: int,
        wallet_address: str,
        *,
        create_offer: bool = False,
        enforce_join_policy: bool = True,
    ) -> Claim:
        """Join a wallet to an event and reserve one token for it.

        Args:
            event_id: Event to join
            wallet_address: Joining wallet (must be a known user)
            create_offer: Create the sell offer now instead of on first claim read
            enforce_join_policy: Reject self-service joins of managed events

        Returns:
            The new claim

        Raises:
            AttendifyError: For every rejected precondition, or if another join
                claimed the selected token first
        """
        async with await self.uow_factory() as uow:
            event = await uow.events.get_for_update(event_id)
            if event is None:
                raise AttendifyError("Invalid event ID")
            if event.status != EventStatus.ACTIVE:
                raise AttendifyError("Event is not active")
            if await uow.participations.count_attendees(event_id) >= event.token_count:
                raise AttendifyError("Event already full")
            if await uow.participations.has_attendee(event_id, wallet_address):
                raise AttendifyError("User is already a participant")
            if enforce_join_policy and event.is_managed:
                raise AttendifyError("Event is private")
            if await uow.users.get_by_wallet(wallet_address) is None:
                raise AttendifyError("User not found")

            async with self.gateway.connect(event.network_id) as connection:
                await reconcile_event_tokens(uow, connection, event_id)
                unclaimed = await uow.nfts.list_unclaimed(event_id)
                if not unclaimed:
                    # Only possible when the store is out of sync with the ledger
                    logger.error("claim.no_claimable_tokens", event_id=event_id)
                    raise AttendifyError("No more claimable tokens for this event")
                nft = unclaimed[0]

                offer_index = None
                if create_offer:
                    offer_index, fee = await create_sell_offer(connection, wallet_address, nft.id)
                    await self._add_fee(uow, event_id, fee)

            try:
                await uow.participations.add_attendee(event_id, wallet_address)
                claim = await uow.claims.add(
                    Claim(
                        owner_wallet_address=wallet_address,
                        token_id=nft.id,
                        offer_index=offer_index,
                        claimed=False,
                    )
                )
            except IntegrityError as e:
                logger.warning(
                    "claim.conflict", event_id=event_id, token_id=nft.id, error=str(e.orig)
                )
                raise AttendifyError("Token already claimed") from e

            logger.info(
                "claim.created",
                event_id=event_id,
                wallet_address=wallet_address,
                token_id=nft.id,
                offer_created=offer_index is not None,
            )
            return claim

    async def add_participants(
        self,
        event_id: int,
        owner_wallet_address: str,
        wallet_addresses: list[str],
        *,
        create_offer: bool = False,
        default_slots: int = 0,
    ) -> list[Claim]:
        """Invite several wallets to an event on behalf of its owner.

        Unknown wallets get a user record. Invites bypass the managed-event
        join policy and stop at the first failure.
        """
        async with await self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            if event is None:
                raise AttendifyError("Invalid event ID")
            if event.owner_wallet_address != owner_wallet_address:
                raise AttendifyError("Only Owner can add participants")
            attendees = await uow.participations.count_attendees(event_id)
            if event.token_count < attendees + len(wallet_addresses):
                raise AttendifyError("Not enough available slots")
            for wallet_address in wallet_addresses:
                await uow.users.get_or_create(wallet_address, slots=default_slots)

        claims = []
        for wallet_address in wallet_addresses:
            claims.append(
                await self.add_participant(
                    event_id,
                    wallet_address,
                    create_offer=create_offer,
                    enforce_join_policy=False,
                )
            )
        return claims

    async def get_claim(self, wallet_address: str, event_id: int) -> Claim:
        """Read a claim, reconciling its on-ledger offer state.

        An open claim with an offer is marked claimed once the offer is gone;
        an open claim without an offer gets one now.

        Raises:
            AttendifyError: If the wallet has no claim on the event
        """
        async with await self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            claim = await uow.claims.get_for_event(wallet_address, event_id, for_update=True)
            if event is None or claim is None:
                raise AttendifyError("Unable to find Claim")

            # Offers of ended events were settled when the event was closed
            if claim.claimed or event.status != EventStatus.ACTIVE:
                return claim

            async with self.gateway.connect(event.network_id) as connection:
                if claim.offer_index:
                    if not await check_sell_offer(connection, claim.token_id, claim.offer_index):
                        claim.claimed = True
                        logger.info(
                            "claim.accepted", event_id=event_id, token_id=claim.token_id
                        )
                else:
                    claim.offer_index, fee = await create_sell_offer(
                        connection, wallet_address, claim.token_id
                    )
                    await self._add_fee(uow, event_id, fee)

            uow.session.add(claim)
            return claim

    async def get_offers(
        self, wallet_address: str, network_id: int | None = None, limit: int = 100
    ) -> list[tuple[Claim, Event]]:
        """A user's claims with their events, newest first."""
        async with await self.uow_factory() as uow:
            return await uow.claims.list_by_owner(wallet_address, network_id, limit)

    async def check_nft_ownership(self, wallet_address: str, event: Event) -> bool:
        """Whether a wallet holds one of the event's tokens."""
        async with self.gateway.connect(event.network_id) as connection:
            if not await connection.account_exists(wallet_address):
                return False
            tokens = await connection.get_account_nfts(wallet_address, taxon=event.id)
        return any(t.get("Issuer") == event.owner_wallet_address for t in tokens)

