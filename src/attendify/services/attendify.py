"""Event lifecycle orchestrator.

Coordinates the relational store with the XRP Ledger for the whole life of an
event: creation and deposit calculation, payment verification, batch minting
through tickets, closing (burning what was never claimed) and refunding the
deposit. The store is a cache of ledger truth; every status change is a
read-modify-write under a row lock.

Operations that consume vault tickets or sequences on a network are
serialized by a per-network lock, so concurrent mints never share tickets.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine
from xrpl.models.requests import Tx
from xrpl.models.transactions import NFTokenBurn, NFTokenMint, NFTokenMintFlag, Payment
from xrpl.utils import str_to_hex

from attendify.core.database import create_schema
from attendify.models.accounting import Accounting
from attendify.models.claim import Claim
from attendify.models.event import (
    Event,
    EventStatus,
    InvalidStateTransition,
    NetworkIdentifier,
)
from attendify.models.nft import NFT
from attendify.models.user import User
from attendify.services.accounting import calc_deposit_values, refund_value, verify_payment
from attendify.services.claims import ClaimService, reconcile_event_tokens
from attendify.services.exceptions import (
    AttendifyError,
    LedgerError,
    LedgerRequestError,
    NotAuthorizedToMintError,
    RefundAlreadyProcessedError,
    ServiceError,
    TransactionFailedError,
    TransactionRejectedError,
)
from attendify.services.ipfs.pinata_client import MetadataUploader
from attendify.services.ledger.gateway import LedgerConnection, LedgerGateway, SubmittedTransaction
from attendify.services.ledger.tickets import MAX_TICKETS, prepare_tickets
from attendify.uow import UnitOfWorkFactory

logger = structlog.get_logger()


@dataclass(frozen=True)
class EventMetadata:
    """Organizer-supplied description of an event."""

    title: str
    description: str
    location: str
    image_url: str
    token_count: int
    date_start: datetime
    date_end: datetime


@dataclass(frozen=True)
class MinterStatus:
    """Whether an account authorized the vault to mint on its behalf."""

    minter_address: str
    is_configured: bool


@dataclass
class EventDetails:
    event: Event
    accounting: Accounting | None
    nfts: list[NFT] = field(default_factory=list)
    attendees: list[User] = field(default_factory=list)


@dataclass
class UserProfile:
    user: User
    attended_events: list[Event] = field(default_factory=list)


@dataclass(frozen=True)
class PlatformStats:
    users: int
    organizers: int
    events: dict[str, int]
    nfts: int
    claims: int
    claimed: int


def build_token_metadata(event: Event) -> dict[str, Any]:
    """JSON document every token of the event points at."""
    return {
        "title": event.title,
        "description": event.description,
        "image": event.image_url,
        "location": event.location,
        "date_start": event.date_start.isoformat(),
        "date_end": event.date_end.isoformat(),
        "token_count": event.token_count,
        "event_id": event.id,
        "network": NetworkIdentifier(event.network_id).name.lower(),
        "collection": {"name": event.title, "family": "attendify"},
    }


class Attendify:
    """Proof-of-attendance event lifecycle orchestrator."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateway: LedgerGateway,
        uploader: MetadataUploader,
        *,
        engine: AsyncEngine | None = None,
        max_tickets: int = MAX_TICKETS,
        default_slots: int = 0,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize the orchestrator.

        Args:
            uow_factory: UnitOfWork factory for store access
            gateway: Ledger gateway with the per-network configuration table
            uploader: Metadata uploader returning a URI (empty on failure)
            engine: Engine to verify the schema on and dispose on shutdown
            max_tickets: Per-account ticket cap, also the largest token supply
            default_slots: Slot quota of users created implicitly
            clock: Returns the current naive UTC time
        """
        self.uow_factory = uow_factory
        self.gateway = gateway
        self.uploader = uploader
        self.engine = engine
        self.max_tickets = max_tickets
        self.default_slots = default_slots
        self.clock = clock
        self.claims = ClaimService(uow_factory, gateway)

        self.next_event_id = 1
        self._event_id_lock = asyncio.Lock()
        self._network_locks: dict[int, asyncio.Lock] = {}

    def _network_lock(self, network_id: int) -> asyncio.Lock:
        return self._network_locks.setdefault(int(network_id), asyncio.Lock())

    async def init(self) -> None:
        """Prepare the store and seed process-wide state.

        Creates missing tables, seeds the event id counter from the highest
        stored id and makes sure every vault wallet has a user record.
        """
        if self.engine is not None:
            await create_schema(self.engine)

        async with await self.uow_factory() as uow:
            max_id = await uow.events.get_max_id()
            self.next_event_id = (max_id or 0) + 1

            for network_id in self.gateway.networks:
                vault_address = self.gateway.get_vault_address(network_id)
                _, created = await uow.users.get_or_create(
                    vault_address, is_organizer=True, slots=self.max_tickets
                )
                if created:
                    logger.info(
                        "attendify.vault_user_created",
                        network=network_id.name,
                        wallet_address=vault_address,
                    )

        logger.info(
            "attendify.initialized",
            next_event_id=self.next_event_id,
            networks=[n.name for n in self.gateway.networks],
        )

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    async def _get_event(self, event_id: int) -> Event:
        async with await self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
        if event is None:
            raise AttendifyError("Invalid event ID")
        return event

    # Minter authorization

    async def _minter_status(self, connection: LedgerConnection, wallet_address: str) -> MinterStatus:
        if wallet_address == connection.address:
            return MinterStatus(minter_address=connection.address, is_configured=True)
        account_data = await connection.get_account_info(wallet_address)
        configured = bool(account_data) and account_data.get("NFTokenMinter") == connection.address
        return MinterStatus(minter_address=connection.address, is_configured=configured)

    async def get_minter_status(self, network_id: int, wallet_address: str) -> MinterStatus:
        """Report whether the vault may mint on behalf of a wallet.

        Organizers authorize the vault by setting it as NFTokenMinter on their
        account; the returned minter address is what they have to set.
        """
        async with self.gateway.connect(network_id) as connection:
            return await self._minter_status(connection, wallet_address)

    # Lifecycle

    async def create_event(
        self,
        network_id: int,
        owner_wallet_address: str,
        metadata: EventMetadata,
        is_managed: bool,
    ) -> int:
        """Create an event awaiting its deposit payment.

        Nothing is minted here: minting spends vault resources and only
        happens once the deposit was verified.

        Returns:
            The new event id

        Raises:
            AttendifyError: For unsupported networks, unknown owners, invalid
                metadata or an exhausted slot quota
        """
        self.gateway.get_network_config(network_id)
        if metadata.date_end < metadata.date_start:
            raise AttendifyError("End date must not be before start date")
        if not 1 <= metadata.token_count <= self.max_tickets:
            raise AttendifyError(f"Token count must be between 1 and {self.max_tickets}")

        async with self.gateway.connect(network_id) as connection:
            if not await connection.account_exists(owner_wallet_address):
                raise AttendifyError("Unable to find account on XRPL")
            deposit = await calc_deposit_values(connection, metadata.token_count)
            deposit_address = connection.address

        async with self._event_id_lock:
            event_id = self.next_event_id
            async with await self.uow_factory() as uow:
                owner = await uow.users.get_by_wallet(owner_wallet_address)
                if owner is None:
                    raise AttendifyError("Unable to find user")
                used_slots = await uow.events.sum_open_token_count(owner_wallet_address)
                if used_slots + metadata.token_count > owner.slots:
                    raise AttendifyError("Insufficient slots")

                await uow.events.add(
                    Event(
                        id=event_id,
                        owner_wallet_address=owner_wallet_address,
                        network_id=int(network_id),
                        status=EventStatus.DRAFT,
                        title=metadata.title,
                        description=metadata.description,
                        location=metadata.location,
                        image_url=metadata.image_url,
                        token_count=metadata.token_count,
                        date_start=metadata.date_start,
                        date_end=metadata.date_end,
                        is_managed=is_managed,
                    )
                )
                await uow.accountings.add(
                    Accounting(
                        event_id=event_id,
                        deposit_address=deposit_address,
                        deposit_reserve_value=str(deposit.reserve),
                        deposit_fee_value=str(deposit.fee),
                    )
                )
            self.next_event_id = event_id + 1

        logger.info(
            "event.created",
            event_id=event_id,
            owner=owner_wallet_address,
            network=NetworkIdentifier(network_id).name,
            token_count=metadata.token_count,
            deposit_reserve=deposit.reserve,
            deposit_fee=deposit.fee,
        )
        return event_id

    async def check_payment(self, event_id: int, tx_hash: str) -> bool:
        """Verify the deposit payment of a draft event and mark it paid.

        Returns:
            True once the event is paid, False while the payment is not validated yet

        Raises:
            AttendifyError: If the event cannot take a payment or the payment is invalid
        """
        async with await self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            accounting = await uow.accountings.get_by_event_id(event_id)
        if event is None or accounting is None:
            raise AttendifyError("Invalid event ID")
        if accounting.deposit_tx_hash:
            raise AttendifyError("Payment already processed")
        if event.status != EventStatus.DRAFT:
            raise AttendifyError("Event is not awaiting payment")

        async with self.gateway.connect(event.network_id) as connection:
            try:
                result = await connection.request(Tx(transaction=tx_hash))
            except LedgerRequestError as e:
                if e.error == "txnNotFound":
                    return False
                raise
        if not result.get("validated"):
            return False

        check = verify_payment(result, accounting, event.owner_wallet_address)
        if not check.ok:
            raise AttendifyError(check.reason)

        try:
            async with await self.uow_factory() as uow:
                event = await uow.events.get_for_update(event_id)
                accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
                if accounting.deposit_tx_hash:
                    raise AttendifyError("Payment already processed")
                accounting.deposit_tx_hash = tx_hash
                event.mark_paid()
                uow.session.add_all([event, accounting])
        except InvalidStateTransition as e:
            raise AttendifyError("Event is not awaiting payment") from e
        except IntegrityError as e:
            raise AttendifyError("Payment was already used for another event") from e

        logger.info("event.paid", event_id=event_id, tx_hash=tx_hash)
        return True

    async def _upload_metadata(self, event: Event) -> str:
        try:
            return await self.uploader.upload_metadata(build_token_metadata(event), event.id)
        except ServiceError as e:
            logger.error(
                "mint.metadata_upload_failed",
                event_id=event.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ""

    def _mint_transaction(
        self, connection: LedgerConnection, event: Event, uri: str, ticket_sequence: int
    ) -> NFTokenMint:
        issuer = None
        if event.owner_wallet_address != connection.address:
            issuer = event.owner_wallet_address
        return NFTokenMint(
            account=connection.address,
            issuer=issuer,
            nftoken_taxon=event.id,
            flags=NFTokenMintFlag.TF_BURNABLE | NFTokenMintFlag.TF_TRANSFERABLE,
            transfer_fee=0,
            uri=str_to_hex(uri),
            sequence=0,
            ticket_sequence=ticket_sequence,
        )

    async def _collect(
        self, connection: LedgerConnection, submitted: list[SubmittedTransaction]
    ) -> tuple[int, list[Exception]]:
        """Wait for every submitted transaction; return fees spent and failures.

        Any ledger error while waiting counts as a failure of that transaction,
        even though it may still be validated later.
        """
        fees = 0
        failures: list[Exception] = []
        for tx in submitted:
            try:
                finalized = await connection.wait_for(tx)
                fees += finalized.fee
            except TransactionFailedError as e:
                fees += e.fee
                failures.append(e)
            except LedgerError as e:
                failures.append(e)
        return fees, failures

    async def _cancel_failed_mint(self, event_id: int, fees: int) -> None:
        async with await self.uow_factory() as uow:
            event = await uow.events.get_for_update(event_id)
            accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
            event.mark_canceled()
            if fees:
                accounting.add_tx_fee(fees)
            uow.session.add_all([event, accounting])

    async def mint_event(self, event_id: int) -> None:
        """Batch-mint the token supply of a paid event.

        One ticket per token is reserved first, then every mint is submitted
        before any of them is awaited. The event only becomes ACTIVE if all
        mints succeed; any failed mint cancels the whole event (already
        minted tokens are not reconciled).

        Raises:
            NotAuthorizedToMintError: If the event is not paid or the vault may not mint
            AttendifyError: If metadata upload or any mint transaction failed, or the
                vault already holds tokens of the event
        """
        network_id = (await self._get_event(event_id)).network_id

        async with self._network_lock(network_id):
            async with await self.uow_factory() as uow:
                event = await uow.events.get_for_update(event_id)
                if event.status != EventStatus.PAID:
                    raise NotAuthorizedToMintError("Event is not ready to be minted")

            async with self.gateway.connect(network_id) as connection:
                minter = await self._minter_status(connection, event.owner_wallet_address)
                if not minter.is_configured:
                    await self._cancel_failed_mint(event_id, 0)
                    logger.warning(
                        "mint.unauthorized", event_id=event_id, owner=event.owner_wallet_address
                    )
                    raise NotAuthorizedToMintError(
                        "Vault is not an authorized minter for the event owner"
                    )

                # Tokens under this taxon mean an earlier run already minted
                existing = await connection.get_account_nfts(connection.address, taxon=event_id)
                if existing:
                    await self._cancel_failed_mint(event_id, 0)
                    logger.error("mint.already_minted", event_id=event_id, tokens=len(existing))
                    raise AttendifyError("Tokens already minted for this event, the event was canceled")

                uri = await self._upload_metadata(event)
                if not uri:
                    raise AttendifyError("Unable to upload event metadata")

                reservation = await prepare_tickets(
                    connection, event.token_count, max_tickets=self.max_tickets
                )

                submitted: list[SubmittedTransaction] = []
                failures: list[Exception] = []
                for index, sequence in enumerate(reservation.sequences[: event.token_count]):
                    try:
                        submitted.append(
                            await connection.submit(
                                self._mint_transaction(connection, event, uri, sequence)
                            )
                        )
                    except LedgerError as e:
                        failures.append(e)
                        break
                    logger.debug(
                        "mint.submitted",
                        event_id=event_id,
                        token=index + 1,
                        token_count=event.token_count,
                        ticket_sequence=sequence,
                    )

                fees, collect_failures = await self._collect(connection, submitted)
                fees += reservation.tx_fee
                failures.extend(collect_failures)

                if failures or len(submitted) < event.token_count:
                    await self._cancel_failed_mint(event_id, fees)
                    logger.error(
                        "mint.failed",
                        event_id=event_id,
                        submitted=len(submitted),
                        failed=len(failures),
                        fees=fees,
                        error=str(failures[0]) if failures else None,
                    )
                    raise AttendifyError("Minting failed, the event was canceled")

                async with await self.uow_factory() as uow:
                    event = await uow.events.get_for_update(event_id)
                    accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
                    nfts = await reconcile_event_tokens(uow, connection, event_id)
                    accounting.add_tx_fee(fees)
                    event.mark_active(uri)
                    uow.session.add_all([event, accounting])

        logger.info("mint.completed", event_id=event_id, nfts=len(nfts), fees=fees, uri=uri)

    async def cancel_event(self, event_id: int) -> None:
        """Cancel an event that was not minted yet.

        Raises:
            AttendifyError: If the event is active (close it instead) or already ended
        """
        network_id = (await self._get_event(event_id)).network_id
        async with self._network_lock(network_id):
            async with await self.uow_factory() as uow:
                event = await uow.events.get_for_update(event_id)
                if event.status == EventStatus.ACTIVE:
                    raise AttendifyError("Active events must be closed instead of canceled")
                try:
                    event.mark_canceled()
                except InvalidStateTransition as e:
                    raise AttendifyError("Event can no longer be canceled") from e
                uow.session.add(event)
        logger.info("event.canceled", event_id=event_id)

    async def _burn_unclaimed(self, connection: LedgerConnection, event: Event) -> tuple[int, set[str]]:
        """Burn every event token still held by the vault.

        Returns:
            Tuple of (fees spent, ids of the tokens that were still held)
        """
        held = await connection.get_account_nfts(connection.address, taxon=event.id)
        held_ids = {t["NFTokenID"] for t in held}
        if not held_ids:
            return 0, held_ids

        try:
            reservation = await prepare_tickets(
                connection, len(held_ids), max_tickets=self.max_tickets
            )
        except AttendifyError as e:
            logger.warning("close.burn_skipped", event_id=event.id, reason=e.reason)
            return 0, held_ids

        submitted = []
        for token_id, sequence in zip(sorted(held_ids), reservation.sequences):
            try:
                submitted.append(
                    await connection.submit(
                        NFTokenBurn(
                            account=connection.address,
                            nftoken_id=token_id,
                            sequence=0,
                            ticket_sequence=sequence,
                        )
                    )
                )
            except (TransactionRejectedError, LedgerRequestError) as e:
                logger.warning("close.burn_rejected", event_id=event.id, token_id=token_id, error=str(e))

        fees, failures = await self._collect(connection, submitted)
        for failure in failures:
            logger.warning("close.burn_failed", event_id=event.id, error=str(failure))
        return fees + reservation.tx_fee, held_ids

    async def close_event(self, event_id: int) -> None:
        """End an active event.

        Tokens nobody accepted are burned to release their reserve; claims
        whose token left the vault are recorded as claimed.

        Raises:
            AttendifyError: If the event is not active
        """
        event = await self._get_event(event_id)
        if event.status != EventStatus.ACTIVE:
            raise AttendifyError("Event is not active")

        async with self._network_lock(event.network_id):
            async with self.gateway.connect(event.network_id) as connection:
                fees, held_ids = await self._burn_unclaimed(connection, event)

            try:
                async with await self.uow_factory() as uow:
                    event = await uow.events.get_for_update(event_id)
                    accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
                    event.mark_closed()
                    accounting.add_tx_fee(fees)
                    for claim in await uow.claims.list_by_event(event_id, for_update=True):
                        if not claim.claimed and claim.token_id not in held_ids:
                            claim.claimed = True
                            uow.session.add(claim)
                    uow.session.add_all([event, accounting])
            except InvalidStateTransition as e:
                raise AttendifyError("Event is not active") from e

        logger.info("event.closed", event_id=event_id, burned=len(held_ids), fees=fees)

    async def refund_deposit(self, event_id: int) -> str:
        """Return the unspent deposit of a closed event to its owner.

        Returns:
            Hash of the refund payment

        Raises:
            RefundAlreadyProcessedError: If the deposit was already refunded
            AttendifyError: If the event is not closed or nothing is left to refund
        """
        network_id = (await self._get_event(event_id)).network_id

        # Guards are read under the lock so overlapping refunds pay out once
        async with self._network_lock(network_id):
            async with await self.uow_factory() as uow:
                event = await uow.events.get_for_update(event_id)
                accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
            if accounting is None:
                raise AttendifyError("Invalid event ID")
            if accounting.refund_tx_hash:
                raise RefundAlreadyProcessedError("Refund already processed")
            if event.status != EventStatus.CLOSED:
                raise AttendifyError("Event is not closed")

            amount = refund_value(accounting)
            if amount <= 0:
                raise AttendifyError("Nothing left to refund")

            async with self.gateway.connect(network_id) as connection:
                finalized = await connection.submit_and_wait(
                    Payment(
                        account=connection.address,
                        destination=event.owner_wallet_address,
                        amount=str(amount),
                    )
                )

            async with await self.uow_factory() as uow:
                event = await uow.events.get_for_update(event_id)
                accounting = await uow.accountings.get_by_event_id(event_id, for_update=True)
                accounting.refund_value = str(amount)
                accounting.refund_tx_hash = finalized.hash
                event.mark_refunded()
                uow.session.add_all([event, accounting])

        logger.info("event.refunded", event_id=event_id, amount=amount, tx_hash=finalized.hash)
        return finalized.hash

    # Claims

    async def add_participant(
        self,
        event_id: int,
        wallet_address: str,
        create_offer: bool = False,
        enforce_join_policy: bool = True,
    ) -> Claim:
        return await self.claims.add_participant(
            event_id,
            wallet_address,
            create_offer=create_offer,
            enforce_join_policy=enforce_join_policy,
        )

    async def add_participants(
        self,
        event_id: int,
        owner_wallet_address: str,
        wallet_addresses: list[str],
        create_offer: bool = False,
    ) -> list[Claim]:
        return await self.claims.add_participants(
            event_id,
            owner_wallet_address,
            wallet_addresses,
            create_offer=create_offer,
            default_slots=self.default_slots,
        )

    async def get_claim(self, wallet_address: str, event_id: int) -> Claim:
        return await self.claims.get_claim(wallet_address, event_id)

    async def get_offers(
        self, wallet_address: str, network_id: int | None = None, limit: int = 100
    ) -> list[tuple[Claim, Event]]:
        return await self.claims.get_offers(wallet_address, network_id, limit)

    async def check_nft_ownership(self, wallet_address: str, event_id: int) -> bool:
        """Whether a wallet holds a token of the event."""
        return await self.claims.check_nft_ownership(wallet_address, await self._get_event(event_id))

    # Queries

    async def get_event(
        self, event_id: int, wallet_address: str | None = None, as_admin: bool = False
    ) -> EventDetails | None:
        """Fetch an event with its accounting, tokens and attendees.

        Managed events are only visible to their owner, their attendees and admins.
        """
        async with await self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            if event is None:
                return None
            attendees = await uow.participations.list_attendees(event_id)
            if event.is_managed and not as_admin and wallet_address != event.owner_wallet_address:
                if wallet_address not in {a.wallet_address for a in attendees}:
                    return None
            return EventDetails(
                event=event,
                accounting=await uow.accountings.get_by_event_id(event_id),
                nfts=await uow.nfts.list_by_event(event_id),
                attendees=attendees,
            )

    async def get_events_all(self, network_id: int | None = None, limit: int = 100) -> list[Event]:
        async with await self.uow_factory() as uow:
            return await uow.events.list_all(network_id, limit)

    async def get_events_public(self, network_id: int | None = None, limit: int = 100) -> list[Event]:
        async with await self.uow_factory() as uow:
            return await uow.events.list_public(network_id, limit)

    async def get_events_owned(
        self, wallet_address: str, network_id: int | None = None, limit: int = 100
    ) -> list[Event]:
        async with await self.uow_factory() as uow:
            return await uow.events.list_owned(wallet_address, network_id, limit)

    async def get_events_by_status(
        self, status: EventStatus, network_id: int | None = None, limit: int = 100
    ) -> list[Event]:
        async with await self.uow_factory() as uow:
            return await uow.events.list_by_status(status, network_id, limit)

    async def get_events_expired(self, network_id: int | None = None) -> list[Event]:
        """Active events whose end date has passed."""
        async with await self.uow_factory() as uow:
            return await uow.events.list_expired(self.clock(), network_id)

    async def get_stats(self, network_id: int | None = None) -> PlatformStats:
        async with await self.uow_factory() as uow:
            by_status = await uow.events.count_by_status(network_id)
            return PlatformStats(
                users=await uow.users.count(),
                organizers=await uow.users.count(organizers_only=True),
                events={status.name.lower(): count for status, count in by_status.items()},
                nfts=await uow.nfts.count(network_id),
                claims=await uow.claims.count(network_id),
                claimed=await uow.claims.count(network_id, claimed_only=True),
            )

    # Users

    async def get_user(
        self, wallet_address: str, include_events: bool = False, allow_creation: bool = False
    ) -> UserProfile | None:
        """Fetch a user, optionally creating it on first sight."""
        async with await self.uow_factory() as uow:
            if allow_creation:
                user, _ = await uow.users.get_or_create(wallet_address, slots=self.default_slots)
            else:
                user = await uow.users.get_by_wallet(wallet_address)
            if user is None:
                return None
            attended = await uow.events.list_attended(wallet_address) if include_events else []
            return UserProfile(user=user, attended_events=attended)

    async def update_user(
        self,
        wallet_address: str,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
    ) -> User:
        async with await self.uow_factory() as uow:
            user = await uow.users.get_by_wallet(wallet_address)
            if user is None:
                raise AttendifyError("Unable to find user")
            user.first_name = first_name
            user.last_name = last_name
            user.email = email
            uow.session.add(user)
            return user

    async def lookup_users(self, query: str, limit: int = 20) -> list[User]:
        async with await self.uow_factory() as uow:
            return await uow.users.lookup(query, limit)

    async def get_organizers(self) -> list[User]:
        async with await self.uow_factory() as uow:
            return await uow.users.list_organizers()
