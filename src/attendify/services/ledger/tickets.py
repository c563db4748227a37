"""Ticket reservation for sequence-independent batch submission.

Tickets let the vault submit many transactions (mints, burns) without strict
Sequence ordering. Each live ticket is an owned ledger object and costs one
owner reserve increment, and an account can hold at most 250 of them.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from xrpl.models.requests import AccountObjects, AccountObjectType
from xrpl.models.transactions import TicketCreate

from attendify.services.exceptions import InsufficientReserveError, TooManyTicketsError
from attendify.services.ledger.gateway import LedgerConnection

logger = structlog.get_logger()

MAX_TICKETS = 250
TICKET_PAGE_LIMIT = 200


@dataclass(frozen=True)
class TicketReservation:
    """Ticket sequences ready for use and the fee spent to create new ones."""

    sequences: list[int] = field(default_factory=list)
    tx_fee: int = 0


async def list_tickets(connection: LedgerConnection) -> list[int]:
    """Sequences of all live tickets held by the vault, in ledger order."""
    sequences: list[int] = []
    marker = None
    while True:
        result = await connection.request(
            AccountObjects(
                account=connection.address,
                type=AccountObjectType.TICKET,
                limit=TICKET_PAGE_LIMIT,
                marker=marker,
            )
        )
        sequences.extend(obj["TicketSequence"] for obj in result.get("account_objects", []))
        marker = result.get("marker")
        if marker is None:
            return sequences


def extract_ticket_sequences(meta: dict[str, Any]) -> list[int]:
    """Ticket sequences created by a transaction, in affected-node order."""
    sequences = []
    for node in meta.get("AffectedNodes", []):
        created = node.get("CreatedNode")
        if created and created.get("LedgerEntryType") == "Ticket":
            sequences.append(created["NewFields"]["TicketSequence"])
    return sequences


async def prepare_tickets(
    connection: LedgerConnection, target: int, *, max_tickets: int = MAX_TICKETS
) -> TicketReservation:
    """Make sure the vault holds at least `target` tickets.

    Existing tickets are reused first, so repeated calls with no ledger
    activity in between return the same sequences without submitting anything.

    Args:
        connection: Open connection bound to the vault wallet
        target: Number of tickets needed
        max_tickets: Per-account ticket cap

    Returns:
        Reservation with `target` sequences, existing ones first

    Raises:
        TooManyTicketsError: If target exceeds the cap
        InsufficientReserveError: If the vault cannot afford the owner reserve
    """
    if target > max_tickets:
        raise TooManyTicketsError(f"An account can at most have {max_tickets} tickets")
    if target <= 0:
        return TicketReservation()

    existing = await list_tickets(connection)
    logger.debug("tickets.found", count=len(existing), target=target)

    shortfall = target - len(existing)
    if shortfall <= 0:
        return TicketReservation(sequences=existing[:target])

    account_data = await connection.get_account_info(connection.address)
    if account_data is None:
        raise InsufficientReserveError("Vault account is not funded")

    reserve_base, reserve_inc = await connection.get_reserves()
    balance = int(account_data["Balance"])
    owner_count = int(account_data.get("OwnerCount", 0))
    spendable = balance - (reserve_base + owner_count * reserve_inc)
    if shortfall * reserve_inc > spendable:
        raise InsufficientReserveError("Insufficient balance to cover owner reserves")

    logger.info("tickets.creating", count=shortfall, network=connection.network_id.name)
    finalized = await connection.submit_and_wait(
        TicketCreate(account=connection.address, ticket_count=shortfall)
    )
    created = extract_ticket_sequences(finalized.meta)
    logger.info("tickets.created", count=len(created), tx_hash=finalized.hash, fee=finalized.fee)

    return TicketReservation(sequences=existing + created, tx_fee=finalized.fee)
