"""Ticket reservation tests against the fake ledger."""

import pytest

from attendify.models.event import NetworkIdentifier
from attendify.services.exceptions import InsufficientReserveError, TooManyTicketsError
from attendify.services.ledger.tickets import (
    extract_ticket_sequences,
    list_tickets,
    prepare_tickets,
)
from fake_ledger import TX_FEE


@pytest.mark.asyncio
async def test_prepare_tickets_creates_missing_tickets(gateway, ledger, vault_wallet):
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        reservation = await prepare_tickets(connection, 5)

    assert len(reservation.sequences) == 5
    assert reservation.tx_fee == TX_FEE
    assert ledger.tickets[vault_wallet.classic_address] == reservation.sequences
    assert ledger.submitted == ["TicketCreate"]


@pytest.mark.asyncio
async def test_prepare_tickets_is_idempotent(gateway, ledger):
    """A second call with enough tickets submits nothing and returns the same tickets."""
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        first = await prepare_tickets(connection, 5)
        second = await prepare_tickets(connection, 5)
        third = await prepare_tickets(connection, 3)

    assert second.sequences == first.sequences
    assert second.tx_fee == 0
    assert third.sequences == first.sequences[:3]
    assert ledger.submitted == ["TicketCreate"]


@pytest.mark.asyncio
async def test_prepare_tickets_tops_up_existing(gateway, ledger):
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        first = await prepare_tickets(connection, 2)
        topped_up = await prepare_tickets(connection, 6)

    assert topped_up.sequences[:2] == first.sequences
    assert len(topped_up.sequences) == 6
    assert len(set(topped_up.sequences)) == 6
    assert ledger.submitted == ["TicketCreate", "TicketCreate"]


@pytest.mark.asyncio
async def test_prepare_tickets_rejects_more_than_cap(gateway, ledger):
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        with pytest.raises(TooManyTicketsError):
            await prepare_tickets(connection, 251)
        with pytest.raises(TooManyTicketsError):
            await prepare_tickets(connection, 11, max_tickets=10)

    assert ledger.submitted == []


@pytest.mark.asyncio
async def test_prepare_tickets_fills_up_to_cap(gateway, ledger, vault_wallet):
    vault = vault_wallet.classic_address
    ledger.tickets[vault] = list(range(10, 259))
    ledger.accounts[vault]["OwnerCount"] = 249

    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        reservation = await prepare_tickets(connection, 250)

    # Only the one missing ticket is created
    assert reservation.sequences[:249] == list(range(10, 259))
    assert len(set(reservation.sequences)) == 250
    assert ledger.submitted == ["TicketCreate"]
    assert len(ledger.tickets[vault]) == 250


@pytest.mark.asyncio
async def test_prepare_tickets_checks_owner_reserve(gateway, ledger, vault_wallet):
    # Base reserve plus room for two tickets only
    ledger.accounts[vault_wallet.classic_address]["Balance"] = 1_000_000 + 2 * 2_000_000

    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        with pytest.raises(InsufficientReserveError):
            await prepare_tickets(connection, 3)
        reservation = await prepare_tickets(connection, 2)

    assert len(reservation.sequences) == 2


@pytest.mark.asyncio
async def test_prepare_tickets_zero_target(gateway, ledger):
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        reservation = await prepare_tickets(connection, 0)

    assert reservation.sequences == []
    assert ledger.submitted == []


@pytest.mark.asyncio
async def test_list_tickets_follows_markers(gateway, ledger, vault_wallet):
    ledger.tickets[vault_wallet.classic_address] = list(range(10, 260))

    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        sequences = await list_tickets(connection)

    assert sequences == list(range(10, 260))


def test_extract_ticket_sequences_keeps_ledger_order():
    meta = {
        "AffectedNodes": [
            {"ModifiedNode": {"LedgerEntryType": "AccountRoot"}},
            {"CreatedNode": {"LedgerEntryType": "Ticket", "NewFields": {"TicketSequence": 7}}},
            {"CreatedNode": {"LedgerEntryType": "DirectoryNode", "NewFields": {}}},
            {"CreatedNode": {"LedgerEntryType": "Ticket", "NewFields": {"TicketSequence": 5}}},
        ]
    }
    assert extract_ticket_sequences(meta) == [7, 5]
