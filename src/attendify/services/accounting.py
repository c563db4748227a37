"""Deposit accounting for events.

An organizer prepays the owner reserve of everything the event puts on the
vault account (one sell offer per slot plus the NFToken pages holding the
tokens) and a flat fee margin for network fees. All amounts are integer drops.
"""

import math
from dataclasses import dataclass
from typing import Any

from attendify.models.accounting import Accounting
from attendify.services.ledger.gateway import LedgerConnection
from attendify.services.ledger.submission import SUCCESS_RESULT, tx_field

# Flat safety margin for cumulative transaction fees of one event
DEPOSIT_FEE = 1_000_000

# Kept back from refunds so the vault can always pay the refund's own fee
FALLBACK_TX_FEE = 12

# Worst case fill of an NFTokenPage (pages hold 16 to 32 tokens)
NFTOKEN_PAGE_SLOTS = 16


@dataclass(frozen=True)
class DepositValues:
    reserve: int
    fee: int

    @property
    def total(self) -> int:
        return self.reserve + self.fee


@dataclass(frozen=True)
class PaymentCheck:
    ok: bool
    reason: str = ""


def deposit_values_for(slots: int, reserve_inc: int) -> DepositValues:
    """Deposit required for `slots` tokens at a given owner reserve increment.

    Args:
        slots: Number of tokens the event mints
        reserve_inc: Owner reserve increment in drops

    Returns:
        Reserve and fee deposit in drops
    """
    if slots < 0:
        raise ValueError("slots cannot be negative")
    if slots == 0:
        return DepositValues(reserve=0, fee=DEPOSIT_FEE)

    owned_objects = slots + math.ceil(slots / NFTOKEN_PAGE_SLOTS)
    return DepositValues(reserve=reserve_inc * owned_objects, fee=DEPOSIT_FEE)


async def calc_deposit_values(connection: LedgerConnection, slots: int) -> DepositValues:
    """Deposit required for `slots` tokens at the network's current reserve rate."""
    _, reserve_inc = await connection.get_reserves()
    return deposit_values_for(slots, reserve_inc)


def delivered_drops(tx_result: dict[str, Any]) -> int | None:
    """XRP actually delivered by a payment, None for issued currencies."""
    meta = tx_result.get("meta") or {}
    delivered = meta.get("delivered_amount", tx_field(tx_result, "DeliverAmount"))
    if delivered is None:
        delivered = tx_field(tx_result, "Amount")
    if isinstance(delivered, str) and delivered.isdigit():
        return int(delivered)
    return None


def verify_payment(tx_result: dict[str, Any], accounting: Accounting, owner: str) -> PaymentCheck:
    """Check a validated transaction pays the full deposit of an event.

    Args:
        tx_result: tx response result of the payment
        accounting: Accounting record of the event
        owner: Wallet address expected to have paid

    Returns:
        PaymentCheck with a reason when the payment does not qualify
    """
    if tx_field(tx_result, "TransactionType") != "Payment":
        return PaymentCheck(False, "Transaction is not a payment")

    meta = tx_result.get("meta") or {}
    if meta.get("TransactionResult") != SUCCESS_RESULT:
        return PaymentCheck(False, "Payment was not successful")

    if tx_field(tx_result, "Account") != owner:
        return PaymentCheck(False, "Payment was not sent by the event owner")

    if tx_field(tx_result, "Destination") != accounting.deposit_address:
        return PaymentCheck(False, "Payment was not sent to the deposit address")

    amount = delivered_drops(tx_result)
    if amount is None:
        return PaymentCheck(False, "Payment must be made in XRP")

    required = accounting.reserve_drops + accounting.fee_drops
    if amount < required:
        return PaymentCheck(False, f"Insufficient deposit, expected {required} drops")

    return PaymentCheck(True)


def refund_value(accounting: Accounting) -> int:
    """Amount returned to the organizer once the event is closed.

    The whole deposit less the fee reserved for the refund transaction, so the
    vault can always afford to send it. Fees spent on the event are covered
    by the flat deposit fee and are not deducted again. Never negative.
    """
    return max(accounting.reserve_drops + accounting.fee_drops - FALLBACK_TX_FEE, 0)
