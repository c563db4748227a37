"""Deposit accounting tests.

Covers deposit sizing against known fixtures, payment verification rules
and refund computation.
"""

import pytest

from attendify.models.accounting import Accounting
from attendify.models.event import NetworkIdentifier
from attendify.services.accounting import (
    DEPOSIT_FEE,
    FALLBACK_TX_FEE,
    calc_deposit_values,
    deposit_values_for,
    refund_value,
    verify_payment,
)

OWNER = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
VAULT = "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"


@pytest.mark.parametrize(
    "slots,expected_reserve",
    [
        (0, 0),
        (1, 4_000_000),
        (20, 44_000_000),
        (50, 108_000_000),
        (200, 426_000_000),
        (1000, 2_126_000_000),
    ],
)
def test_deposit_reserve_fixtures(slots, expected_reserve):
    values = deposit_values_for(slots, reserve_inc=2_000_000)
    assert values.reserve == expected_reserve
    assert values.fee == DEPOSIT_FEE == 1_000_000
    assert values.total == expected_reserve + 1_000_000


def test_deposit_rejects_negative_slots():
    with pytest.raises(ValueError):
        deposit_values_for(-1, reserve_inc=2_000_000)


@pytest.mark.asyncio
async def test_calc_deposit_values_uses_network_reserve(gateway):
    """The fake network reports a 2 XRP owner reserve increment."""
    async with gateway.connect(NetworkIdentifier.TESTNET) as connection:
        values = await calc_deposit_values(connection, 8)

    assert values.reserve == 18_000_000
    assert values.fee == 1_000_000


def make_accounting(**overrides) -> Accounting:
    values = {
        "event_id": 1,
        "deposit_address": VAULT,
        "deposit_reserve_value": "18000000",
        "deposit_fee_value": "1000000",
    }
    values.update(overrides)
    return Accounting(**values)


def payment_result(
    amount="19000000",
    account=OWNER,
    destination=VAULT,
    result="tesSUCCESS",
    transaction_type="Payment",
    api_v2=True,
):
    tx = {
        "TransactionType": transaction_type,
        "Account": account,
        "Destination": destination,
        "Amount": amount,
        "Fee": "12",
    }
    meta = {"TransactionResult": result, "delivered_amount": amount}
    if api_v2:
        return {"validated": True, "tx_json": tx, "meta": meta}
    return {"validated": True, **tx, "meta": meta}


@pytest.mark.parametrize("api_v2", [True, False])
def test_verify_payment_accepts_full_deposit(api_v2):
    check = verify_payment(payment_result(api_v2=api_v2), make_accounting(), OWNER)
    assert check.ok
    assert check.reason == ""


def test_verify_payment_accepts_overpayment():
    assert verify_payment(payment_result(amount="25000000"), make_accounting(), OWNER).ok


@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"transaction_type": "OfferCreate"}, "not a payment"),
        ({"result": "tecUNFUNDED_PAYMENT"}, "not successful"),
        ({"account": VAULT}, "event owner"),
        ({"destination": OWNER}, "deposit address"),
        ({"amount": "18999999"}, "Insufficient deposit"),
    ],
)
def test_verify_payment_rejections(overrides, reason):
    check = verify_payment(payment_result(**overrides), make_accounting(), OWNER)
    assert not check.ok
    assert reason in check.reason


def test_verify_payment_rejects_issued_currency():
    result = payment_result()
    issued = {"currency": "USD", "issuer": VAULT, "value": "19"}
    result["tx_json"]["Amount"] = issued
    result["meta"]["delivered_amount"] = issued

    check = verify_payment(result, make_accounting(), OWNER)
    assert not check.ok
    assert "XRP" in check.reason


def test_refund_value_without_spent_fees():
    assert refund_value(make_accounting()) == 19_000_000 - FALLBACK_TX_FEE


def test_refund_value_ignores_spent_fees():
    accounting = make_accounting()
    accounting.add_tx_fee(108)
    accounting.add_tx_fee(108)
    assert accounting.accumulated_tx_fees == "216"
    assert refund_value(accounting) == 19_000_000 - FALLBACK_TX_FEE


def test_refund_value_never_negative():
    accounting = make_accounting(deposit_reserve_value="0", deposit_fee_value="10")
    assert refund_value(accounting) == 0


def test_add_tx_fee_rejects_negative():
    with pytest.raises(ValueError):
        make_accounting().add_tx_fee(-1)
