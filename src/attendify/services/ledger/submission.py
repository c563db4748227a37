"""Reliable transaction submission for the XRP Ledger.

A submitted transaction is final once it appears in a validated ledger, or
once the latest validated ledger index has passed its LastLedgerSequence
(after which it can never be included). Until then "txnNotFound" is the
expected answer and simply means another poll cycle.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

import structlog
from xrpl.models.requests import Tx

from attendify.services.exceptions import (
    LedgerRequestError,
    SubmissionTimeoutError,
    TransactionExpiredError,
    TransactionFailedError,
)

logger = structlog.get_logger()

# Approximate time for a ledger to close, in seconds
LEDGER_CLOSE_TIME = 1.0

SUCCESS_RESULT = "tesSUCCESS"

Sleep = Callable[[float], Awaitable[Any]]


class LedgerRequester(Protocol):
    """Minimal ledger surface needed to poll for finality."""

    async def request(self, request: Any) -> dict[str, Any]: ...

    async def get_ledger_index(self) -> int: ...


@dataclass(frozen=True)
class FinalizedTransaction:
    """Validated transaction with its result code and charged fee."""

    hash: str
    result_code: str
    fee: int
    result: dict[str, Any]

    @property
    def meta(self) -> dict[str, Any]:
        return self.result.get("meta") or {}


def tx_field(result: dict[str, Any], name: str, default: Any = None) -> Any:
    """Read a transaction field from a tx response in either API version.

    API v2 nests the transaction under "tx_json", v1 inlines it.
    """
    tx_json = result.get("tx_json")
    if isinstance(tx_json, dict) and name in tx_json:
        return tx_json[name]
    return result.get(name, default)


def finalize(tx_hash: str, result: dict[str, Any]) -> FinalizedTransaction:
    """Turn a validated tx response into a FinalizedTransaction.

    Raises:
        TransactionFailedError: If the transaction was included with a non-success result
    """
    meta = result.get("meta") or {}
    result_code = meta.get("TransactionResult", "unknown") if isinstance(meta, dict) else "unknown"
    fee = int(tx_field(result, "Fee", 0) or 0)

    if result_code != SUCCESS_RESULT:
        raise TransactionFailedError(tx_hash, result_code, fee)

    return FinalizedTransaction(hash=tx_hash, result_code=result_code, fee=fee, result=result)


async def wait_for_final_outcome(
    connection: LedgerRequester,
    tx_hash: str,
    last_ledger_sequence: int,
    *,
    sleep: Sleep = asyncio.sleep,
    poll_interval: float = LEDGER_CLOSE_TIME,
    max_attempts: int | None = None,
) -> dict[str, Any]:
    """Poll the ledger until a submitted transaction is final.

    Args:
        connection: Open ledger connection
        tx_hash: Hash of the submitted transaction
        last_ledger_sequence: Expiry ledger index of the transaction
        sleep: Awaitable sleep function (injected in tests)
        poll_interval: Seconds between polls, about one ledger close
        max_attempts: Stop after this many polls; None polls until expiry

    Returns:
        Validated tx response result

    Raises:
        TransactionExpiredError: If the expiry ledger passed without validation
        SubmissionTimeoutError: If max_attempts polls were made without an outcome
        LedgerRequestError: For any request error other than txnNotFound
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            result = await connection.request(Tx(transaction=tx_hash))
            if result.get("validated"):
                logger.debug("submission.validated", tx_hash=tx_hash, attempts=attempts)
                return result
        except LedgerRequestError as e:
            if e.error != "txnNotFound":
                raise
            logger.debug("submission.txn_not_found", tx_hash=tx_hash, attempts=attempts)

        await sleep(poll_interval)

        latest_ledger = await connection.get_ledger_index()
        if latest_ledger > last_ledger_sequence:
            raise TransactionExpiredError(
                f"The latest ledger sequence {latest_ledger} is greater than the "
                f"transaction's LastLedgerSequence ({last_ledger_sequence})."
            )

        if max_attempts is not None and attempts >= max_attempts:
            raise SubmissionTimeoutError(
                f"Transaction {tx_hash} not final after {attempts} attempts"
            )
