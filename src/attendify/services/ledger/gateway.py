"""XRP Ledger gateway.

One websocket endpoint and one custodial vault wallet per network. The gateway
keeps no connection between calls: every unit of ledger work opens its own
connection through connect() and closes it on exit, even on error.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, AsyncIterator, Callable

import structlog
from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.asyncio.ledger import get_latest_validated_ledger_sequence
from xrpl.asyncio.transaction import autofill_and_sign
from xrpl.asyncio.transaction import submit as submit_signed
from xrpl.constants import XRPLException
from xrpl.models.requests import AccountInfo, AccountNFTs, NFTSellOffers, ServerInfo
from xrpl.models.transactions.transaction import Transaction
from xrpl.utils import xrp_to_drops
from xrpl.wallet import Wallet

from attendify.models.event import NetworkIdentifier
from attendify.services.exceptions import (
    LedgerConnectionError,
    LedgerRequestError,
    TransactionRejectedError,
    UnsupportedNetworkError,
)
from attendify.services.ledger.submission import (
    LEDGER_CLOSE_TIME,
    FinalizedTransaction,
    Sleep,
    finalize,
    wait_for_final_outcome,
)

logger = structlog.get_logger()

# Used when the server does not report a validated ledger yet
DEFAULT_RESERVE_BASE = 1_000_000
DEFAULT_RESERVE_INC = 2_000_000

# Preliminary results that guarantee the transaction is never included
REJECTED_PREFIXES = ("tem", "tef", "tel")


@dataclass(frozen=True)
class NetworkConfig:
    """Endpoint and vault credential of one ledger network."""

    network_id: NetworkIdentifier
    url: str
    vault_seed: str


@dataclass(frozen=True)
class SubmittedTransaction:
    """Signed transaction accepted by the server, not final yet."""

    hash: str
    last_ledger_sequence: int
    fee: int
    engine_result: str


class LedgerConnection:
    """Open connection to one network, bound to that network's vault wallet."""

    def __init__(
        self,
        client: Any,
        wallet: Wallet,
        network_id: NetworkIdentifier,
        *,
        sleep: Sleep = asyncio.sleep,
        poll_interval: float = LEDGER_CLOSE_TIME,
        max_attempts: int | None = None,
    ):
        self.client = client
        self.wallet = wallet
        self.network_id = network_id
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts

    @property
    def address(self) -> str:
        """Classic address of the vault wallet."""
        return self.wallet.classic_address

    async def request(self, request: Any) -> dict[str, Any]:
        """Send a request model and return its result.

        Raises:
            LedgerRequestError: If the server answered with an error
        """
        response = await self.client.request(request)
        if not response.is_successful():
            result = response.result or {}
            raise LedgerRequestError(
                result.get("error", "unknown"),
                result.get("error_code"),
                result.get("error_message") or result.get("error_exception"),
            )
        return response.result

    async def submit(self, transaction: Transaction) -> SubmittedTransaction:
        """Autofill, sign with the vault wallet and submit without waiting.

        Raises:
            TransactionRejectedError: If the preliminary result rules out inclusion
            LedgerRequestError: If autofill or submission failed
        """
        try:
            signed = await autofill_and_sign(transaction, self.client, self.wallet)
            response = await submit_signed(signed, self.client)
        except XRPLException as e:
            raise LedgerRequestError("submitFailed", message=str(e)) from e

        if not response.is_successful():
            result = response.result or {}
            raise LedgerRequestError(
                result.get("error", "unknown"),
                result.get("error_code"),
                result.get("error_message"),
            )

        engine_result = response.result.get("engine_result", "")
        tx_hash = signed.get_hash()
        logger.debug(
            "ledger.submitted",
            tx_hash=tx_hash,
            transaction_type=str(transaction.transaction_type),
            engine_result=engine_result,
        )
        if engine_result.startswith(REJECTED_PREFIXES):
            raise TransactionRejectedError(
                engine_result, response.result.get("engine_result_message", "")
            )

        return SubmittedTransaction(
            hash=tx_hash,
            last_ledger_sequence=signed.last_ledger_sequence or 0,
            fee=int(signed.fee or 0),
            engine_result=engine_result,
        )

    async def wait_for(self, submitted: SubmittedTransaction) -> FinalizedTransaction:
        """Wait for a submitted transaction to become final.

        Raises:
            TransactionFailedError: If it was included with a non-success result
            TransactionExpiredError: If it expired without being validated
        """
        result = await wait_for_final_outcome(
            self,
            submitted.hash,
            submitted.last_ledger_sequence,
            sleep=self._sleep,
            poll_interval=self._poll_interval,
            max_attempts=self._max_attempts,
        )
        return finalize(submitted.hash, result)

    async def submit_and_wait(self, transaction: Transaction) -> FinalizedTransaction:
        """Submit a transaction and wait for its final outcome."""
        return await self.wait_for(await self.submit(transaction))

    async def get_ledger_index(self) -> int:
        """Latest validated ledger index."""
        return await get_latest_validated_ledger_sequence(self.client)

    async def get_reserves(self) -> tuple[int, int]:
        """Account base reserve and owner reserve increment, in drops."""
        result = await self.request(ServerInfo())
        validated = result.get("info", {}).get("validated_ledger")
        if not validated:
            return DEFAULT_RESERVE_BASE, DEFAULT_RESERVE_INC
        return (
            int(xrp_to_drops(Decimal(str(validated["reserve_base_xrp"])))),
            int(xrp_to_drops(Decimal(str(validated["reserve_inc_xrp"])))),
        )

    async def get_account_info(self, address: str) -> dict[str, Any] | None:
        """Validated account root of an address, None if the account does not exist."""
        try:
            result = await self.request(AccountInfo(account=address, ledger_index="validated"))
        except LedgerRequestError as e:
            if e.error == "actNotFound":
                return None
            raise
        return result["account_data"]

    async def account_exists(self, address: str) -> bool:
        return await self.get_account_info(address) is not None

    async def get_balance(self, address: str) -> int:
        """XRP balance of an existing account, in drops."""
        account_data = await self.get_account_info(address)
        if account_data is None:
            raise LedgerRequestError("actNotFound", message=f"Account {address} not found")
        return int(account_data["Balance"])

    async def get_account_nfts(self, address: str, taxon: int | None = None) -> list[dict[str, Any]]:
        """All tokens held by an account, following pagination markers.

        Args:
            address: Holder account
            taxon: Only return tokens minted under this taxon
        """
        tokens: list[dict[str, Any]] = []
        marker = None
        while True:
            result = await self.request(AccountNFTs(account=address, marker=marker))
            tokens.extend(result.get("account_nfts", []))
            marker = result.get("marker")
            if marker is None:
                break
        if taxon is not None:
            tokens = [t for t in tokens if t.get("NFTokenTaxon") == taxon]
        return tokens

    async def get_sell_offers(self, nft_id: str) -> list[dict[str, Any]]:
        """Open sell offers for a token; a token without offers yields []."""
        try:
            result = await self.request(NFTSellOffers(nft_id=nft_id))
        except LedgerRequestError as e:
            if e.error == "objectNotFound":
                return []
            raise
        return result.get("offers", [])


class LedgerGateway:
    """Per-network access to the ledger with scoped connections."""

    def __init__(
        self,
        networks: dict[NetworkIdentifier, NetworkConfig],
        *,
        client_factory: Callable[[str], Any] = AsyncWebsocketClient,
        sleep: Sleep = asyncio.sleep,
        poll_interval: float = LEDGER_CLOSE_TIME,
        max_attempts: int | None = None,
    ):
        self.networks = networks
        self._client_factory = client_factory
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts

    def get_network_config(self, network_id: NetworkIdentifier | int) -> NetworkConfig:
        """Configuration of a network.

        Raises:
            UnsupportedNetworkError: If the network is unknown or not configured
        """
        try:
            config = self.networks.get(NetworkIdentifier(network_id))
        except ValueError:
            config = None
        if config is None:
            raise UnsupportedNetworkError("Network not supported")
        return config

    def get_vault_wallet(self, network_id: NetworkIdentifier | int) -> Wallet:
        """Vault wallet of a network.

        Raises:
            UnsupportedNetworkError: If the network is not configured or its seed is invalid
        """
        config = self.get_network_config(network_id)
        try:
            return Wallet.from_seed(config.vault_seed)
        except (XRPLException, ValueError) as e:
            raise UnsupportedNetworkError("Invalid vault wallet for network") from e

    def get_vault_address(self, network_id: NetworkIdentifier | int) -> str:
        return self.get_vault_wallet(network_id).classic_address

    def _open_connection(self, client: Any, wallet: Wallet, network_id: NetworkIdentifier):
        return LedgerConnection(
            client,
            wallet,
            network_id,
            sleep=self._sleep,
            poll_interval=self._poll_interval,
            max_attempts=self._max_attempts,
        )

    @asynccontextmanager
    async def connect(self, network_id: NetworkIdentifier | int) -> AsyncIterator[LedgerConnection]:
        """Open a connection to a network for the duration of the block.

        Raises:
            UnsupportedNetworkError: If the network is not usable
            LedgerConnectionError: If the endpoint cannot be reached
        """
        wallet = self.get_vault_wallet(network_id)
        config = self.get_network_config(network_id)
        client = self._client_factory(config.url)
        try:
            await client.open()
        except (OSError, asyncio.TimeoutError, XRPLException) as e:
            raise LedgerConnectionError(f"Unable to connect to {config.url}: {e}") from e

        logger.debug("ledger.connected", network=config.network_id.name)
        try:
            yield self._open_connection(client, wallet, config.network_id)
        finally:
            await client.close()
            logger.debug("ledger.disconnected", network=config.network_id.name)
