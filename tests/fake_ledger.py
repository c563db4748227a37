"""In-process XRP Ledger double for tests.

FakeLedger keeps accounts, tickets, tokens, sell offers and transactions in
memory and answers xrpl-py request and transaction models. FakeLedgerConnection
plugs it under the real LedgerConnection, so submission polling, ticket
reservation, claims and the orchestrator run their production code paths.

Every applied transaction is validated immediately and charges TX_FEE drops.
"""

from typing import Any

from xrpl.models.requests import (
    AccountInfo,
    AccountNFTs,
    AccountObjects,
    NFTSellOffers,
    ServerInfo,
    Tx,
)
from xrpl.models.transactions import (
    NFTokenBurn,
    NFTokenCreateOffer,
    NFTokenMint,
    Payment,
    TicketCreate,
)

from attendify.models.event import NetworkIdentifier
from attendify.services.exceptions import LedgerRequestError, TransactionRejectedError
from attendify.services.ledger.gateway import (
    LedgerConnection,
    LedgerGateway,
    NetworkConfig,
    SubmittedTransaction,
)

RESERVE_BASE = 1_000_000
RESERVE_INC = 2_000_000
TX_FEE = 12
NFT_PAGE_SIZE = 32


class FakeClient:
    """Stands in for AsyncWebsocketClient; only tracks open/close."""

    def __init__(self, url: str, ledger: "FakeLedger"):
        self.url = url
        self.ledger = ledger
        self.is_open = False
        self.closed = False

    async def open(self) -> None:
        if self.ledger.unreachable:
            raise OSError(f"Connection refused: {self.url}")
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False
        self.closed = True


class FakeLedger:
    def __init__(self):
        self.accounts: dict[str, dict[str, Any]] = {}
        self.tickets: dict[str, list[int]] = {}
        self.nfts: dict[str, list[dict[str, Any]]] = {}
        self.offers: dict[str, list[dict[str, Any]]] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.ledger_index = 1000
        # Transaction class name -> result code every such transaction ends with
        self.failing: dict[str, str] = {}
        self.submitted: list[str] = []
        self.clients: list[FakeClient] = []
        self.sleeps: list[float] = []
        self.unreachable = False
        self._counter = 0

    # Test setup helpers

    def new_client(self, url: str) -> FakeClient:
        client = FakeClient(url, self)
        self.clients.append(client)
        return client

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def fund(self, address: str, drops: int) -> None:
        self.accounts[address] = {
            "Account": address,
            "Balance": drops,
            "OwnerCount": 0,
            "Sequence": 1,
        }

    def set_minter(self, address: str, minter: str) -> None:
        self.accounts[address]["NFTokenMinter"] = minter

    def balance(self, address: str) -> int:
        return self.accounts[address]["Balance"]

    def tokens_of(self, address: str, taxon: int | None = None) -> list[dict[str, Any]]:
        tokens = self.nfts.get(address, [])
        if taxon is not None:
            tokens = [t for t in tokens if t["NFTokenTaxon"] == taxon]
        return tokens

    def add_payment(
        self,
        source: str,
        destination: str,
        amount: int,
        result: str = "tesSUCCESS",
        validated: bool = True,
        transaction_type: str = "Payment",
    ) -> str:
        """Record a payment made outside the service, e.g. an organizer's deposit."""
        if validated and result == "tesSUCCESS" and transaction_type == "Payment":
            self._credit(destination, amount)
            if source in self.accounts:
                self.accounts[source]["Balance"] -= amount + TX_FEE
        return self._record(
            {
                "TransactionType": transaction_type,
                "Account": source,
                "Destination": destination,
                "Amount": str(amount),
                "Fee": str(TX_FEE),
            },
            result,
            delivered_amount=str(amount),
            validated=validated,
        )

    def accept_offer(self, offer_index: str, acceptor: str) -> None:
        """Accept a sell offer: the token moves to the acceptor, its offers vanish."""
        for nft_id, offers in self.offers.items():
            for offer in offers:
                if offer["nft_offer_index"] != offer_index:
                    continue
                seller = offer["owner"]
                token = next(t for t in self.nfts[seller] if t["NFTokenID"] == nft_id)
                self.nfts[seller].remove(token)
                self.nfts.setdefault(acceptor, []).append(token)
                self._drop_offers(nft_id)
                return
        raise KeyError(offer_index)

    # Request handling

    def handle_request(self, request: Any) -> dict[str, Any]:
        if isinstance(request, ServerInfo):
            return {
                "info": {
                    "validated_ledger": {
                        "seq": self.ledger_index,
                        "reserve_base_xrp": RESERVE_BASE / 1_000_000,
                        "reserve_inc_xrp": RESERVE_INC / 1_000_000,
                    }
                }
            }
        if isinstance(request, AccountInfo):
            account = self._account(request.account)
            return {
                "account_data": {
                    **account,
                    "Balance": str(account["Balance"]),
                },
                "validated": True,
            }
        if isinstance(request, AccountNFTs):
            self._account(request.account)
            return self._page(
                "account_nfts", self.nfts.get(request.account, []), request.marker, NFT_PAGE_SIZE
            )
        if isinstance(request, AccountObjects):
            self._account(request.account)
            objects = [
                {"LedgerEntryType": "Ticket", "TicketSequence": seq, "Account": request.account}
                for seq in self.tickets.get(request.account, [])
            ]
            return self._page("account_objects", objects, request.marker, request.limit or 200)
        if isinstance(request, NFTSellOffers):
            offers = self.offers.get(request.nft_id)
            if not offers:
                raise LedgerRequestError("objectNotFound", 92, "The requested object was not found.")
            return {"nft_id": request.nft_id, "offers": [dict(o) for o in offers]}
        if isinstance(request, Tx):
            tx = self.transactions.get(request.transaction)
            if tx is None:
                raise LedgerRequestError("txnNotFound", 29, "Transaction not found.")
            return dict(tx)
        raise NotImplementedError(type(request).__name__)

    # Transaction handling

    def apply(self, tx: Any, address: str) -> SubmittedTransaction:
        name = type(tx).__name__
        account = self._account(address)

        if tx.ticket_sequence:
            tickets = self.tickets.get(address, [])
            if tx.ticket_sequence not in tickets:
                raise TransactionRejectedError("tefNO_TICKET", "Ticket is not in ledger.")
            tickets.remove(tx.ticket_sequence)
            account["OwnerCount"] -= 1
            sequence = 0
        else:
            sequence = account["Sequence"]
            account["Sequence"] += 1

        self.submitted.append(name)
        account["Balance"] -= TX_FEE
        result = self.failing.get(name, "tesSUCCESS")
        affected_nodes: list[dict[str, Any]] = []
        tx_json: dict[str, Any] = {
            "TransactionType": name,
            "Account": address,
            "Fee": str(TX_FEE),
            "Sequence": sequence,
        }

        if result == "tesSUCCESS":
            if isinstance(tx, TicketCreate):
                created = [sequence + i for i in range(1, tx.ticket_count + 1)]
                account["Sequence"] += tx.ticket_count
                account["OwnerCount"] += tx.ticket_count
                self.tickets.setdefault(address, []).extend(created)
                affected_nodes = [
                    {"CreatedNode": {"LedgerEntryType": "Ticket", "NewFields": {"TicketSequence": s}}}
                    for s in created
                ]
            elif isinstance(tx, NFTokenMint):
                result = self._mint(tx, address)
            elif isinstance(tx, NFTokenBurn):
                result = self._burn(tx, address)
            elif isinstance(tx, NFTokenCreateOffer):
                result = self._create_offer(tx, address)
            elif isinstance(tx, Payment):
                amount = int(tx.amount)
                account["Balance"] -= amount
                self._credit(tx.destination, amount)
                tx_json.update({"Destination": tx.destination, "Amount": tx.amount})

        tx_hash = self._record(tx_json, result, affected_nodes=affected_nodes)
        return SubmittedTransaction(
            hash=tx_hash,
            last_ledger_sequence=self.ledger_index + 20,
            fee=TX_FEE,
            engine_result=result,
        )

    def _mint(self, tx: NFTokenMint, address: str) -> str:
        issuer = tx.issuer or address
        if tx.issuer and self.accounts.get(tx.issuer, {}).get("NFTokenMinter") != address:
            return "tecNO_PERMISSION"
        self.nfts.setdefault(address, []).append(
            {
                "NFTokenID": self._next_id(),
                "Issuer": issuer,
                "NFTokenTaxon": tx.nftoken_taxon,
                "URI": tx.uri,
                "Flags": int(tx.flags) if isinstance(tx.flags, int) else 0,
                "nft_serial": self._counter,
            }
        )
        return "tesSUCCESS"

    def _burn(self, tx: NFTokenBurn, address: str) -> str:
        tokens = self.nfts.get(address, [])
        token = next((t for t in tokens if t["NFTokenID"] == tx.nftoken_id), None)
        if token is None:
            return "tecNO_ENTRY"
        tokens.remove(token)
        self._drop_offers(tx.nftoken_id)
        return "tesSUCCESS"

    def _create_offer(self, tx: NFTokenCreateOffer, address: str) -> str:
        if not any(t["NFTokenID"] == tx.nftoken_id for t in self.nfts.get(address, [])):
            return "tecNO_ENTRY"
        if tx.destination not in self.accounts:
            return "tecNO_DST"
        self.offers.setdefault(tx.nftoken_id, []).append(
            {
                "nft_offer_index": self._next_id(),
                "amount": tx.amount,
                "flags": 1,
                "owner": address,
                "destination": tx.destination,
            }
        )
        self.accounts[address]["OwnerCount"] += 1
        return "tesSUCCESS"

    # Internals

    def _account(self, address: str) -> dict[str, Any]:
        account = self.accounts.get(address)
        if account is None:
            raise LedgerRequestError("actNotFound", 19, "Account not found.")
        return account

    def _credit(self, address: str, amount: int) -> None:
        if address not in self.accounts:
            self.fund(address, 0)
        self.accounts[address]["Balance"] += amount

    def _drop_offers(self, nft_id: str) -> None:
        for offer in self.offers.pop(nft_id, []):
            if offer["owner"] in self.accounts:
                self.accounts[offer["owner"]]["OwnerCount"] -= 1

    def _next_id(self) -> str:
        self._counter += 1
        return f"{self._counter:064X}"

    def _record(
        self,
        tx_json: dict[str, Any],
        result: str,
        affected_nodes: list[dict[str, Any]] | None = None,
        delivered_amount: str | None = None,
        validated: bool = True,
    ) -> str:
        tx_hash = self._next_id()
        meta: dict[str, Any] = {
            "TransactionResult": result,
            "AffectedNodes": affected_nodes or [],
        }
        if delivered_amount is not None:
            meta["delivered_amount"] = delivered_amount
        self.transactions[tx_hash] = {
            "hash": tx_hash,
            "ledger_index": self.ledger_index,
            "validated": validated,
            "tx_json": tx_json,
            "meta": meta,
        }
        self.ledger_index += 1
        return tx_hash

    @staticmethod
    def _page(key: str, items: list[Any], marker: Any, size: int) -> dict[str, Any]:
        start = int(marker or 0)
        result: dict[str, Any] = {key: list(items[start : start + size])}
        if start + size < len(items):
            result["marker"] = str(start + size)
        return result


class FakeLedgerConnection(LedgerConnection):
    """Real LedgerConnection whose wire traffic is served by a FakeLedger."""

    def __init__(self, ledger: FakeLedger, client: Any, wallet: Any, network_id, **kwargs):
        super().__init__(client, wallet, network_id, **kwargs)
        self.ledger = ledger

    async def request(self, request: Any) -> dict[str, Any]:
        return self.ledger.handle_request(request)

    async def submit(self, transaction: Any) -> SubmittedTransaction:
        return self.ledger.apply(transaction, self.address)

    async def get_ledger_index(self) -> int:
        return self.ledger.ledger_index


class FakeLedgerGateway(LedgerGateway):
    """LedgerGateway whose connections talk to a FakeLedger."""

    def __init__(self, ledger: FakeLedger, networks: dict[NetworkIdentifier, NetworkConfig]):
        super().__init__(networks, client_factory=ledger.new_client, sleep=ledger.sleep)
        self.ledger = ledger

    def _open_connection(self, client, wallet, network_id):
        return FakeLedgerConnection(
            self.ledger,
            client,
            wallet,
            network_id,
            sleep=self.ledger.sleep,
            max_attempts=5,
        )
