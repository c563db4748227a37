"""NFT entity - local cache of a token minted on the ledger."""

from sqlmodel import Field, SQLModel


class NFT(SQLModel, table=True):
    """Minted token bound to an event through its taxon.

    The id is the ledger-assigned NFTokenID, never generated locally.
    """

    __tablename__ = "nfts"  # type: ignore[assignment]

    id: str = Field(primary_key=True, max_length=64)
    issuer_wallet_address: str = Field(max_length=64)
    event_id: int = Field(foreign_key="events.id", index=True)
