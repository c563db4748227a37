"""Claim entity - a user's right to one event token."""

from typing import Optional

from sqlmodel import Field, SQLModel


class Claim(SQLModel, table=True):
    """Claim ties a token to its attendee and tracks the sell offer.

    token_id is unique: at most one claim can ever back a token.
    """

    __tablename__ = "claims"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_wallet_address: str = Field(foreign_key="users.wallet_address", index=True)
    token_id: str = Field(foreign_key="nfts.id", unique=True)
    offer_index: Optional[str] = Field(default=None, max_length=64)
    claimed: bool = Field(default=False)
