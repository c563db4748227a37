"""User entity - wallet-identified platform account."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """User represents a wallet holder with role flags and an event slot quota."""

    __tablename__ = "users"  # type: ignore[assignment]

    wallet_address: str = Field(primary_key=True, max_length=64)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    is_organizer: bool = Field(default=False)
    is_admin: bool = Field(default=False)
    slots: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
