"""Participation entity - attendee membership of an event."""

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Participation(SQLModel, table=True):
    __tablename__ = "participations"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("event_id", "user_wallet_address"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="events.id", index=True)
    user_wallet_address: str = Field(foreign_key="users.wallet_address", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
