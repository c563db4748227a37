"""Event entity - proof-of-attendance event with lifecycle status tracking."""

from datetime import datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Integer
from sqlmodel import Field, SQLModel


class NetworkIdentifier(IntEnum):
    """XRP Ledger network an event lives on. UNKNOWN matches any network in queries."""

    UNKNOWN = 0
    MAINNET = 1
    TESTNET = 2
    DEVNET = 3
    AMM_DEVNET = 4


class EventStatus(IntEnum):
    """Event lifecycle status, persisted as its numeric code.

    Minting is a transient phase between PAID and ACTIVE and is never stored.
    """

    DRAFT = 1
    PAID = 2
    ACTIVE = 3
    CANCELED = 4
    CLOSED = 5
    REFUNDED = 6


OPEN_STATUSES = (EventStatus.DRAFT, EventStatus.PAID, EventStatus.ACTIVE)


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid event state transition."""

    pass


class Event(SQLModel, table=True):
    """Event owns a fixed token supply minted under taxon == id."""

    __tablename__ = "events"  # type: ignore[assignment]
    __table_args__ = (CheckConstraint("date_end >= date_start", name="ck_events_date_order"),)

    # Assigned by the orchestrator before any ledger call, never autoincremented
    id: int = Field(sa_column=Column(Integer, primary_key=True, autoincrement=False))
    owner_wallet_address: str = Field(foreign_key="users.wallet_address", index=True)
    network_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    status: int = Field(
        default=EventStatus.DRAFT, sa_column=Column(Integer, nullable=False, index=True)
    )
    title: str = Field(max_length=255)
    description: str = Field(default="")
    location: str = Field(default="", max_length=255)
    image_url: str = Field(default="")
    uri: Optional[str] = Field(default=None)
    token_count: int = Field(ge=1)
    date_start: datetime
    date_end: datetime
    is_managed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def lifecycle_status(self) -> EventStatus:
        return EventStatus(self.status)

    @property
    def network(self) -> NetworkIdentifier:
        return NetworkIdentifier(self.network_id)

    def _require(self, target: EventStatus, *allowed: EventStatus) -> None:
        if self.status not in allowed:
            raise InvalidStateTransition(
                f"Cannot mark {target.name.lower()} from {self.lifecycle_status.name.lower()}."
            )

    def mark_paid(self) -> None:
        """Transition from draft to paid once the deposit is verified.

        Raises:
            InvalidStateTransition: If current status is not draft
        """
        self._require(EventStatus.PAID, EventStatus.DRAFT)
        self.status = EventStatus.PAID

    def mark_active(self, uri: str) -> None:
        """Transition from paid to active after every token was minted.

        Args:
            uri: Metadata URI shared by all minted tokens

        Raises:
            InvalidStateTransition: If current status is not paid
            ValueError: If uri is empty
        """
        self._require(EventStatus.ACTIVE, EventStatus.PAID)
        if not uri:
            raise ValueError("uri is required")
        self.uri = uri
        self.status = EventStatus.ACTIVE

    def mark_canceled(self) -> None:
        """Transition from draft or paid to canceled.

        Raises:
            InvalidStateTransition: If the event was already minted or ended
        """
        self._require(EventStatus.CANCELED, EventStatus.DRAFT, EventStatus.PAID)
        self.status = EventStatus.CANCELED

    def mark_closed(self) -> None:
        """Transition from active to closed.

        Raises:
            InvalidStateTransition: If current status is not active
        """
        self._require(EventStatus.CLOSED, EventStatus.ACTIVE)
        self.status = EventStatus.CLOSED

    def mark_refunded(self) -> None:
        """Transition from closed to refunded.

        Raises:
            InvalidStateTransition: If current status is not closed
        """
        self._require(EventStatus.REFUNDED, EventStatus.CLOSED)
        self.status = EventStatus.REFUNDED
