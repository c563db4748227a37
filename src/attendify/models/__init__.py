"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
before the schema is created.
"""

from attendify.models.accounting import Accounting
from attendify.models.claim import Claim
from attendify.models.event import (
    OPEN_STATUSES,
    Event,
    EventStatus,
    InvalidStateTransition,
    NetworkIdentifier,
)
from attendify.models.nft import NFT
from attendify.models.participation import Participation
from attendify.models.user import User

__all__ = [
    "Accounting",
    "Claim",
    "Event",
    "EventStatus",
    "InvalidStateTransition",
    "NetworkIdentifier",
    "NFT",
    "OPEN_STATUSES",
    "Participation",
    "User",
]
