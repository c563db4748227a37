"""Repository layer for data access."""

from attendify.repositories.accounting import AccountingRepository
from attendify.repositories.claim import ClaimRepository
from attendify.repositories.event import EventRepository
from attendify.repositories.nft import NFTRepository
from attendify.repositories.participation import ParticipationRepository
from attendify.repositories.user import UserRepository

__all__ = [
    "AccountingRepository",
    "ClaimRepository",
    "EventRepository",
    "NFTRepository",
    "ParticipationRepository",
    "UserRepository",
]
