"""Event management API endpoints.

This module implements REST endpoints for the event lifecycle:
- Organizers create events, check their minter setup, invite attendees,
  cancel events before minting and close them afterwards
- Attendees join public events and fetch their claim (token + sell offer)
- Anyone identified can list public events and read event details

Domain errors surface as 400 responses through the AttendifyError handler
registered in the application factory.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from attendify.api.dependencies import (
    Caller,
    get_attendify,
    require_permission,
    validate_classic_address,
)
from attendify.models.claim import Claim
from attendify.models.event import Event, NetworkIdentifier
from attendify.services.attendify import Attendify, EventDetails, EventMetadata

logger = structlog.get_logger()
router = APIRouter(prefix="/api/events", tags=["events"])


# Request/Response Models


class CreateEventRequest(BaseModel):
    """Request model for creating an event."""

    network_id: NetworkIdentifier = Field(..., description="Ledger network to mint on")
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=4000)
    location: str = Field(default="", max_length=255)
    image_url: str = Field(default="", max_length=2048)
    token_count: int = Field(..., ge=1, le=250, description="Number of tokens (attendee slots)")
    date_start: datetime
    date_end: datetime
    is_managed: bool = Field(
        default=False, description="Managed events only accept attendees invited by the owner"
    )

    @field_validator("network_id")
    @classmethod
    def validate_network(cls, v: NetworkIdentifier) -> NetworkIdentifier:
        if v == NetworkIdentifier.UNKNOWN:
            raise ValueError("A concrete network is required")
        return v

    @field_validator("date_end")
    @classmethod
    def validate_date_order(cls, v: datetime, info) -> datetime:
        start = info.data.get("date_start")
        if start is not None and v < start:
            raise ValueError("date_end must not be before date_start")
        return v


class InviteRequest(BaseModel):
    """Request model for inviting attendees to an event."""

    wallet_addresses: list[str] = Field(..., min_length=1, max_length=250)
    create_offer: bool = Field(default=False, description="Create sell offers right away")

    @field_validator("wallet_addresses")
    @classmethod
    def validate_wallet_addresses(cls, v: list[str]) -> list[str]:
        addresses = [validate_classic_address(a) for a in v]
        if len(set(addresses)) != len(addresses):
            raise ValueError("Duplicate wallet addresses")
        return addresses


class EventDTO(BaseModel):
    """Data Transfer Object for event information in API responses."""

    id: int
    owner_wallet_address: str
    network: str
    status: str
    title: str
    description: str
    location: str
    image_url: str
    uri: str | None = None
    token_count: int
    date_start: datetime
    date_end: datetime
    is_managed: bool
    created_at: datetime


class AccountingDTO(BaseModel):
    """Deposit bookkeeping of an event; all amounts are drops."""

    deposit_address: str
    deposit_reserve_value: str
    deposit_fee_value: str
    deposit_tx_hash: str | None = None
    accumulated_tx_fees: str
    refund_value: str | None = None
    refund_tx_hash: str | None = None


class EventDetailsResponse(BaseModel):
    event: EventDTO
    accounting: AccountingDTO | None = Field(
        default=None, description="Only returned to the owner and admins"
    )
    nfts: list[str] = Field(default_factory=list, description="Token ids of the event")
    attendees: list[str] = Field(default_factory=list, description="Attendee wallet addresses")


class ClaimDTO(BaseModel):
    token_id: str
    offer_index: str | None = None
    claimed: bool


class MinterStatusResponse(BaseModel):
    minter_address: str = Field(..., description="Address to set as NFTokenMinter")
    is_configured: bool


class OwnershipResponse(BaseModel):
    wallet_address: str
    event_id: int
    owned: bool


def to_event_dto(event: Event) -> EventDTO:
    return EventDTO(
        id=event.id,
        owner_wallet_address=event.owner_wallet_address,
        network=event.network.name.lower(),
        status=event.lifecycle_status.name.lower(),
        title=event.title,
        description=event.description,
        location=event.location,
        image_url=event.image_url,
        uri=event.uri,
        token_count=event.token_count,
        date_start=event.date_start,
        date_end=event.date_end,
        is_managed=event.is_managed,
        created_at=event.created_at,
    )


def to_claim_dto(claim: Claim) -> ClaimDTO:
    return ClaimDTO(token_id=claim.token_id, offer_index=claim.offer_index, claimed=claim.claimed)


def to_details_response(details: EventDetails, caller: Caller) -> EventDetailsResponse:
    accounting = None
    if details.accounting and (
        caller.wallet_address == details.event.owner_wallet_address or caller.has("admin")
    ):
        accounting = AccountingDTO(
            deposit_address=details.accounting.deposit_address,
            deposit_reserve_value=details.accounting.deposit_reserve_value,
            deposit_fee_value=details.accounting.deposit_fee_value,
            deposit_tx_hash=details.accounting.deposit_tx_hash,
            accumulated_tx_fees=details.accounting.accumulated_tx_fees,
            refund_value=details.accounting.refund_value,
            refund_tx_hash=details.accounting.refund_tx_hash,
        )
    return EventDetailsResponse(
        event=to_event_dto(details.event),
        accounting=accounting,
        nfts=[nft.id for nft in details.nfts],
        attendees=[user.wallet_address for user in details.attendees],
    )


async def require_owner(attendify: Attendify, event_id: int, caller: Caller) -> EventDetails:
    """Fetch an event the caller owns (admins may act on any event).

    Raises:
        HTTPException: 404 if the event does not exist, 403 if the caller is not its owner
    """
    details = await attendify.get_event(
        event_id, caller.wallet_address, as_admin=caller.has("admin")
    )
    if details is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if details.event.owner_wallet_address != caller.wallet_address and not caller.has("admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Only the event owner can do this"
        )
    return details


# API Endpoints
# Static paths are registered before /{event_id} so they are not parsed as ids.


@router.get("/minter", response_model=MinterStatusResponse)
async def get_minter_status(
    network_id: NetworkIdentifier = Query(...),
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> MinterStatusResponse:
    """Report whether the caller authorized the vault as NFTokenMinter."""
    minter = await attendify.get_minter_status(network_id, caller.wallet_address)
    return MinterStatusResponse(
        minter_address=minter.minter_address, is_configured=minter.is_configured
    )


@router.get("/public", response_model=list[EventDTO])
async def list_public_events(
    network_id: NetworkIdentifier | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    attendify: Attendify = Depends(get_attendify),
) -> list[EventDTO]:
    """List active events open for self-service signup."""
    return [to_event_dto(e) for e in await attendify.get_events_public(network_id, limit)]


@router.get("/owned", response_model=list[EventDTO])
async def list_owned_events(
    network_id: NetworkIdentifier | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> list[EventDTO]:
    events = await attendify.get_events_owned(caller.wallet_address, network_id, limit)
    return [to_event_dto(e) for e in events]


@router.get("/all", response_model=list[EventDTO])
async def list_all_events(
    network_id: NetworkIdentifier | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    caller: Caller = Depends(require_permission("admin")),
    attendify: Attendify = Depends(get_attendify),
) -> list[EventDTO]:
    return [to_event_dto(e) for e in await attendify.get_events_all(network_id, limit)]


@router.post("", response_model=EventDetailsResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: CreateEventRequest,
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> EventDetailsResponse:
    """Create an event awaiting its deposit payment.

    The response carries the deposit address and amounts the organizer has
    to pay before the event gets minted.
    """
    await attendify.get_user(caller.wallet_address, allow_creation=True)
    event_id = await attendify.create_event(
        request.network_id,
        caller.wallet_address,
        EventMetadata(
            title=request.title,
            description=request.description,
            location=request.location,
            image_url=request.image_url,
            token_count=request.token_count,
            date_start=request.date_start,
            date_end=request.date_end,
        ),
        request.is_managed,
    )
    details = await attendify.get_event(event_id, caller.wallet_address)
    return to_details_response(details, caller)


@router.get("/{event_id}", response_model=EventDetailsResponse)
async def get_event(
    event_id: int,
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> EventDetailsResponse:
    """Event details; managed events are hidden from non-participants."""
    details = await attendify.get_event(
        event_id, caller.wallet_address, as_admin=caller.has("admin")
    )
    if details is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return to_details_response(details, caller)


@router.post("/{event_id}/cancel", response_model=EventDTO)
async def cancel_event(
    event_id: int,
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> EventDTO:
    await require_owner(attendify, event_id, caller)
    await attendify.cancel_event(event_id)
    logger.info("api.event_canceled", event_id=event_id, caller=caller.wallet_address)
    details = await require_owner(attendify, event_id, caller)
    return to_event_dto(details.event)


@router.post("/{event_id}/close", response_model=EventDTO)
async def close_event(
    event_id: int,
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> EventDTO:
    await require_owner(attendify, event_id, caller)
    await attendify.close_event(event_id)
    logger.info("api.event_closed", event_id=event_id, caller=caller.wallet_address)
    details = await require_owner(attendify, event_id, caller)
    return to_event_dto(details.event)


@router.post("/{event_id}/join", response_model=ClaimDTO, status_code=status.HTTP_201_CREATED)
async def join_event(
    event_id: int,
    create_offer: bool = Query(default=True),
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> ClaimDTO:
    """Join a public event and reserve one token for the caller."""
    await attendify.get_user(caller.wallet_address, allow_creation=True)
    claim = await attendify.add_participant(
        event_id, caller.wallet_address, create_offer=create_offer, enforce_join_policy=True
    )
    return to_claim_dto(claim)


@router.post("/{event_id}/invite", response_model=list[ClaimDTO])
async def invite_attendees(
    event_id: int,
    request: InviteRequest,
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> list[ClaimDTO]:
    """Invite wallets to an event owned by the caller."""
    claims = await attendify.add_participants(
        event_id,
        caller.wallet_address,
        request.wallet_addresses,
        create_offer=request.create_offer,
    )
    return [to_claim_dto(c) for c in claims]


@router.get("/{event_id}/claim", response_model=ClaimDTO)
async def get_claim(
    event_id: int,
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> ClaimDTO:
    """The caller's claim on an event, with its current sell offer."""
    return to_claim_dto(await attendify.get_claim(caller.wallet_address, event_id))


@router.get("/{event_id}/ownership", response_model=OwnershipResponse)
async def check_ownership(
    event_id: int,
    wallet_address: str = Query(...),
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> OwnershipResponse:
    """Whether a wallet holds a token of the event (attendance proof)."""
    try:
        wallet_address = validate_classic_address(wallet_address)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    owned = await attendify.check_nft_ownership(wallet_address, event_id)
    return OwnershipResponse(wallet_address=wallet_address, event_id=event_id, owned=owned)
