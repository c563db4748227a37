"""Attendee offer listing endpoint."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from attendify.api.dependencies import Caller, get_attendify, require_permission
from attendify.models.event import NetworkIdentifier
from attendify.services.attendify import Attendify

router = APIRouter(prefix="/api/offers", tags=["offers"])


class OfferDTO(BaseModel):
    """A claim of the caller together with its event."""

    event_id: int
    event_title: str
    network: str
    token_id: str
    offer_index: str | None = None
    claimed: bool


@router.get("", response_model=list[OfferDTO])
async def list_offers(
    network_id: NetworkIdentifier | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> list[OfferDTO]:
    rows = await attendify.get_offers(caller.wallet_address, network_id, limit)
    return [
        OfferDTO(
            event_id=event.id,
            event_title=event.title,
            network=event.network.name.lower(),
            token_id=claim.token_id,
            offer_index=claim.offer_index,
            claimed=claim.claimed,
        )
        for claim, event in rows
    ]
