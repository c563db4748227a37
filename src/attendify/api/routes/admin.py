"""Platform administration endpoints."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from attendify.api.dependencies import Caller, get_attendify, require_permission
from attendify.models.event import NetworkIdentifier
from attendify.services.attendify import Attendify

router = APIRouter(prefix="/api/admin", tags=["admin"])


class StatsResponse(BaseModel):
    users: int
    organizers: int
    events: dict[str, int]
    nfts: int
    claims: int
    claimed: int


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    network_id: NetworkIdentifier | None = Query(default=None),
    caller: Caller = Depends(require_permission("admin")),
    attendify: Attendify = Depends(get_attendify),
) -> StatsResponse:
    stats = await attendify.get_stats(network_id)
    return StatsResponse(
        users=stats.users,
        organizers=stats.organizers,
        events=stats.events,
        nfts=stats.nfts,
        claims=stats.claims,
        claimed=stats.claimed,
    )
