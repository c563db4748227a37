"""User profile API endpoints.

- GET/PATCH /api/users/me - Caller's profile (created on first access)
- GET /api/users/lookup - Prefix search for inviting attendees (organizers)
- GET /api/users/organizers - Organizer listing (admins)
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from attendify.api.dependencies import Caller, get_attendify, require_permission
from attendify.api.routes.events import EventDTO, to_event_dto
from attendify.models.user import User
from attendify.services.attendify import Attendify

router = APIRouter(prefix="/api/users", tags=["users"])


class UpdateUserRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v.strip()


class UserDTO(BaseModel):
    wallet_address: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    is_organizer: bool
    is_admin: bool
    slots: int
    created_at: datetime


class UserProfileResponse(BaseModel):
    user: UserDTO
    attended_events: list[EventDTO] = Field(default_factory=list)


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        wallet_address=user.wallet_address,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        is_organizer=user.is_organizer,
        is_admin=user.is_admin,
        slots=user.slots,
        created_at=user.created_at,
    )


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    include_events: bool = Query(default=False),
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> UserProfileResponse:
    profile = await attendify.get_user(
        caller.wallet_address, include_events=include_events, allow_creation=True
    )
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserProfileResponse(
        user=to_user_dto(profile.user),
        attended_events=[to_event_dto(e) for e in profile.attended_events],
    )


@router.patch("/me", response_model=UserDTO)
async def update_me(
    request: UpdateUserRequest,
    caller: Caller = Depends(require_permission("attendee")),
    attendify: Attendify = Depends(get_attendify),
) -> UserDTO:
    user = await attendify.update_user(
        caller.wallet_address, request.first_name, request.last_name, request.email
    )
    return to_user_dto(user)


@router.get("/lookup", response_model=list[UserDTO])
async def lookup_users(
    query: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> list[UserDTO]:
    return [to_user_dto(u) for u in await attendify.lookup_users(query, limit)]


@router.get("/organizers", response_model=list[UserDTO])
async def list_organizers(
    caller: Caller = Depends(require_permission("admin")),
    attendify: Attendify = Depends(get_attendify),
) -> list[UserDTO]:
    return [to_user_dto(u) for u in await attendify.get_organizers()]
