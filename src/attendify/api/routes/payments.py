"""Deposit payment verification endpoint."""

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from attendify.api.dependencies import Caller, get_attendify, require_permission
from attendify.api.routes.events import require_owner
from attendify.services.attendify import Attendify

logger = structlog.get_logger()
router = APIRouter(prefix="/api/payments", tags=["payments"])


class CheckPaymentRequest(BaseModel):
    event_id: int = Field(..., ge=1)
    tx_hash: str = Field(..., min_length=64, max_length=64, description="Payment transaction hash")

    @field_validator("tx_hash")
    @classmethod
    def validate_tx_hash(cls, v: str) -> str:
        try:
            bytes.fromhex(v)
        except ValueError:
            raise ValueError("Transaction hash must be 64 hex characters")
        return v.upper()


class CheckPaymentResponse(BaseModel):
    event_id: int
    paid: bool = Field(..., description="False while the payment is not validated yet")


@router.post("/check", response_model=CheckPaymentResponse, status_code=status.HTTP_200_OK)
async def check_payment(
    request: CheckPaymentRequest,
    caller: Caller = Depends(require_permission("organizer")),
    attendify: Attendify = Depends(get_attendify),
) -> CheckPaymentResponse:
    """Verify the deposit payment of one of the caller's draft events."""
    await require_owner(attendify, request.event_id, caller)
    paid = await attendify.check_payment(request.event_id, request.tx_hash)
    logger.info("api.payment_checked", event_id=request.event_id, paid=paid)
    return CheckPaymentResponse(event_id=request.event_id, paid=paid)
