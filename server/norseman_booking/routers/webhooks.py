"""Payment provider webhook."""

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession
from ..core.exceptions import ValidationError
from ..schemas.common import parse_uuid
from ..schemas.webhook import LetsRegWebhookPayload, WebhookAck
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def _read_payload(request: Request) -> LetsRegWebhookPayload:
    try:
        body = await request.json()
        return LetsRegWebhookPayload.model_validate(body)
    except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as e:
        raise ValidationError(detail="Ugyldig webhook-innhold.") from e


@router.post("/letsreg", response_model=WebhookAck)
async def letsreg_webhook(request: Request, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Payment status notification from LetsReg.

    A COMPLETED payment marks the referenced booking as paid. Other statuses
    and unknown references are acknowledged so the provider does not retry.
    """
    payload = await _read_payload(request)

    if not payload.reference_id:
        raise ValidationError(
            detail="Mangler reference_id.",
            errors=[{"path": "reference_id", "message": "Field required"}],
        )

    booking_id = parse_uuid(payload.reference_id, "reference_id")

    if not payload.is_completed:
        logger.info(
            "Ignoring payment webhook with non-final status",
            extra={"booking_id": str(booking_id), "payment_status": payload.status},
        )
        return JSONResponse(status_code=200, content=WebhookAck().model_dump())

    await BookingService(db).confirm_payment(booking_id, payload.transaction_id)
    return JSONResponse(status_code=200, content=WebhookAck().model_dump())
