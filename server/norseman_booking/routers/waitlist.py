"""Waitlist routes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, NotifierDependency, RequiredAdmin
from ..schemas.common import parse_uuid
from ..schemas.waitlist import (
    JoinWaitlistRequest,
    JoinWaitlistResponse,
    PromotionResult,
    PromotionSkipReason,
    WaitlistEntryResponse,
    WaitlistResponse,
)
from ..services.availability_service import AvailabilityService
from ..services.notification_service import Notifier
from ..services.promotion_service import PromotionService
from ..services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tours", tags=["waitlist"])


@router.post("/{tour_id}/waitlist", response_model=JoinWaitlistResponse, status_code=201)
async def join_waitlist(
    tour_id: str,
    request: JoinWaitlistRequest,
    db: AsyncSession = DatabaseSession,
    notifier: Notifier = NotifierDependency,
) -> JSONResponse:
    """
    Join a tour's waitlist.

    Returns the entry id and 1-based queue position. Joining again with an
    email that is still queued returns the existing entry.
    """
    response = await WaitlistService(db, notifier).join_waitlist(parse_uuid(tour_id, "tourId"), request)
    return JSONResponse(status_code=201, content=response.to_json())


@router.get("/{tour_id}/waitlist", response_model=WaitlistResponse)
async def get_waitlist(
    tour_id: str,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Ordered waitlist for a tour, first in line first."""
    tour_uuid = parse_uuid(tour_id, "tourId")
    await AvailabilityService(db).get_tour_or_raise(tour_uuid)

    entries = await WaitlistService(db).get_waitlist(tour_uuid)
    response = WaitlistResponse(
        tour_id=str(tour_uuid),
        entries=[
            WaitlistEntryResponse(
                booking_id=str(entry.id),
                position=index,
                navn=entry.navn,
                epost=entry.epost,
                created_at=entry.created_at,
            )
            for index, entry in enumerate(entries, start=1)
        ],
    )
    return JSONResponse(status_code=200, content=response.to_json())


@router.post("/{tour_id}/waitlist/promote", response_model=PromotionResult)
async def promote_waitlist(
    tour_id: str,
    db: AsyncSession = DatabaseSession,
    notifier: Notifier = NotifierDependency,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Promote the first waitlist entry if a seat is free."""
    result = await PromotionService(db, notifier).promote_once(parse_uuid(tour_id, "tourId"))

    logger.info(
        "Manual waitlist promotion",
        extra={
            "tour_id": tour_id,
            "admin": admin.get("user_id"),
            "promoted": result.promoted,
            "reason": result.reason,
        },
    )

    status_code = 400 if result.reason == PromotionSkipReason.ERROR else 200
    return JSONResponse(status_code=status_code, content=result.to_json())
