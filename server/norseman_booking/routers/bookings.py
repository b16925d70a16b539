"""Public and admin booking routes."""

import logging

from fastapi import APIRouter, HTTPException, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAdmin
from ..core.exceptions import ProblemDetailsException
from ..schemas.booking import (
    AdminBookingRequest,
    BookingResponse,
    PublicBookingRequest,
    PublicBookingResponse,
    UpdateBookingStatusRequest,
)
from ..schemas.common import parse_uuid
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tours", tags=["bookings"])
admin_router = APIRouter(prefix="/api/admin/bookings", tags=["admin"])


@router.post("/{tour_id}/bookings", response_model=PublicBookingResponse, status_code=201)
async def create_booking(
    tour_id: str,
    request: PublicBookingRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Book seats on a tour from the public booking form.

    Returns the booking id and the payment link. Responds 409 when the group
    does not fit; a sold-out response tells the client the waitlist is open.
    """
    tour_uuid = parse_uuid(tour_id, "tourId")

    try:
        response = await BookingService(db).create_public_booking(tour_uuid, request)
        return JSONResponse(status_code=201, content=response.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in public booking",
            extra={"tour_id": tour_id, "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@admin_router.post("", response_model=BookingResponse, status_code=201)
async def create_admin_booking(
    request: AdminBookingRequest,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Create a manual booking; no seat check is made."""
    booking = await BookingService(db).create_admin_booking(request)
    return JSONResponse(
        status_code=201,
        content=BookingResponse.from_model(booking, include_participants=True).to_json(),
    )


@admin_router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    booking = await BookingService(db).get_booking_or_raise(
        parse_uuid(booking_id, "bookingId"), with_participants=True
    )
    return JSONResponse(
        status_code=200,
        content=BookingResponse.from_model(booking, include_participants=True).to_json(),
    )


@admin_router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    request: UpdateBookingStatusRequest,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Change a booking's status. Freed seats are not offered to the waitlist here."""
    booking = await BookingService(db).update_booking_status(
        parse_uuid(booking_id, "bookingId"),
        request.status,
        request.betalt_belop,
    )
    return JSONResponse(
        status_code=200,
        content=BookingResponse.from_model(booking, include_participants=True).to_json(),
    )


@admin_router.delete("/{booking_id}", status_code=204)
async def delete_booking(
    booking_id: str,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> Response:
    await BookingService(db).delete_booking(parse_uuid(booking_id, "bookingId"))
    return Response(status_code=204)
