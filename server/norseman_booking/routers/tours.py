"""Tour and seat availability routes."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAdmin
from ..core.exceptions import (
    NotFoundError,
    ProblemDetailsException,
    StoreUnavailableError,
)
from ..schemas.common import parse_uuid
from ..schemas.tour import CreateTourRequest, SeatAvailability, TourResponse, UpdateTourCapacityRequest
from ..services.availability_service import AvailabilityService
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tours", tags=["tours"])
admin_router = APIRouter(prefix="/api/admin/tours", tags=["admin"])


@router.get("/{tour_id}/availability", response_model=SeatAvailability)
async def get_availability(tour_id: str, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Remaining seats for a tour.

    Every failure, including an unknown tour, is reported as 400 so the
    booking page can show the message as is.
    """
    try:
        tour_uuid = parse_uuid(tour_id, "tourId")
        availability = await AvailabilityService(db).get_remaining_seats(tour_uuid)
    except (NotFoundError, StoreUnavailableError) as e:
        raise ProblemDetailsException(
            status_code=400,
            title=e.title,
            detail=e.detail,
            type_uri=e.type_uri,
            extensions=e.extensions,
        ) from e

    return JSONResponse(status_code=200, content=availability.to_json())


@router.get("/{tour_id}", response_model=TourResponse)
async def get_tour(tour_id: str, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """Get a tour by id."""
    tour = await TourService(db).get_tour(parse_uuid(tour_id, "tourId"))
    return JSONResponse(status_code=200, content=TourResponse.from_model(tour).to_json())


@admin_router.post("", response_model=TourResponse, status_code=201)
async def create_tour(
    request: CreateTourRequest,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Create a tour with all seats available."""
    try:
        tour = await TourService(db).create_tour(request)
        return JSONResponse(status_code=201, content=TourResponse.from_model(tour).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in tour creation",
            extra={"title": request.title, "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@admin_router.patch("/{tour_id}/capacity", response_model=TourResponse)
async def update_tour_capacity(
    tour_id: str,
    request: UpdateTourCapacityRequest,
    db: AsyncSession = DatabaseSession,
    admin: dict = RequiredAdmin,
) -> JSONResponse:
    """Change a tour's capacity; seats_available is recomputed."""
    tour = await TourService(db).update_tour_capacity(parse_uuid(tour_id, "tourId"), request.total_seats)

    logger.info(
        "Tour capacity changed by admin",
        extra={"tour_id": tour_id, "admin": admin.get("user_id"), "total_seats": request.total_seats},
    )
    return JSONResponse(status_code=200, content=TourResponse.from_model(tour).to_json())
