"""Tour service for business logic operations."""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import StoreUnavailableError
from ..models.tour import Tour
from ..schemas.tour import CreateTourRequest
from .availability_service import AvailabilityService

logger = logging.getLogger(__name__)


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability_service = AvailabilityService(db)

    async def create_tour(self, request: CreateTourRequest) -> Tour:
        """
        Create a new tour.

        Args:
            request: Tour creation request

        Returns:
            Created tour entity, with every seat available
        """
        tour = Tour(
            title=request.title,
            description=request.description,
            status=request.status,
            price=request.price,
            start_date=request.start_date,
            end_date=request.end_date,
            total_seats=request.total_seats,
            seats_available=request.total_seats,
        )

        try:
            self.db.add(tour)
            await self.db.commit()
            await self.db.refresh(tour)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create tour", extra={"title": request.title, "error": str(e)})
            raise StoreUnavailableError(detail="Kunne ikke opprette turen.", operation="create_tour") from e

        logger.info(
            "Tour created successfully",
            extra={"tour_id": str(tour.id), "title": tour.title, "total_seats": tour.total_seats},
        )
        return tour

    async def get_tour(self, tour_id: UUID) -> Tour:
        """
        Get tour by ID.

        Raises:
            TourNotFoundError: If tour not found
        """
        return await self.availability_service.get_tour_or_raise(tour_id)

    async def update_tour_capacity(self, tour_id: UUID, total_seats: int) -> Tour:
        """
        Change a tour's capacity and recompute its free seats.

        Lowering capacity below the confirmed seat count leaves the tour
        sold out; existing confirmed bookings are never touched.

        Raises:
            TourNotFoundError: If tour not found
        """
        tour = await self.availability_service.lock_tour(tour_id)
        previous = tour.total_seats

        try:
            tour.total_seats = total_seats
            await self.availability_service.sync_seats_available(tour_id, commit=False)
            await self.db.commit()
            await self.db.refresh(tour)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to update tour capacity",
                extra={"tour_id": str(tour_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke oppdatere turen.",
                operation="update_tour_capacity",
            ) from e

        logger.info(
            "Tour capacity updated",
            extra={
                "tour_id": str(tour_id),
                "previous_total_seats": previous,
                "total_seats": total_seats,
                "seats_available": tour.seats_available,
            },
        )
        return tour
