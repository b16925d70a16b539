"""Seat capacity calculation and the seats_available cache."""

import logging
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import distinct, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import StoreUnavailableError, TourNotFoundError
from ..core.observability import metrics_collector
from ..models.booking import CONFIRMED_STATUSES, Booking
from ..models.participant import Participant
from ..models.tour import Tour
from ..schemas.tour import SeatAvailability

logger = logging.getLogger(__name__)


def compute_remaining_seats(
    total_seats: Optional[int],
    confirmed_bookings: int,
    confirmed_seats: int,
    stored_seats_available: Optional[int],
) -> int:
    """
    Seats still bookable on a tour.

    Only participants on betalt or delvis_betalt bookings count. A tour without
    total_seats predates capacity tracking; its stored seats_available is the
    capacity baseline until the first booking is confirmed.
    """
    if total_seats is None:
        baseline = max(0, stored_seats_available or 0)
        if confirmed_bookings == 0:
            return baseline
        return max(0, baseline - confirmed_seats)

    if confirmed_bookings == 0:
        return total_seats

    return max(0, total_seats - confirmed_seats)


class AvailabilityService:
    """Derives remaining seats from confirmed bookings and keeps the cache in step."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tour(self, tour_id: UUID) -> Tour | None:
        stmt = select(Tour).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_or_raise(self, tour_id: UUID) -> Tour:
        tour = await self.get_tour(tour_id)
        if not tour:
            logger.warning("Tour not found", extra={"tour_id": str(tour_id)})
            raise TourNotFoundError(str(tour_id))
        return tour

    async def acquire_lock(self, tour_id: UUID) -> None:
        """
        Serialize capacity-sensitive writes on one tour.

        On PostgreSQL this takes a transaction-scoped advisory lock, released
        at commit or rollback. SQLite serializes writers on its own.
        """
        if self.db.bind and self.db.bind.dialect.name == "postgresql":
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:tour_id))"),
                {"tour_id": str(tour_id)},
            )

    async def lock_tour(self, tour_id: UUID) -> Tour:
        """
        Get a tour while holding its capacity lock.

        Raises:
            TourNotFoundError: If the tour does not exist
        """
        await self.acquire_lock(tour_id)
        tour = await self.get_tour_or_raise(tour_id)

        logger.debug("Acquired capacity lock for tour", extra={"tour_id": str(tour_id)})
        return tour

    async def _confirmed_counts(self, tour_ids: Iterable[UUID]) -> Dict[UUID, Tuple[int, int]]:
        """Map tour id to (confirmed bookings, confirmed participants) in one query."""
        ids = list(tour_ids)
        if not ids:
            return {}

        stmt = (
            select(
                Booking.tour_id,
                func.count(distinct(Booking.id)),
                func.count(Participant.id),
            )
            .select_from(Booking)
            .outerjoin(Participant, Participant.booking_id == Booking.id)
            .where(
                Booking.tour_id.in_(ids),
                Booking.status.in_(CONFIRMED_STATUSES),
            )
            .group_by(Booking.tour_id)
        )
        result = await self.db.execute(stmt)
        return {row[0]: (row[1], row[2]) for row in result.all()}

    @staticmethod
    def _availability(tour: Tour, counts: Tuple[int, int]) -> SeatAvailability:
        confirmed_bookings, confirmed_seats = counts
        return SeatAvailability(
            total_seats=tour.total_seats,
            confirmed_bookings=confirmed_bookings,
            confirmed_seats=confirmed_seats,
            remaining_seats=compute_remaining_seats(
                tour.total_seats,
                confirmed_bookings,
                confirmed_seats,
                tour.seats_available,
            ),
        )

    async def calculate(self, tour: Tour) -> SeatAvailability:
        """Remaining seats for an already loaded tour."""
        counts = await self._confirmed_counts([tour.id])
        return self._availability(tour, counts.get(tour.id, (0, 0)))

    async def get_remaining_seats(self, tour_id: UUID) -> SeatAvailability:
        """
        Current seat availability for a tour.

        Raises:
            TourNotFoundError: If the tour does not exist
            StoreUnavailableError: If the booking store query fails
        """
        try:
            tour = await self.get_tour_or_raise(tour_id)
            return await self.calculate(tour)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read bookings for availability",
                extra={"tour_id": str(tour_id), "error": str(e)},
            )
            raise StoreUnavailableError(operation="get_remaining_seats") from e

    async def get_remaining_seats_for_tours(self, tour_ids: Iterable[UUID]) -> Dict[UUID, SeatAvailability]:
        """Seat availability for several tours; unknown ids are left out."""
        ids = list(set(tour_ids))
        if not ids:
            return {}

        try:
            result = await self.db.execute(select(Tour).where(Tour.id.in_(ids)))
            tours = list(result.scalars())
            counts = await self._confirmed_counts(ids)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read bookings for batch availability",
                extra={"tour_count": len(ids), "error": str(e)},
            )
            raise StoreUnavailableError(operation="get_remaining_seats_for_tours") from e

        return {tour.id: self._availability(tour, counts.get(tour.id, (0, 0))) for tour in tours}

    async def sync_seats_available(self, tour_id: UUID, commit: bool = True) -> SeatAvailability:
        """
        Recompute remaining seats and overwrite tours.seats_available.

        Args:
            tour_id: Tour to recompute
            commit: Commit the session afterwards; pass False inside a
                larger unit of work

        Raises:
            TourNotFoundError: If the tour does not exist
        """
        await self.db.flush()
        tour = await self.get_tour_or_raise(tour_id)
        availability = await self.calculate(tour)
        await self._store(tour, availability)

        if commit:
            await self.db.commit()

        return availability

    async def sync_seats_available_for_tours(
        self, tour_ids: Iterable[UUID], commit: bool = True
    ) -> Dict[UUID, SeatAvailability]:
        """Batch form of sync_seats_available."""
        await self.db.flush()
        ids = list(set(tour_ids))
        tours = []
        counts = {}
        if ids:
            result = await self.db.execute(select(Tour).where(Tour.id.in_(ids)))
            tours = list(result.scalars())
            counts = await self._confirmed_counts(ids)

        availability = {}
        for tour in tours:
            seats = self._availability(tour, counts.get(tour.id, (0, 0)))
            await self._store(tour, seats)
            availability[tour.id] = seats

        if commit:
            await self.db.commit()

        return availability

    async def _store(self, tour: Tour, availability: SeatAvailability) -> None:
        values = {"seats_available": availability.remaining_seats}

        # Legacy tour with its first confirmed booking: pin the stored baseline as capacity
        baseline = tour.seats_available or 0
        if tour.total_seats is None and availability.confirmed_bookings > 0 and baseline >= 1:
            values["total_seats"] = baseline
            logger.info(
                "Backfilled capacity for legacy tour",
                extra={"tour_id": str(tour.id), "total_seats": baseline},
            )

        await self.db.execute(update(Tour).where(Tour.id == tour.id).values(**values))
        metrics_collector.set_seats_available(str(tour.id), availability.remaining_seats)

        logger.debug(
            "Recomputed seats_available",
            extra={"tour_id": str(tour.id), "seats_available": availability.remaining_seats},
        )
