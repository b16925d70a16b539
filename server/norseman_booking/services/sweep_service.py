"""Expiry sweep: drop lapsed waitlist reservations and refill from the queue."""

import logging
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import StoreUnavailableError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.participant import Participant
from ..schemas.sweep import SweepResult, TourPromotionCount
from .availability_service import AvailabilityService
from .notification_service import LogOnlyNotifier, Notifier
from .promotion_service import PromotionService
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Scheduled cleanup of held reservations that were never paid.

    A held reservation is an ikke_betalt booking with belop 0 on a tour whose
    reservation_expires_at has passed. Such bookings are deleted together
    with their participants, seats are recomputed for the affected tours, and
    every tour that has freed seats or a waitlist is drained.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LogOnlyNotifier()
        self.availability_service = AvailabilityService(db)
        self.waitlist_service = WaitlistService(db, self.notifier)
        self.promotion_service = PromotionService(db, self.notifier)

    async def find_expired_reservations(self, now: datetime, limit: int) -> list[tuple[UUID, UUID]]:
        """(booking id, tour id) pairs of lapsed reservations, oldest deadline first."""
        stmt = (
            select(Booking.id, Booking.tour_id)
            .where(
                Booking.status == BookingStatus.IKKE_BETALT,
                Booking.belop == 0,
                Booking.tour_id.is_not(None),
                Booking.reservation_expires_at.is_not(None),
                Booking.reservation_expires_at < now,
            )
            .order_by(Booking.reservation_expires_at.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def run(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one sweep.

        Args:
            now: Reference time; reservations expiring before it are removed

        Returns:
            SweepResult summary

        Raises:
            StoreUnavailableError: If expired reservations could not be read or deleted
        """
        now = now or utcnow()

        try:
            expired = await self.find_expired_reservations(now, settings.sweep_batch_limit)
            booking_ids = [booking_id for booking_id, _ in expired]
            affected_tours = {tour_id for _, tour_id in expired}

            if booking_ids:
                await self.db.execute(delete(Participant).where(Participant.booking_id.in_(booking_ids)))
                await self.db.execute(delete(Booking).where(Booking.id.in_(booking_ids)))
                await self.availability_service.sync_seats_available_for_tours(affected_tours, commit=False)

            await self.db.commit()

            waitlisted_tours = await self.waitlist_service.get_tours_with_waitlist(settings.sweep_batch_limit)
        except SQLAlchemyError as e:
            await self.db.rollback()
            metrics_collector.record_sweep("error")
            logger.error("Expiry sweep failed", extra={"error": str(e)})
            raise StoreUnavailableError(
                detail="Kunne ikke rydde utløpte reservasjoner.",
                operation="expiry_sweep",
            ) from e

        metrics_collector.record_reservations_expired(len(booking_ids))
        if booking_ids:
            logger.info(
                "Deleted expired waitlist reservations",
                extra={"count": len(booking_ids), "tour_count": len(affected_tours)},
            )

        tours_to_drain = affected_tours | set(waitlisted_tours)
        per_tour: Dict[UUID, int] = {}
        for tour_id in sorted(tours_to_drain, key=str):
            promoted = await self.promotion_service.drain(tour_id, now=now)
            if promoted > 0:
                per_tour[tour_id] = promoted

        result = SweepResult(
            ok=True,
            expired_reservations_deleted=len(booking_ids),
            total_promoted=sum(per_tour.values()),
            tours_touched=len(per_tour),
            per_tour=[
                TourPromotionCount(tour_id=str(tour_id), promoted=count)
                for tour_id, count in per_tour.items()
            ],
        )

        metrics_collector.record_sweep("ok")
        logger.info(
            "Expiry sweep finished",
            extra={
                "expired_reservations_deleted": result.expired_reservations_deleted,
                "total_promoted": result.total_promoted,
                "tours_touched": result.tours_touched,
            },
        )
        return result
