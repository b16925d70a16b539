"""Moves the head of a tour's waitlist into a held reservation."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import TourNotFoundError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.tour import Tour
from ..schemas.waitlist import PromotionResult, PromotionSkipReason
from .availability_service import AvailabilityService
from .email_templates import build_first_in_line_email, build_reservation_held_email
from .links import booking_page_url, payment_url
from .notification_service import LogOnlyNotifier, Notifier, notify_safely
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


class PromotionService:
    """Service for waitlist promotion."""

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LogOnlyNotifier()
        self.availability_service = AvailabilityService(db)
        self.waitlist_service = WaitlistService(db, self.notifier)

    async def promote_once(self, tour_id: UUID, now: Optional[datetime] = None) -> PromotionResult:
        """
        Promote the first waitlist entry if a seat is free.

        The entry moves from venteliste to ikke_betalt with a reservation
        deadline, seats_available is recomputed, and the promoted booker and
        the new head of the queue are emailed. Never raises; failures are
        reported through the result.

        Args:
            tour_id: Tour whose waitlist to advance
            now: Reference time for the reservation deadline

        Returns:
            PromotionResult describing what happened
        """
        now = now or utcnow()

        try:
            tour = await self.availability_service.lock_tour(tour_id)

            availability = await self.availability_service.calculate(tour)
            if availability.remaining_seats <= 0:
                await self.db.commit()
                return PromotionResult(promoted=False, reason=PromotionSkipReason.NO_REMAINING_SEATS)

            entry = await self.waitlist_service.get_first_waitlist_entry(tour_id)
            if entry is None:
                await self.db.commit()
                return PromotionResult(promoted=False, reason=PromotionSkipReason.NO_WAITLIST)

            entry_id = entry.id
            expires_at = now + timedelta(hours=settings.reservation_hold_hours)

            # Guarded on the queued status so a concurrent promoter cannot
            # promote the same entry twice
            result = await self.db.execute(
                update(Booking)
                .where(Booking.id == entry_id, Booking.status == BookingStatus.VENTELISTE)
                .values(
                    status=BookingStatus.IKKE_BETALT,
                    reservation_expires_at=expires_at,
                    reservation_notified_at=now,
                    waitlist_promoted_at=now,
                )
            )
            if result.rowcount == 0:
                await self.db.rollback()
                logger.info(
                    "Waitlist entry already promoted by another request",
                    extra={"tour_id": str(tour_id), "booking_id": str(entry_id)},
                )
                return PromotionResult(promoted=False, reason=PromotionSkipReason.ALREADY_PROMOTED)

            await self.availability_service.sync_seats_available(tour_id, commit=False)
            await self.db.commit()

            next_entry = await self.waitlist_service.get_first_waitlist_entry(tour_id)

        except TourNotFoundError as e:
            await self.db.rollback()
            return PromotionResult(promoted=False, reason=PromotionSkipReason.ERROR, error=e.detail)

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to promote waitlist entry",
                extra={"tour_id": str(tour_id), "error": str(e)},
            )
            return PromotionResult(
                promoted=False,
                reason=PromotionSkipReason.ERROR,
                error="Kunne ikke flytte booking fra venteliste.",
            )

        metrics_collector.record_promotion()
        logger.info(
            "Promoted waitlist entry to held reservation",
            extra={
                "tour_id": str(tour_id),
                "booking_id": str(entry.id),
                "reservation_expires_at": expires_at.isoformat(),
            },
        )

        notified_new_first = await self._notify(tour, entry, expires_at, next_entry)

        return PromotionResult(
            promoted=True,
            booking_id=str(entry.id),
            navn=entry.navn,
            epost=entry.epost,
            notified_new_first=notified_new_first,
        )

    async def drain(self, tour_id: UUID, max_iterations: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """
        Promote repeatedly until seats or waitlist run out.

        Returns:
            Number of entries promoted
        """
        limit = max_iterations or settings.promotion_max_iterations
        promoted = 0

        for _ in range(limit):
            result = await self.promote_once(tour_id, now=now)
            if not result.promoted:
                break
            promoted += 1

        return promoted

    async def _notify(
        self,
        tour: Tour,
        promoted: Booking,
        expires_at: datetime,
        next_entry: Optional[Booking],
    ) -> bool:
        """Email the promoted booker and the new head of the queue; True if the latter was notified."""
        await notify_safely(
            self.notifier,
            promoted.epost,
            build_reservation_held_email(
                name=promoted.navn,
                tour_title=tour.title,
                payment_url=payment_url(promoted.id),
                expires_at=expires_at,
                site_url=settings.site_url,
            ),
        )

        if next_entry is None:
            return False

        return await notify_safely(
            self.notifier,
            next_entry.epost,
            build_first_in_line_email(
                name=next_entry.navn,
                tour_title=tour.title,
                booking_url=booking_page_url(tour.id),
                site_url=settings.site_url,
            ),
        )
