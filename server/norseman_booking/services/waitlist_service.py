"""Waitlist queue reads and public waitlist registration."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import StoreUnavailableError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.tour import Tour
from ..schemas.waitlist import JoinWaitlistRequest, JoinWaitlistResponse
from .availability_service import AvailabilityService
from .email_templates import build_first_in_line_email, build_waitlist_confirmation_email
from .links import booking_page_url
from .notification_service import LogOnlyNotifier, Notifier, notify_safely

logger = logging.getLogger(__name__)

WAITLIST_NOTE = "Venteliste (offentlig registrering)"


def queue_order():
    """FIFO ordering of waitlist entries; ties on created_at fall back to id."""
    return (Booking.created_at.asc(), Booking.id.asc())


class WaitlistService:
    """Service for waitlist-related operations."""

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LogOnlyNotifier()
        self.availability_service = AvailabilityService(db)

    @staticmethod
    def _queued(tour_id: UUID):
        return select(Booking).where(
            Booking.tour_id == tour_id,
            Booking.status == BookingStatus.VENTELISTE,
        )

    async def get_waitlist(self, tour_id: UUID) -> List[Booking]:
        """All waitlist entries for a tour, first in line first."""
        result = await self.db.execute(self._queued(tour_id).order_by(*queue_order()))
        return list(result.scalars())

    async def get_first_waitlist_entry(self, tour_id: UUID) -> Booking | None:
        result = await self.db.execute(
            self._queued(tour_id).order_by(*queue_order()).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_waitlist_position(self, booking: Booking) -> int:
        """1-based position of a queued booking among its tour's waitlist."""
        stmt = (
            select(func.count(Booking.id))
            .where(
                Booking.tour_id == booking.tour_id,
                Booking.status == BookingStatus.VENTELISTE,
                or_(
                    Booking.created_at < booking.created_at,
                    and_(Booking.created_at == booking.created_at, Booking.id < booking.id),
                ),
            )
        )
        ahead = (await self.db.execute(stmt)).scalar_one()
        return ahead + 1

    async def get_tours_with_waitlist(self, limit: Optional[int] = None) -> List[UUID]:
        """Distinct tours that currently have someone waiting."""
        stmt = (
            select(Booking.tour_id)
            .where(
                Booking.status == BookingStatus.VENTELISTE,
                Booking.tour_id.is_not(None),
            )
            .distinct()
        )
        if limit:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def find_queued_entry(self, tour_id: UUID, epost: str) -> Booking | None:
        """Oldest queued entry on the tour for an email address, if any."""
        stmt = (
            self._queued(tour_id)
            .where(func.lower(Booking.epost) == epost.lower())
            .order_by(*queue_order())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def join_waitlist(self, tour_id: UUID, request: JoinWaitlistRequest) -> JoinWaitlistResponse:
        """
        Put one person on a tour's waitlist.

        Joining again with an email that is still queued returns the existing
        entry instead of adding a second one.

        Raises:
            TourNotFoundError: If the tour does not exist
            StoreUnavailableError: If the entry could not be stored
        """
        tour = await self.availability_service.get_tour_or_raise(tour_id)

        existing = await self.find_queued_entry(tour_id, request.email)
        if existing:
            position = await self.get_waitlist_position(existing)
            logger.info(
                "Already on waitlist - returning existing entry",
                extra={
                    "booking_id": str(existing.id),
                    "tour_id": str(tour_id),
                    "position": position,
                },
            )
            return JoinWaitlistResponse(booking_id=str(existing.id), position=position)

        entry = Booking(
            tour_id=tour_id,
            type=BookingType.TUR,
            navn=request.name,
            epost=request.email,
            telefon="",
            dato=utcnow().date(),
            status=BookingStatus.VENTELISTE,
            belop=0,
            notater=WAITLIST_NOTE,
        )

        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
            position = await self.get_waitlist_position(entry)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to store waitlist entry",
                extra={"tour_id": str(tour_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke registrere deg på venteliste. Prøv igjen senere.",
                operation="join_waitlist",
            ) from e

        metrics_collector.record_waitlist_join()
        logger.info(
            "Joined waitlist",
            extra={"booking_id": str(entry.id), "tour_id": str(tour_id), "position": position},
        )

        await self._send_join_emails(tour, entry, position)

        return JoinWaitlistResponse(booking_id=str(entry.id), position=position)

    async def _send_join_emails(self, tour: Tour, entry: Booking, position: int) -> None:
        url = booking_page_url(tour.id)
        await notify_safely(
            self.notifier,
            entry.epost,
            build_waitlist_confirmation_email(
                name=entry.navn,
                tour_title=tour.title,
                booking_url=url,
                hold_hours=settings.reservation_hold_hours,
                site_url=settings.site_url,
            ),
        )

        if position == 1:
            await notify_safely(
                self.notifier,
                entry.epost,
                build_first_in_line_email(
                    name=entry.navn,
                    tour_title=tour.title,
                    booking_url=url,
                    site_url=settings.site_url,
                ),
            )
