"""Booking service for the capacity-sensitive write paths."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.database import utcnow
from ..core.exceptions import (
    BookingNotFoundError,
    CapacityExceededError,
    StoreUnavailableError,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..models.booking import CONFIRMED_STATUSES, Booking, BookingStatus, BookingType
from ..models.participant import Participant
from ..schemas.booking import (
    AdminBookingRequest,
    ParticipantInput,
    PublicBookingRequest,
    PublicBookingResponse,
)
from ..schemas.common import parse_uuid
from .availability_service import AvailabilityService
from .links import payment_url

logger = logging.getLogger(__name__)


def _participants(inputs: List[ParticipantInput]) -> List[Participant]:
    return [
        Participant(
            position=index,
            name=p.name,
            email=p.email,
            telefon=p.telefon,
            sos_navn=p.sos_navn,
            sos_telefon=p.sos_telefon,
        )
        for index, p in enumerate(inputs)
    ]


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability_service = AvailabilityService(db)

    async def create_public_booking(
        self, tour_id: UUID, request: PublicBookingRequest
    ) -> PublicBookingResponse:
        """
        Book seats for a group from the public booking form.

        The tour is locked and remaining seats re-checked at write time. The
        booking and its participants are inserted in one transaction.

        Raises:
            ValidationError: If no participants were given
            TourNotFoundError: If the tour does not exist
            CapacityExceededError: If the group does not fit
            StoreUnavailableError: If the booking could not be stored
        """
        participants = request.participants
        if not participants:
            raise ValidationError(
                detail="Minst én deltaker må oppgis.",
                errors=[{"path": "participants", "message": "Minst én deltaker må oppgis."}],
            )

        requested_seats = len(participants)

        try:
            tour = await self.availability_service.lock_tour(tour_id)
            availability = await self.availability_service.calculate(tour)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to check availability for booking",
                extra={"tour_id": str(tour_id), "error": str(e)},
            )
            raise StoreUnavailableError(operation="create_public_booking") from e

        if requested_seats > availability.remaining_seats:
            await self.db.rollback()
            metrics_collector.record_capacity_rejection(sold_out=availability.remaining_seats <= 0)
            logger.info(
                "Booking rejected, not enough seats",
                extra={
                    "tour_id": str(tour_id),
                    "requested_seats": requested_seats,
                    "remaining_seats": availability.remaining_seats,
                },
            )
            raise CapacityExceededError(str(tour_id), requested_seats, availability.remaining_seats)

        first = participants[0]
        booking = Booking(
            tour_id=tour_id,
            type=BookingType.TUR,
            navn=first.name,
            epost=first.email,
            telefon=(request.telefon or "").strip() or first.telefon,
            dato=utcnow().date(),
            status=BookingStatus.IKKE_BETALT,
            belop=tour.price * requested_seats,
            notater=request.notater,
            participants=_participants(participants),
        )

        await self._insert(booking, operation="create_public_booking")

        metrics_collector.record_booking_created("public")
        logger.info(
            "Public booking created",
            extra={
                "booking_id": str(booking.id),
                "tour_id": str(tour_id),
                "seats": requested_seats,
            },
        )

        return PublicBookingResponse(booking_id=str(booking.id), payment_url=payment_url(booking.id))

    async def create_admin_booking(self, request: AdminBookingRequest) -> Booking:
        """
        Store a booking entered by an operator.

        No seat check is made; the operator decides. Seats are recomputed
        afterwards when the booking belongs to a tour.

        Raises:
            ValidationError: If tour_id is malformed
            TourNotFoundError: If the tour does not exist
            StoreUnavailableError: If the booking could not be stored
        """
        tour_id = parse_uuid(request.tour_id, "tourId") if request.tour_id else None
        if tour_id:
            await self.availability_service.lock_tour(tour_id)

        booking = Booking(
            tour_id=tour_id,
            type=request.type,
            navn=request.navn,
            epost=request.epost,
            telefon=(request.telefon or "").strip(),
            dato=request.dato,
            status=request.status,
            belop=request.belop,
            betalt_belop=request.betalt_belop if request.status == BookingStatus.DELVIS_BETALT else None,
            notater=request.notater,
            participants=_participants(request.participants),
        )

        await self._insert(booking, operation="create_admin_booking")

        metrics_collector.record_booking_created("admin")
        logger.info(
            "Manual booking created",
            extra={
                "booking_id": str(booking.id),
                "tour_id": str(tour_id) if tour_id else None,
                "status": booking.status,
            },
        )
        return booking

    async def _insert(self, booking: Booking, operation: str) -> None:
        try:
            self.db.add(booking)
            await self.db.flush()
            if booking.tour_id:
                await self.availability_service.sync_seats_available(booking.tour_id, commit=False)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to store booking, transaction rolled back",
                extra={"operation": operation, "tour_id": str(booking.tour_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke opprette bestilling. Prøv igjen senere.",
                operation=operation,
            ) from e

    async def get_booking(self, booking_id: UUID, with_participants: bool = False) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id)
        if with_participants:
            stmt = stmt.options(selectinload(Booking.participants))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_or_raise(self, booking_id: UUID, with_participants: bool = False) -> Booking:
        booking = await self.get_booking(booking_id, with_participants)
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        betalt_belop: Optional[int] = None,
    ) -> Booking:
        """
        Change a booking's status from the admin dashboard.

        Seats are recomputed; nobody is promoted from the waitlist here.

        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        booking = await self.get_booking_or_raise(booking_id, with_participants=True)
        previous_status = booking.status

        try:
            if booking.tour_id:
                await self.availability_service.acquire_lock(booking.tour_id)

            booking.status = status
            booking.betalt_belop = betalt_belop if status == BookingStatus.DELVIS_BETALT else None
            if status in CONFIRMED_STATUSES:
                booking.reservation_expires_at = None

            await self.db.flush()
            if booking.tour_id:
                await self.availability_service.sync_seats_available(booking.tour_id, commit=False)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to update booking status",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke oppdatere bestillingen.",
                operation="update_booking_status",
            ) from e

        logger.info(
            "Booking status changed",
            extra={
                "booking_id": str(booking_id),
                "from_status": previous_status,
                "to_status": status,
            },
        )
        return booking

    async def delete_booking(self, booking_id: UUID) -> None:
        """
        Delete a booking and its participants.

        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        booking = await self.get_booking_or_raise(booking_id)
        tour_id = booking.tour_id

        try:
            if tour_id:
                await self.availability_service.acquire_lock(tour_id)

            await self.db.execute(delete(Participant).where(Participant.booking_id == booking_id))
            await self.db.execute(delete(Booking).where(Booking.id == booking_id))

            if tour_id:
                await self.availability_service.sync_seats_available(tour_id, commit=False)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to delete booking",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke slette bestillingen.",
                operation="delete_booking",
            ) from e

        logger.info(
            "Booking deleted",
            extra={"booking_id": str(booking_id), "tour_id": str(tour_id) if tour_id else None},
        )

    async def confirm_payment(self, booking_id: UUID, transaction_id: Optional[str] = None) -> Booking | None:
        """
        Mark a booking as paid after a completed payment.

        Repeated confirmations leave an already paid booking as it is. A
        payment cannot be refused, so a confirmation that takes the tour past
        its capacity is accepted and reported.

        Returns:
            The booking, or None if the reference is unknown

        Raises:
            StoreUnavailableError: If the booking could not be updated
        """
        try:
            booking = await self.get_booking(booking_id)
            if booking is None:
                logger.warning(
                    "Payment webhook for unknown booking",
                    extra={"booking_id": str(booking_id)},
                )
                return None

            if booking.tour_id:
                await self.availability_service.acquire_lock(booking.tour_id)

            already_paid = booking.status == BookingStatus.BETALT
            if not already_paid:
                booking.status = BookingStatus.BETALT
                booking.reservation_expires_at = None
            if transaction_id:
                booking.payment_transaction_id = transaction_id

            await self.db.flush()

            availability = None
            if booking.tour_id:
                availability = await self.availability_service.sync_seats_available(
                    booking.tour_id, commit=False
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to confirm payment",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )
            raise StoreUnavailableError(
                detail="Kunne ikke oppdatere bestillingen.",
                operation="confirm_payment",
            ) from e

        if already_paid:
            logger.info("Payment already confirmed", extra={"booking_id": str(booking_id)})
            return booking

        metrics_collector.record_payment_confirmed()
        logger.info(
            "Payment confirmed",
            extra={"booking_id": str(booking_id), "transaction_id": transaction_id},
        )

        if (
            availability is not None
            and availability.total_seats is not None
            and availability.confirmed_seats > availability.total_seats
        ):
            metrics_collector.record_overbooking()
            logger.warning(
                "Payment confirmation overbooked tour",
                extra={
                    "booking_id": str(booking_id),
                    "tour_id": str(booking.tour_id),
                    "total_seats": availability.total_seats,
                    "confirmed_seats": availability.confirmed_seats,
                },
            )

        return booking
