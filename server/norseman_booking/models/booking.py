"""Booking model definition."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .participant import Participant


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    BETALT = "betalt"
    DELVIS_BETALT = "delvis_betalt"
    IKKE_BETALT = "ikke_betalt"
    VENTELISTE = "venteliste"
    KANSELLERT = "kansellert"


class BookingType(str, Enum):
    """Booking type enumeration."""
    TUR = "tur"


# Statuses whose participants occupy seats
CONFIRMED_STATUSES = (BookingStatus.BETALT.value, BookingStatus.DELVIS_BETALT.value)


class Booking(Base):
    """
    A booking of one or more participants on a tour.

    Waitlist entries are bookings in status venteliste; a promoted entry keeps
    its row and moves to ikke_betalt with a reservation deadline.
    """

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    tour_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type: Mapped[BookingType] = mapped_column(String(20), nullable=False, default=BookingType.TUR)

    # Booker contact
    navn: Mapped[str] = mapped_column(String(255), nullable=False)
    epost: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    telefon: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    dato: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.IKKE_BETALT,
        index=True,
    )
    belop: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    betalt_belop: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notater: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Waitlist promotion bookkeeping
    reservation_expires_at: Mapped[datetime | None] = mapped_column(nullable=True, index=True)
    reservation_notified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    waitlist_promoted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    payment_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Queue order; Python-side default keeps sub-second precision on every backend
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("belop >= 0", name="ck_booking_belop_non_negative"),
        CheckConstraint(
            "betalt_belop IS NULL OR betalt_belop >= 0",
            name="ck_booking_betalt_belop_non_negative",
        ),
        Index("ix_bookings_tour_status_created", "tour_id", "status", "created_at"),
    )

    participants: Mapped[list["Participant"]] = relationship(
        "Participant",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Participant.position",
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status in CONFIRMED_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, tour_id={self.tour_id}, "
            f"status={self.status}, created_at={self.created_at})>"
        )
