"""Participant model definition."""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class Participant(Base):
    """One traveller on a booking; each participant occupies one seat."""

    __tablename__ = "participants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Order as entered on the booking form
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    telefon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sos_navn: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sos_telefon: Mapped[str | None] = mapped_column(String(64), nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="participants")

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, booking_id={self.booking_id}, name='{self.name}')>"
