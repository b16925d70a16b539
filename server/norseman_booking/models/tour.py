"""Tour model definition."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


class TourStatus(str, Enum):
    """Tour publication state."""
    DRAFT = "draft"
    PUBLISHED = "published"


class Tour(Base):
    """A guided tour with a fixed number of seats."""

    __tablename__ = "tours"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TourStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TourStatus.PUBLISHED,
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # NULL total_seats marks a row that predates capacity tracking; for those
    # seats_available is the capacity until the first booking is confirmed.
    total_seats: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seats_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("total_seats IS NULL OR total_seats >= 1", name="ck_tour_total_seats_positive"),
        CheckConstraint("seats_available >= 0", name="ck_tour_seats_available_non_negative"),
        CheckConstraint("price >= 0", name="ck_tour_price_non_negative"),
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR end_date >= start_date",
            name="ck_tour_dates_ordered",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Tour(id={self.id}, title='{self.title}', total_seats={self.total_seats}, "
            f"seats_available={self.seats_available})>"
        )
