"""Tour and seat availability schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from ..models.tour import TourStatus
from .common import CamelModel


class CreateTourRequest(CamelModel):
    """Request schema for creating a tour."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    total_seats: int = Field(..., ge=1, description="Seat capacity")
    price: int = Field(0, ge=0, description="Price per participant in NOK")
    status: TourStatus = TourStatus.PUBLISHED
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Sluttdato kan ikke være før startdato.")
        return self


class UpdateTourCapacityRequest(CamelModel):
    """Request schema for changing a tour's seat capacity."""

    total_seats: int = Field(..., ge=1)


class TourResponse(CamelModel):
    """Tour response schema."""

    id: str
    title: str
    description: Optional[str] = None
    status: TourStatus
    price: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_seats: Optional[int] = None
    seats_available: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, tour) -> "TourResponse":
        return cls(
            id=str(tour.id),
            title=tour.title,
            description=tour.description,
            status=tour.status,
            price=tour.price,
            start_date=tour.start_date,
            end_date=tour.end_date,
            total_seats=tour.total_seats,
            seats_available=tour.seats_available,
            created_at=tour.created_at,
            updated_at=tour.updated_at,
        )


class SeatAvailability(CamelModel):
    """Derived capacity figures for one tour."""

    total_seats: Optional[int] = Field(None, description="Configured capacity, if tracked")
    confirmed_seats: int = Field(0, description="Participants on confirmed bookings")
    confirmed_bookings: int = Field(0, exclude=True)
    remaining_seats: int = Field(..., ge=0, description="Seats still bookable")
