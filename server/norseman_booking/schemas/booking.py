"""Booking and participant schemas."""

import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..models.booking import BookingStatus, BookingType
from .common import CamelModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Ugyldig e-postadresse.")
    return value


class ParticipantInput(CamelModel):
    """One participant on the booking form."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    telefon: str = Field(..., min_length=1, max_length=64)
    sos_navn: str = Field(..., min_length=1, max_length=255)
    sos_telefon: str = Field(..., min_length=1, max_length=64)

    @field_validator("name", "telefon", "sos_navn", "sos_telefon")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Feltet er påkrevd.")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)


class PublicBookingRequest(CamelModel):
    """Public booking form: participants only, the rest is set by the server."""

    participants: List[ParticipantInput] = Field(default_factory=list)
    telefon: Optional[str] = Field(None, max_length=64, description="Booker phone; defaults to first participant")
    notater: Optional[str] = None


class PublicBookingResponse(CamelModel):
    """Created booking and where to pay for it."""

    booking_id: str
    payment_url: str


class AdminBookingRequest(CamelModel):
    """Manual booking entered by an operator."""

    tour_id: Optional[str] = None
    type: BookingType = BookingType.TUR
    navn: str = Field(..., min_length=1, max_length=255)
    epost: str = Field(..., min_length=1, max_length=255)
    telefon: Optional[str] = Field(None, max_length=64)
    dato: date
    status: BookingStatus
    belop: int = Field(..., ge=0)
    betalt_belop: Optional[int] = Field(None, ge=0)
    notater: Optional[str] = None
    participants: List[ParticipantInput] = Field(default_factory=list)

    @field_validator("navn")
    @classmethod
    def strip_navn(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Navn er påkrevd.")
        return value

    @field_validator("epost")
    @classmethod
    def validate_epost(cls, value: str) -> str:
        return normalize_email(value)


class UpdateBookingStatusRequest(CamelModel):
    """Operator status change."""

    status: BookingStatus
    betalt_belop: Optional[int] = Field(None, ge=0)


class ParticipantResponse(CamelModel):
    """Participant response schema."""

    id: str
    name: str
    email: str
    telefon: Optional[str] = None
    sos_navn: Optional[str] = None
    sos_telefon: Optional[str] = None


class BookingResponse(CamelModel):
    """Booking response schema."""

    id: str
    tour_id: Optional[str] = None
    type: BookingType
    navn: str
    epost: str
    telefon: str
    dato: date
    status: BookingStatus
    belop: int
    betalt_belop: Optional[int] = None
    notater: Optional[str] = None
    reservation_expires_at: Optional[datetime] = None
    reservation_notified_at: Optional[datetime] = None
    waitlist_promoted_at: Optional[datetime] = None
    payment_transaction_id: Optional[str] = None
    created_at: datetime
    participants: Optional[List[ParticipantResponse]] = None

    @classmethod
    def from_model(cls, booking, include_participants: bool = False) -> "BookingResponse":
        """Build a response; participants must already be loaded when requested."""
        participants = None
        if include_participants:
            participants = [
                ParticipantResponse(
                    id=str(p.id),
                    name=p.name,
                    email=p.email,
                    telefon=p.telefon,
                    sos_navn=p.sos_navn,
                    sos_telefon=p.sos_telefon,
                )
                for p in booking.participants
            ]

        return cls(
            id=str(booking.id),
            tour_id=str(booking.tour_id) if booking.tour_id else None,
            type=booking.type,
            navn=booking.navn,
            epost=booking.epost,
            telefon=booking.telefon,
            dato=booking.dato,
            status=booking.status,
            belop=booking.belop,
            betalt_belop=booking.betalt_belop,
            notater=booking.notater,
            reservation_expires_at=booking.reservation_expires_at,
            reservation_notified_at=booking.reservation_notified_at,
            waitlist_promoted_at=booking.waitlist_promoted_at,
            payment_transaction_id=booking.payment_transaction_id,
            created_at=booking.created_at,
            participants=participants,
        )
