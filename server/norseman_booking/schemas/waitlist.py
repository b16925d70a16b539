"""Waitlist and promotion schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .booking import normalize_email
from .common import CamelModel


class JoinWaitlistRequest(CamelModel):
    """Request schema for joining a tour's waitlist."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Navn er påkrevd.")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)


class JoinWaitlistResponse(CamelModel):
    """Waitlist entry id and 1-based queue position."""

    booking_id: str
    position: int = Field(..., ge=1)


class WaitlistEntryResponse(CamelModel):
    """One queued entry as shown to operators."""

    booking_id: str
    position: int
    navn: str
    epost: str
    created_at: datetime


class WaitlistResponse(CamelModel):
    """Ordered waitlist for a tour."""

    tour_id: str
    entries: List[WaitlistEntryResponse] = Field(default_factory=list)


class PromotionSkipReason(str, Enum):
    """Why a promotion attempt did not promote anyone."""
    NO_REMAINING_SEATS = "no_remaining_seats"
    NO_WAITLIST = "no_waitlist"
    ALREADY_PROMOTED = "already_promoted"
    ERROR = "error"


REASON_MESSAGES = {
    PromotionSkipReason.NO_REMAINING_SEATS: "Ingen ledige plasser på turen.",
    PromotionSkipReason.NO_WAITLIST: "Ingen på ventelisten for denne turen.",
    PromotionSkipReason.ALREADY_PROMOTED: "Ventelisten ble nettopp oppdatert. Prøv igjen.",
    PromotionSkipReason.ERROR: "Kunne ikke promotere.",
}


class PromotionResult(CamelModel):
    """Outcome of a single promotion attempt."""

    promoted: bool
    booking_id: Optional[str] = None
    navn: Optional[str] = None
    epost: Optional[str] = None
    notified_new_first: Optional[bool] = None
    reason: Optional[PromotionSkipReason] = None
    error: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        if self.reason is None:
            return None
        return self.error or REASON_MESSAGES[self.reason]

    def to_json(self) -> dict:
        body = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        if self.message:
            body["message"] = self.message
        return body
