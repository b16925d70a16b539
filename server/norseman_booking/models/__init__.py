"""Models module exporting all database models."""

from .booking import CONFIRMED_STATUSES, Booking, BookingStatus, BookingType
from .participant import Participant
from .tour import Tour, TourStatus

__all__ = [
    "Tour",
    "TourStatus",
    "Booking",
    "BookingStatus",
    "BookingType",
    "CONFIRMED_STATUSES",
    "Participant",
]
