"""Service layer package."""

from .availability_service import AvailabilityService, compute_remaining_seats
from .booking_service import BookingService
from .notification_service import LogOnlyNotifier, Notifier, ResendNotifier, notify_safely
from .promotion_service import PromotionService
from .sweep_service import ExpirySweeper
from .tour_service import TourService
from .waitlist_service import WaitlistService

__all__ = [
    "AvailabilityService",
    "compute_remaining_seats",
    "BookingService",
    "LogOnlyNotifier",
    "Notifier",
    "ResendNotifier",
    "notify_safely",
    "PromotionService",
    "ExpirySweeper",
    "TourService",
    "WaitlistService",
]
