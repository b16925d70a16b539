"""Public URLs embedded in API responses and emails."""

from uuid import UUID

from ..core.config import settings

PAYMENT_SIMULATOR_PATH = "/turer/orders/payment/simulator"


def payment_url(booking_id: UUID) -> str:
    """Checkout link for a booking; falls back to the local payment simulator."""
    if settings.letsreg_base_url:
        return f"{settings.letsreg_base_url}?ref={booking_id}"
    return f"{settings.site_url or ''}{PAYMENT_SIMULATOR_PATH}?ref={booking_id}"


def booking_page_url(tour_id: UUID) -> str:
    return f"{settings.site_url or ''}/turer/{tour_id}/bestill"
