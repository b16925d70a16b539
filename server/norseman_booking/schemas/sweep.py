"""Expiry sweep result schemas."""

from typing import List

from pydantic import Field

from .common import CamelModel


class TourPromotionCount(CamelModel):
    """Promotions made for one tour during a sweep."""

    tour_id: str
    promoted: int


class SweepResult(CamelModel):
    """Summary of one expiry sweep invocation."""

    ok: bool = True
    expired_reservations_deleted: int = 0
    total_promoted: int = 0
    tours_touched: int = 0
    per_tour: List[TourPromotionCount] = Field(default_factory=list)
