"""Unit tests for waitlist promotion."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from norseman_booking.core.database import utcnow
from norseman_booking.models import Booking, BookingStatus, Tour
from norseman_booking.schemas.waitlist import PromotionSkipReason
from norseman_booking.services.promotion_service import PromotionService


async def _queue(make_booking, tour, *names):
    start = utcnow() - timedelta(hours=1)
    entries = []
    for offset, name in enumerate(names):
        entries.append(
            await make_booking(
                tour,
                BookingStatus.VENTELISTE,
                participants=0,
                navn=name,
                created_at=start + timedelta(minutes=offset),
            )
        )
    return entries


@pytest.mark.asyncio
async def test_full_tour_promotes_nobody(test_session, make_tour, make_booking, notifier):
    tour = await make_tour(total_seats=1, seats_available=0)
    await make_booking(tour, BookingStatus.BETALT, participants=1)
    (waiter,) = await _queue(make_booking, tour, "Siri Vik")

    result = await PromotionService(test_session, notifier).promote_once(tour.id)

    assert result.promoted is False
    assert result.reason == PromotionSkipReason.NO_REMAINING_SEATS
    assert result.message == "Ingen ledige plasser på turen."
    await test_session.refresh(waiter)
    assert waiter.status == BookingStatus.VENTELISTE
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_empty_waitlist(test_session, make_tour, notifier):
    tour = await make_tour(total_seats=4)

    result = await PromotionService(test_session, notifier).promote_once(tour.id)

    assert result.promoted is False
    assert result.reason == PromotionSkipReason.NO_WAITLIST


@pytest.mark.asyncio
async def test_head_of_queue_gets_held_reservation(test_session, make_tour, make_booking, notifier):
    tour = await make_tour(total_seats=2, title="Kjeragbolten")
    await make_booking(tour, BookingStatus.BETALT, participants=1)
    first, second = await _queue(make_booking, tour, "Siri Vik", "Per Hansen")
    now = utcnow().replace(microsecond=0)

    result = await PromotionService(test_session, notifier).promote_once(tour.id, now=now)

    assert result.promoted is True
    assert result.booking_id == str(first.id)
    assert result.navn == "Siri Vik"
    assert result.epost == "siri@example.no"
    assert result.notified_new_first is True

    await test_session.refresh(first)
    assert first.status == BookingStatus.IKKE_BETALT
    assert first.reservation_expires_at == now + timedelta(hours=48)
    assert first.reservation_notified_at == now
    assert first.waitlist_promoted_at == now

    await test_session.refresh(second)
    assert second.status == BookingStatus.VENTELISTE

    # A held reservation does not occupy a seat
    await test_session.refresh(tour)
    assert tour.seats_available == 1

    assert notifier.subjects_for("siri@example.no") == ["Plassen din er holdt av: Kjeragbolten"]
    assert notifier.subjects_for("per@example.no") == ["Du er først i køen: Kjeragbolten"]


@pytest.mark.asyncio
async def test_last_in_queue_promoted_without_new_first(test_session, make_tour, make_booking, notifier):
    tour = await make_tour(total_seats=3)
    (only,) = await _queue(make_booking, tour, "Siri Vik")

    result = await PromotionService(test_session, notifier).promote_once(tour.id)

    assert result.promoted is True
    assert result.booking_id == str(only.id)
    assert result.notified_new_first is False
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_promotion(
    test_session, make_tour, make_booking, failing_notifier
):
    tour = await make_tour(total_seats=1)
    first, _ = await _queue(make_booking, tour, "Siri Vik", "Per Hansen")

    result = await PromotionService(test_session, failing_notifier).promote_once(tour.id)

    assert result.promoted is True
    assert result.notified_new_first is False
    assert failing_notifier.attempts == 2
    await test_session.refresh(first)
    assert first.status == BookingStatus.IKKE_BETALT


@pytest.mark.asyncio
async def test_unknown_tour_reports_error(test_session, notifier):
    result = await PromotionService(test_session, notifier).promote_once(uuid4())

    assert result.promoted is False
    assert result.reason == PromotionSkipReason.ERROR
    assert result.error == "Fant ikke turen. Prøv igjen senere."
    assert result.to_json() == {
        "promoted": False,
        "reason": "error",
        "error": "Fant ikke turen. Prøv igjen senere.",
        "message": "Fant ikke turen. Prøv igjen senere.",
    }


@pytest.mark.asyncio
async def test_drain_respects_iteration_cap(test_session, make_tour, make_booking, notifier):
    tour = await make_tour(total_seats=1)
    await _queue(make_booking, tour, "Anne Berg", "Bjorn Dahl", "Cato Eng")
    tour_id = tour.id

    promoted = await PromotionService(test_session, notifier).drain(tour_id, max_iterations=2)

    assert promoted == 2
    result = await test_session.execute(
        select(Booking.navn).where(Booking.tour_id == tour_id, Booking.status == BookingStatus.VENTELISTE)
    )
    assert list(result.scalars()) == ["Cato Eng"]


@pytest.mark.asyncio
async def test_drain_promotes_whole_queue_while_a_seat_is_free(
    test_session, make_tour, make_booking, notifier
):
    tour = await make_tour(total_seats=1)
    await _queue(make_booking, tour, "Anne Berg", "Bjorn Dahl", "Cato Eng")

    promoted = await PromotionService(test_session, notifier).drain(tour.id)

    assert promoted == 3
    assert await PromotionService(test_session, notifier).drain(tour.id) == 0


@pytest.mark.asyncio
async def test_drain_on_full_tour_promotes_nobody(test_session, make_tour, make_booking, notifier):
    tour = await make_tour(total_seats=2, seats_available=0)
    await make_booking(tour, BookingStatus.DELVIS_BETALT, participants=2)
    await _queue(make_booking, tour, "Anne Berg")

    assert await PromotionService(test_session, notifier).drain(tour.id) == 0
    stored = await test_session.scalar(select(Tour.seats_available).where(Tour.id == tour.id))
    assert stored == 0
