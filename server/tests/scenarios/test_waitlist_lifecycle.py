"""End-to-end booking and waitlist flows through the HTTP API and the sweep."""

from datetime import timedelta
from uuid import UUID

import pytest
from sqlalchemy import select

from norseman_booking.models import Booking, BookingStatus, Tour
from norseman_booking.services.sweep_service import ExpirySweeper


async def _remaining(client, tour_id) -> int:
    response = await client.get(f"/api/tours/{tour_id}/availability")
    assert response.status_code == 200
    return response.json()["remainingSeats"]


@pytest.mark.asyncio
async def test_unpaid_booking_takes_seats_only_after_payment(test_client, make_tour, participant_payload):
    tour = await make_tour(total_seats=10)

    created = await test_client.post(f"/api/tours/{tour.id}/bookings", json=participant_payload(3))
    assert created.status_code == 201
    assert await _remaining(test_client, tour.id) == 10

    paid = await test_client.post(
        "/api/webhooks/letsreg",
        json={"referenceId": created.json()["bookingId"], "status": "COMPLETED"},
    )
    assert paid.status_code == 200
    assert await _remaining(test_client, tour.id) == 7


@pytest.mark.asyncio
async def test_waitlist_from_sold_out_to_sweep_promotion(
    test_client, test_session, make_tour, make_booking, admin_headers, notifier
):
    tour = await make_tour(total_seats=1, seats_available=0, title="Romsdalseggen")
    tour_id = tour.id
    confirmed = await make_booking(tour, BookingStatus.BETALT, participants=1, navn="Kari Nordmann")
    confirmed_id = confirmed.id

    # Sold out: two people queue up
    assert await _remaining(test_client, tour_id) == 0
    first = await test_client.post(
        f"/api/tours/{tour_id}/waitlist", json={"name": "Siri Vik", "email": "siri@example.no"}
    )
    second = await test_client.post(
        f"/api/tours/{tour_id}/waitlist", json={"name": "Per Hansen", "email": "per@example.no"}
    )
    assert first.status_code == 201
    assert first.json()["position"] == 1
    assert second.json()["position"] == 2
    first_id = UUID(first.json()["bookingId"])
    second_id = UUID(second.json()["bookingId"])

    # The confirmed booking is cancelled; nobody is promoted automatically
    cancelled = await test_client.patch(
        f"/api/admin/bookings/{confirmed_id}/status", json={"status": "kansellert"}, headers=admin_headers
    )
    assert cancelled.status_code == 200
    assert await _remaining(test_client, tour_id) == 1

    # One manual promotion moves the head of the queue into a held reservation
    promoted = await test_client.post(f"/api/tours/{tour_id}/waitlist/promote", headers=admin_headers)
    assert promoted.status_code == 200
    assert promoted.json()["bookingId"] == str(first_id)
    assert promoted.json()["notifiedNewFirst"] is True

    held = await test_session.scalar(select(Booking).where(Booking.id == first_id))
    await test_session.refresh(held)
    assert held.status == BookingStatus.IKKE_BETALT
    assert held.waitlist_promoted_at is not None
    assert held.reservation_expires_at - held.waitlist_promoted_at == timedelta(hours=48)
    assert notifier.subjects_for("per@example.no") == [
        "Venteliste bekreftet: Romsdalseggen",
        "Du er først i køen: Romsdalseggen",
    ]

    # The hold lapses; one sweep frees the seat and hands it to the next in line
    sweep_time = held.reservation_expires_at + timedelta(minutes=1)
    result = await ExpirySweeper(test_session, notifier).run(now=sweep_time)

    assert result.expired_reservations_deleted == 1
    assert result.total_promoted == 1
    assert result.per_tour[0].tour_id == str(tour_id)

    remaining_ids = set(
        (await test_session.execute(select(Booking.id).where(Booking.tour_id == tour_id))).scalars()
    )
    assert first_id not in remaining_ids
    next_held = await test_session.scalar(select(Booking).where(Booking.id == second_id))
    await test_session.refresh(next_held)
    assert next_held.status == BookingStatus.IKKE_BETALT
    assert next_held.reservation_expires_at == sweep_time + timedelta(hours=48)

    stored = await test_session.scalar(select(Tour.seats_available).where(Tour.id == tour_id))
    assert stored == 1
    assert await _remaining(test_client, tour_id) == 1
