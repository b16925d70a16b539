"""Unit tests for the waitlist queue and registration."""

from datetime import timedelta
from uuid import uuid4

import pytest

from norseman_booking.core.database import utcnow
from norseman_booking.core.exceptions import TourNotFoundError
from norseman_booking.models import BookingStatus
from norseman_booking.schemas.waitlist import JoinWaitlistRequest
from norseman_booking.services.waitlist_service import WAITLIST_NOTE, WaitlistService


@pytest.mark.asyncio
async def test_waitlist_is_ordered_by_creation_time(test_session, make_tour, make_booking):
    tour = await make_tour(total_seats=1)
    start = utcnow()
    late = await make_booking(tour, BookingStatus.VENTELISTE, participants=0, navn="Late Comer",
                              created_at=start + timedelta(minutes=5))
    early = await make_booking(tour, BookingStatus.VENTELISTE, participants=0, navn="Early Bird",
                               created_at=start)
    await make_booking(tour, BookingStatus.IKKE_BETALT, participants=1, navn="Not Queued",
                       created_at=start - timedelta(days=1))

    service = WaitlistService(test_session)
    queue = await service.get_waitlist(tour.id)

    assert [b.id for b in queue] == [early.id, late.id]
    assert (await service.get_first_waitlist_entry(tour.id)).id == early.id
    assert await service.get_waitlist_position(early) == 1
    assert await service.get_waitlist_position(late) == 2


@pytest.mark.asyncio
async def test_empty_waitlist_has_no_first_entry(test_session, make_tour):
    tour = await make_tour()

    assert await WaitlistService(test_session).get_first_waitlist_entry(tour.id) is None


@pytest.mark.asyncio
async def test_tours_with_waitlist(test_session, make_tour, make_booking):
    waiting = await make_tour(title="Full tur")
    quiet = await make_tour(title="Rolig tur")
    await make_booking(waiting, BookingStatus.VENTELISTE, participants=0)
    await make_booking(waiting, BookingStatus.VENTELISTE, participants=0, navn="Per Hansen")
    await make_booking(quiet, BookingStatus.BETALT)

    tours = await WaitlistService(test_session).get_tours_with_waitlist()

    assert tours == [waiting.id]


@pytest.mark.asyncio
async def test_join_waitlist_creates_entry_and_sends_emails(test_session, make_tour, notifier):
    tour = await make_tour(title="Trolltunga")

    response = await WaitlistService(test_session, notifier).join_waitlist(
        tour.id, JoinWaitlistRequest(name="  Siri Vik ", email="siri@example.no")
    )

    assert response.position == 1
    entry = await WaitlistService(test_session).get_first_waitlist_entry(tour.id)
    assert str(entry.id) == response.booking_id
    assert entry.status == BookingStatus.VENTELISTE
    assert entry.belop == 0
    assert entry.telefon == ""
    assert entry.navn == "Siri Vik"
    assert entry.notater == WAITLIST_NOTE

    assert notifier.subjects_for("siri@example.no") == [
        "Venteliste bekreftet: Trolltunga",
        "Du er først i køen: Trolltunga",
    ]


@pytest.mark.asyncio
async def test_second_joiner_is_not_told_they_are_first(test_session, make_tour, notifier):
    tour = await make_tour(title="Romsdalseggen")
    service = WaitlistService(test_session, notifier)

    await service.join_waitlist(tour.id, JoinWaitlistRequest(name="En", email="en@example.no"))
    second = await service.join_waitlist(tour.id, JoinWaitlistRequest(name="To", email="to@example.no"))

    assert second.position == 2
    assert notifier.subjects_for("to@example.no") == ["Venteliste bekreftet: Romsdalseggen"]


@pytest.mark.asyncio
async def test_rejoining_with_same_email_returns_existing_entry(test_session, make_tour, notifier):
    tour = await make_tour()
    service = WaitlistService(test_session, notifier)

    first = await service.join_waitlist(tour.id, JoinWaitlistRequest(name="Siri", email="siri@example.no"))
    again = await service.join_waitlist(tour.id, JoinWaitlistRequest(name="Siri", email="SIRI@example.no"))

    assert again.booking_id == first.booking_id
    assert again.position == 1
    assert len(await service.get_waitlist(tour.id)) == 1


@pytest.mark.asyncio
async def test_join_waitlist_survives_email_failure(test_session, make_tour, failing_notifier):
    tour = await make_tour()
    failing = failing_notifier

    response = await WaitlistService(test_session, failing).join_waitlist(
        tour.id, JoinWaitlistRequest(name="Siri", email="siri@example.no")
    )

    assert response.position == 1
    assert failing.attempts == 2


@pytest.mark.asyncio
async def test_join_waitlist_for_unknown_tour(test_session):
    with pytest.raises(TourNotFoundError):
        await WaitlistService(test_session).join_waitlist(
            uuid4(), JoinWaitlistRequest(name="Siri", email="siri@example.no")
        )
