"""Property-based tests for seat capacity invariants."""

import asyncio
from uuid import UUID

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from norseman_booking.core.database import Base
from norseman_booking.core.exceptions import CapacityExceededError
from norseman_booking.models import Booking, BookingStatus, Participant, Tour
from norseman_booking.schemas.booking import ParticipantInput, PublicBookingRequest
from norseman_booking.schemas.waitlist import JoinWaitlistRequest
from norseman_booking.services.availability_service import AvailabilityService, compute_remaining_seats
from norseman_booking.services.booking_service import BookingService
from norseman_booking.services.notification_service import LogOnlyNotifier
from norseman_booking.services.promotion_service import PromotionService
from norseman_booking.services.waitlist_service import WaitlistService

# Strategies for generating test data
capacities = st.integers(min_value=1, max_value=500)
seat_counts = st.integers(min_value=0, max_value=1000)
booking_counts = st.integers(min_value=1, max_value=100)
operations = st.lists(
    st.tuples(
        st.sampled_from(["book", "pay", "wait", "promote"]),
        st.integers(min_value=1, max_value=4),
    ),
    max_size=15,
)


@given(total=capacities, bookings=booking_counts, seats=seat_counts)
def test_remaining_is_never_negative_or_above_capacity(total, bookings, seats):
    remaining = compute_remaining_seats(total, bookings, seats, None)

    assert 0 <= remaining <= total
    assert remaining == max(0, total - seats)


@given(total=capacities, stored=st.integers(min_value=-5, max_value=500))
def test_tour_without_confirmed_bookings_is_fully_available(total, stored):
    assert compute_remaining_seats(total, 0, 0, stored) == total


@given(stored=st.one_of(st.none(), st.integers(min_value=-50, max_value=500)))
def test_legacy_tour_without_confirmed_bookings_reports_stored_value(stored):
    assert compute_remaining_seats(None, 0, 0, stored) == max(0, stored or 0)


@given(
    stored=st.one_of(st.none(), st.integers(min_value=-50, max_value=500)),
    bookings=booking_counts,
    seats=seat_counts,
)
def test_legacy_tour_loses_seats_to_confirmed_bookings(stored, bookings, seats):
    remaining = compute_remaining_seats(None, bookings, seats, stored)

    assert remaining == max(0, (stored or 0) - seats)
    assert remaining <= max(0, stored or 0)


def _people(count: int) -> list[ParticipantInput]:
    return [
        ParticipantInput(
            name=f"Deltaker {i}",
            email=f"deltaker{i}@example.no",
            telefon="99999999",
            sos_navn="Ola Nordmann",
            sos_telefon="88888888",
        )
        for i in range(count)
    ]


async def _run_operations(total_seats: int, steps: list[tuple[str, int]]) -> None:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    notifier = LogOnlyNotifier()

    try:
        async with factory() as session:
            tour = Tour(title="Egenskapstur", price=1000, total_seats=total_seats, seats_available=total_seats)
            session.add(tour)
            await session.commit()
            tour_id = tour.id

            availability_service = AvailabilityService(session)
            booking_ids: list[UUID] = []

            for index, (operation, value) in enumerate(steps):
                before = await availability_service.get_remaining_seats(tour_id)

                if operation == "book":
                    try:
                        response = await BookingService(session).create_public_booking(
                            tour_id, PublicBookingRequest(participants=_people(value))
                        )
                        booking_ids.append(UUID(response.booking_id))
                        assert value <= before.remaining_seats
                    except CapacityExceededError:
                        assert value > before.remaining_seats
                elif operation == "pay" and booking_ids:
                    await BookingService(session).confirm_payment(booking_ids[value % len(booking_ids)])
                elif operation == "wait":
                    await WaitlistService(session, notifier).join_waitlist(
                        tour_id, JoinWaitlistRequest(name=f"Venter {index}", email=f"venter{index}@example.no")
                    )
                elif operation == "promote":
                    result = await PromotionService(session, notifier).promote_once(tour_id)
                    if result.promoted:
                        assert before.remaining_seats > 0

                after = await availability_service.get_remaining_seats(tour_id)
                stored = await session.scalar(select(Tour.seats_available).where(Tour.id == tour_id))

                confirmed = await session.scalar(
                    select(func.count(Participant.id))
                    .join(Booking, Participant.booking_id == Booking.id)
                    .where(
                        Booking.tour_id == tour_id,
                        Booking.status.in_([BookingStatus.BETALT, BookingStatus.DELVIS_BETALT]),
                    )
                )

                assert 0 <= after.remaining_seats <= total_seats
                assert stored == after.remaining_seats
                assert stored == max(0, total_seats - confirmed)
    finally:
        await engine.dispose()


@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(total_seats=st.integers(min_value=1, max_value=6), steps=operations)
def test_cached_seats_track_bookings(total_seats, steps):
    asyncio.run(_run_operations(total_seats, steps))
