"""Unit tests for booking service."""

from uuid import uuid4

import pytest

from travelbook.core.exceptions import NotFoundError
from travelbook.models.booking import BookingStatus
from travelbook.schemas.booking import (
    BookingFilters,
    BookingStatusFilter,
    CreateBookingRequest,
    SelectedServicesRequest,
)
from travelbook.services.booking_service import BookingService


def booking_request(package, **services) -> CreateBookingRequest:
    selected = SelectedServicesRequest(**services) if services else None
    return CreateBookingRequest(package_id=str(package.id), selected_services=selected)


@pytest.mark.asyncio
async def test_create_booking_defaults(test_session, make_package, regular_user):
    """Test that a booking without overrides takes the package services at base price."""
    package = await make_package()
    service = BookingService(test_session)

    booking = await service.create_booking(booking_request(package), regular_user)

    assert booking.id is not None
    assert booking.status == BookingStatus.ACCEPTED.value
    assert booking.food is True
    assert booking.accommodation is False
    assert booking.total_price == 1000.0
    assert booking.package.id == package.id
    assert booking.user.id == regular_user.id
    assert booking.booking_date is not None


@pytest.mark.asyncio
async def test_create_booking_with_overrides(test_session, make_package, regular_user):
    package = await make_package()
    service = BookingService(test_session)

    booking = await service.create_booking(
        booking_request(package, food=False, accommodation=True), regular_user
    )

    assert booking.food is False
    assert booking.accommodation is True
    assert booking.total_price == 1100.0


@pytest.mark.asyncio
async def test_create_booking_partial_override(test_session, make_package, regular_user):
    """Test that only the given flag is overridden."""
    package = await make_package()
    service = BookingService(test_session)

    booking = await service.create_booking(booking_request(package, accommodation=True), regular_user)

    assert booking.food is True
    assert booking.total_price == 1200.0


@pytest.mark.asyncio
async def test_create_booking_package_not_found(test_session, regular_user):
    service = BookingService(test_session)

    with pytest.raises(NotFoundError):
        await service.create_booking(CreateBookingRequest(package_id=str(uuid4())), regular_user)


@pytest.mark.asyncio
async def test_list_user_bookings_only_own(test_session, make_package, regular_user, other_user):
    package = await make_package()
    service = BookingService(test_session)
    mine = await service.create_booking(booking_request(package), regular_user)
    await service.create_booking(booking_request(package), other_user)

    bookings = await service.list_user_bookings(regular_user)

    assert [booking.id for booking in bookings] == [mine.id]


@pytest.mark.asyncio
async def test_status_filter_matches_explicit_or_dates(test_session, make_package, regular_user):
    """Test that a status label matches either the stored status or the package dates."""
    upcoming = await make_package(start_offset_days=10)
    active = await make_package(start_offset_days=-1, duration_days=3)
    completed = await make_package(start_offset_days=-10, duration_days=3)
    service = BookingService(test_session)

    upcoming_booking = await service.create_booking(booking_request(upcoming), regular_user)
    active_booking = await service.create_booking(booking_request(active), regular_user)
    completed_booking = await service.create_booking(booking_request(completed), regular_user)
    await service.update_status(str(upcoming_booking.id), BookingStatus.COMPLETED)

    async def ids_for(status):
        return {b.id for b in await service.list_user_bookings(regular_user, BookingStatusFilter(status))}

    assert await ids_for("upcoming") == {upcoming_booking.id}
    assert await ids_for("active") == {active_booking.id}
    assert await ids_for("completed") == {upcoming_booking.id, completed_booking.id}
    assert await ids_for("accepted") == {active_booking.id, completed_booking.id}
    assert await ids_for("cancelled") == set()


@pytest.mark.asyncio
async def test_list_bookings_filters(test_session, make_package, regular_user, other_user):
    first = await make_package()
    second = await make_package(to_location="Porto")
    service = BookingService(test_session)
    await service.create_booking(booking_request(first), regular_user)
    await service.create_booking(booking_request(second), regular_user)
    await service.create_booking(booking_request(first), other_user)

    assert len(await service.list_bookings(BookingFilters())) == 3
    assert len(await service.list_bookings(BookingFilters(user_id=str(regular_user.id)))) == 2

    by_package = await service.list_bookings(
        BookingFilters(user_id=str(regular_user.id), package_id=str(second.id))
    )
    assert len(by_package) == 1
    assert by_package[0].package.to_location == "Porto"


@pytest.mark.asyncio
async def test_list_bookings_malformed_filter(test_session):
    service = BookingService(test_session)

    with pytest.raises(NotFoundError):
        await service.list_bookings(BookingFilters(user_id="nope"))


@pytest.mark.asyncio
async def test_update_status(test_session, make_package, regular_user):
    package = await make_package()
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(package), regular_user)

    updated = await service.update_status(str(booking.id), BookingStatus.CANCELLED)

    assert updated.id == booking.id
    assert updated.status == BookingStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_update_status_not_found(test_session):
    service = BookingService(test_session)

    with pytest.raises(NotFoundError):
        await service.update_status(str(uuid4()), BookingStatus.PENDING)


@pytest.mark.asyncio
async def test_analytics(test_session, make_package, regular_user, other_user):
    """Test totals, revenue without cancellations, and top users by spend."""
    upcoming = await make_package()
    completed = await make_package(start_offset_days=-10, duration_days=3, base_price=400.0)
    service = BookingService(test_session)

    await service.create_booking(booking_request(upcoming), regular_user)
    await service.create_booking(booking_request(completed), regular_user)
    await service.create_booking(booking_request(upcoming, accommodation=True), other_user)
    cancelled = await service.create_booking(booking_request(completed), other_user)
    await service.update_status(str(cancelled.id), BookingStatus.CANCELLED)

    analytics = await service.get_analytics()

    assert analytics["total_bookings"] == 4
    assert analytics["total_revenue"] == 1000.0 + 400.0 + 1200.0
    assert analytics["status_counts"] == {"upcoming": 2, "active": 0, "completed": 2}

    top = analytics["top_users"]
    assert [entry["email"] for entry in top] == [regular_user.email, other_user.email]
    assert top[0]["bookings_count"] == 2
    assert top[0]["total_spent"] == 1400.0
    assert top[1]["bookings_count"] == 1
    assert top[1]["total_spent"] == 1200.0
