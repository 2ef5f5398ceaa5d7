"""Booking router for booking operations."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user, require_admin
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..models.user import User
from ..schemas.booking import (
    Booking,
    BookingAnalytics,
    BookingFilters,
    CreateBookingRequest,
    UpdateBookingStatusRequest,
)
from ..services.booking_service import BookingService
from .converters import booking_to_schema
from .forms import parse_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/booking", tags=["booking"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
USER_DEPENDENCY = Depends(get_current_user)
ADMIN_DEPENDENCY = Depends(require_admin)


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_booking(
    request: CreateBookingRequest,
    current_user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> Booking:
    """
    Book a package.

    Services omitted from `selectedServices` default to what the package
    includes; the total price is adjusted for every difference.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.create_booking(request, current_user)
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "package_id": request.package_id,
                "user_id": str(current_user.id),
                "error": str(e)
            },
            exc_info=True
        )
        raise InternalServerError() from e

    return booking_to_schema(booking)


@router.get("", response_model=list[Booking])
@router.get("/", response_model=list[Booking], include_in_schema=False)
async def get_my_bookings(
    booking_status: Optional[str] = Query(None, alias="status"),
    current_user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> list[Booking]:
    """The authenticated user's bookings, newest first."""
    filters = parse_model(BookingFilters, {"status": booking_status})
    booking_service = BookingService(db)
    bookings = await booking_service.list_user_bookings(current_user, filters.status)
    return [booking_to_schema(booking) for booking in bookings]


@router.get("/package", response_model=list[Booking])
async def get_all_bookings(
    booking_status: Optional[str] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None, alias="userId"),
    package_id: Optional[str] = Query(None, alias="packageId"),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> list[Booking]:
    """All bookings, optionally filtered by status, user or package. Admin only."""
    filters = parse_model(
        BookingFilters,
        {"status": booking_status, "user_id": user_id, "package_id": package_id},
    )
    booking_service = BookingService(db)
    bookings = await booking_service.list_bookings(filters)

    logger.debug(
        "Bookings listed",
        extra={"admin_id": str(admin.id), "count": len(bookings)}
    )
    return [booking_to_schema(booking) for booking in bookings]


@router.get("/analytics", response_model=BookingAnalytics)
async def get_booking_analytics(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingAnalytics:
    """Top users, totals and bookings per package status. Admin only."""
    booking_service = BookingService(db)
    analytics = await booking_service.get_analytics()
    return BookingAnalytics.model_validate(analytics)


@router.put("/{booking_id}", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    request: UpdateBookingStatusRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> Booking:
    """Set a booking's explicit status. Admin only."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.update_status(booking_id, request.status)
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in booking status update",
            extra={
                "booking_id": booking_id,
                "status": request.status.value,
                "admin_id": str(admin.id),
                "error": str(e)
            },
            exc_info=True
        )
        raise InternalServerError() from e

    return booking_to_schema(booking)
