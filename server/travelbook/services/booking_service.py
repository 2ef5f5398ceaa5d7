"""Booking service for business logic operations."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import NotFoundError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.package import Package
from ..models.user import User
from ..schemas.booking import BookingFilters, BookingStatusFilter, CreateBookingRequest
from ..schemas.package import PackageStatus
from .lifecycle import classify_period
from .package_service import PackageService, parse_uuid, status_clause
from .pricing import quote_price

logger = logging.getLogger(__name__)

EXPLICIT_STATUSES = {status.value for status in BookingStatus}
PERIOD_STATUSES = {status.value for status in PackageStatus}


def booking_status_condition(status: BookingStatusFilter, now: datetime):
    """
    Match bookings whose explicit status equals the label, or whose
    package dates classify to it.
    """
    clauses = []
    if status.value in EXPLICIT_STATUSES:
        clauses.append(Booking.status == status.value)
    if status.value in PERIOD_STATUSES:
        clauses.append(status_clause(PackageStatus(status.value), now))
    return or_(*clauses)


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.package_service = PackageService(db)

    @staticmethod
    def _select_loaded():
        """Select bookings with package, package creator and user eagerly loaded."""
        return (
            select(Booking)
            .join(Package, Booking.package_id == Package.id)
            .options(
                selectinload(Booking.package).selectinload(Package.creator),
                selectinload(Booking.user),
            )
            .execution_options(populate_existing=True)
        )

    async def create_booking(self, request: CreateBookingRequest, user: User) -> Booking:
        """
        Book a package, pricing the selected services.

        Args:
            request: Booking creation request
            user: Booking user

        Returns:
            Created booking with package and user loaded

        Raises:
            NotFoundError: If package not found
        """
        package = await self.package_service.get_package_or_raise(request.package_id)

        selected = request.selected_services
        quote = quote_price(
            base_price=package.base_price,
            included_food=package.includes_food,
            included_accommodation=package.includes_accommodation,
            food_price=package.food_price,
            accommodation_price=package.accommodation_price,
            selected_food=selected.food if selected else None,
            selected_accommodation=selected.accommodation if selected else None,
        )

        booking = Booking(
            package_id=package.id,
            user_id=user.id,
            food=quote.food,
            accommodation=quote.accommodation,
            total_price=quote.total_price,
            status=BookingStatus.ACCEPTED.value,
        )

        self.db.add(booking)
        await self.db.commit()

        metrics_collector.record_booking_created(quote.total_price)
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "package_id": str(package.id),
                "user_id": str(user.id),
                "food": quote.food,
                "accommodation": quote.accommodation,
                "total_price": quote.total_price,
            }
        )

        return await self.get_booking_or_raise(booking.id)

    async def get_booking_or_raise(self, booking_id: UUID | str) -> Booking:
        """
        Get booking by ID or raise NotFoundError.

        Raises:
            NotFoundError: If booking not found
        """
        if not isinstance(booking_id, UUID):
            booking_id = parse_uuid(booking_id, "booking")

        result = await self.db.execute(self._select_loaded().where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def list_user_bookings(
        self,
        user: User,
        status: Optional[BookingStatusFilter] = None,
        now: Optional[datetime] = None,
    ) -> list[Booking]:
        """The user's bookings, newest first."""
        now = now or datetime.utcnow()
        stmt = self._select_loaded().where(Booking.user_id == user.id)
        if status is not None:
            stmt = stmt.where(booking_status_condition(status, now))

        result = await self.db.execute(stmt.order_by(Booking.booking_date.desc()))
        return list(result.scalars().all())

    async def list_bookings(
        self,
        filters: BookingFilters,
        now: Optional[datetime] = None,
    ) -> list[Booking]:
        """All bookings matching the filters, newest first."""
        now = now or datetime.utcnow()
        stmt = self._select_loaded()

        if filters.status is not None:
            stmt = stmt.where(booking_status_condition(filters.status, now))
        if filters.user_id:
            stmt = stmt.where(Booking.user_id == parse_uuid(filters.user_id, "user"))
        if filters.package_id:
            stmt = stmt.where(Booking.package_id == parse_uuid(filters.package_id, "package"))

        result = await self.db.execute(stmt.order_by(Booking.booking_date.desc()))
        return list(result.scalars().all())

    async def update_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """
        Set a booking's explicit status.

        Raises:
            NotFoundError: If booking not found
        """
        booking = await self.get_booking_or_raise(booking_id)
        previous = booking.status

        booking.status = status.value
        await self.db.commit()

        metrics_collector.record_booking_status_change(status.value)
        logger.info(
            "Booking status updated",
            extra={
                "booking_id": str(booking.id),
                "previous_status": str(previous),
                "status": status.value,
            }
        )

        return await self.get_booking_or_raise(booking.id)

    async def get_analytics(self, now: Optional[datetime] = None, top: int = 5) -> dict:
        """
        Booking totals, top spenders and bookings per package status.

        Cancelled bookings are counted in the total but excluded from
        revenue and from the top-user ranking.
        """
        now = now or datetime.utcnow()
        not_cancelled = Booking.status != BookingStatus.CANCELLED.value

        total_bookings = (await self.db.execute(select(func.count(Booking.id)))).scalar_one()
        total_revenue = (
            await self.db.execute(select(func.coalesce(func.sum(Booking.total_price), 0)).where(not_cancelled))
        ).scalar_one()

        bookings_count = func.count(Booking.id).label("bookings_count")
        total_spent = func.coalesce(func.sum(Booking.total_price), 0).label("total_spent")
        top_stmt = (
            select(User.id, User.name, User.email, bookings_count, total_spent)
            .join(Booking, Booking.user_id == User.id)
            .where(not_cancelled)
            .group_by(User.id, User.name, User.email)
            .order_by(total_spent.desc(), bookings_count.desc())
            .limit(top)
        )
        top_users = [
            {
                "id": str(row.id),
                "name": row.name,
                "email": row.email,
                "bookings_count": row.bookings_count,
                "total_spent": float(row.total_spent),
            }
            for row in (await self.db.execute(top_stmt)).all()
        ]

        per_package_stmt = (
            select(Package.start_date, Package.end_date, func.count(Booking.id))
            .join(Booking, Booking.package_id == Package.id)
            .group_by(Package.id, Package.start_date, Package.end_date)
        )
        status_counts = {status.value: 0 for status in PackageStatus}
        for start_date, end_date, count in (await self.db.execute(per_package_stmt)).all():
            status_counts[classify_period(start_date, end_date, now).value] += count

        return {
            "top_users": top_users,
            "total_bookings": total_bookings,
            "total_revenue": float(total_revenue),
            "status_counts": status_counts,
        }
