"""Booking-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from ..models.booking import BookingStatus
from .common import CamelModel, ServiceSelection, UserSummary
from .package import Package


class BookingStatusFilter(str, Enum):
    """Any label a booking can be filtered on, explicit or date-derived."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    UPCOMING = "upcoming"
    ACTIVE = "active"


class SelectedServicesRequest(CamelModel):
    """Service overrides chosen at booking time; omitted flags use the package defaults."""

    food: Optional[bool] = Field(None, description="Override for food")
    accommodation: Optional[bool] = Field(None, description="Override for accommodation")


class CreateBookingRequest(CamelModel):
    """Request schema for creating a booking."""

    package_id: str = Field(..., description="Package to book")
    selected_services: Optional[SelectedServicesRequest] = Field(None, description="Service overrides")


class UpdateBookingStatusRequest(CamelModel):
    """Request schema for changing a booking's explicit status."""

    status: BookingStatus = Field(..., description="New status")


class BookingFilters(CamelModel):
    """Query filters for the admin booking listing."""

    status: Optional[BookingStatusFilter] = Field(None, description="Explicit or date-derived status")
    user_id: Optional[str] = Field(None, description="Only bookings made by this user")
    package_id: Optional[str] = Field(None, description="Only bookings for this package")


class Booking(CamelModel):
    """Booking response schema."""

    id: str = Field(..., alias="_id", description="Unique booking ID")
    package: Package = Field(..., description="Booked package")
    user: UserSummary = Field(..., description="Booking user")
    selected_services: ServiceSelection = Field(..., description="Final selected services")
    total_price: float = Field(..., description="Computed total price")
    status: BookingStatus = Field(..., description="Explicit status")
    booking_status: str = Field(..., description="Status derived from the package dates")
    display_status: str = Field(..., description="Status to show, explicit first")
    booking_date: datetime = Field(..., description="Booking time (ISO 8601)")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update time (ISO 8601)")


class TopUser(CamelModel):
    """User ranked by booking spend."""

    id: str = Field(..., alias="_id", description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    bookings_count: int = Field(..., ge=0, description="Number of bookings")
    total_spent: float = Field(..., description="Sum of booking totals")


class StatusCounts(CamelModel):
    """Bookings per date-derived status of their package."""

    completed: int = Field(0, ge=0)
    active: int = Field(0, ge=0)
    upcoming: int = Field(0, ge=0)


class BookingAnalytics(CamelModel):
    """Admin dashboard booking analytics."""

    top_users: list[TopUser] = Field(..., description="Top users by spend")
    total_bookings: int = Field(..., ge=0, description="Number of bookings")
    total_revenue: float = Field(..., description="Sum of non-cancelled booking totals")
    status_counts: StatusCounts = Field(..., description="Bookings per package status")
