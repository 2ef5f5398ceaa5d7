"""Conversion of ORM entities to response schemas."""

from datetime import datetime
from typing import Optional

from ..models.booking import Booking as BookingModel
from ..models.package import Package as PackageModel
from ..models.user import User as UserModel
from ..schemas.auth import Address, AuthUser, UserProfile
from ..schemas.booking import Booking
from ..schemas.common import ServiceSelection, UserSummary
from ..schemas.package import Package
from ..services.lifecycle import booking_status, classify_period, display_status


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


def user_to_summary(user: Optional[UserModel]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=str(user.id), name=user.name, email=user.email)


def user_to_auth_schema(user: UserModel) -> AuthUser:
    return AuthUser(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=_value(user.role),
        profile_picture=user.profile_picture or "",
    )


def user_to_profile_schema(user: UserModel) -> UserProfile:
    return UserProfile(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=_value(user.role),
        profile_picture=user.profile_picture or "",
        google_linked=bool(user.google_id),
        address=Address(
            street=user.street,
            city=user.city,
            state=user.state,
            zip_code=user.zip_code,
            country=user.country,
        ),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def package_to_schema(package: PackageModel, now: Optional[datetime] = None) -> Package:
    """Convert package model to schema, deriving its status from the dates."""
    return Package(
        id=str(package.id),
        from_location=package.from_location,
        to_location=package.to_location,
        start_date=package.start_date,
        end_date=package.end_date,
        base_price=package.base_price,
        included_services=ServiceSelection(
            food=package.includes_food,
            accommodation=package.includes_accommodation,
        ),
        food_price=package.food_price,
        accommodation_price=package.accommodation_price,
        description=package.description or "",
        images=list(package.images or []),
        created_by=user_to_summary(package.creator),
        status=classify_period(package.start_date, package.end_date, now),
        created_at=package.created_at,
        updated_at=package.updated_at,
    )


def booking_to_schema(booking: BookingModel, now: Optional[datetime] = None) -> Booking:
    """Convert booking model to schema with its derived and display statuses."""
    package = booking.package
    explicit = _value(booking.status)
    derived = booking_status(explicit, package.start_date, package.end_date, now)

    return Booking(
        id=str(booking.id),
        package=package_to_schema(package, now),
        user=user_to_summary(booking.user),
        selected_services=ServiceSelection(food=booking.food, accommodation=booking.accommodation),
        total_price=booking.total_price,
        status=explicit,
        booking_status=derived,
        display_status=display_status(explicit, derived, package.start_date, package.end_date, now),
        booking_date=booking.booking_date,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )
