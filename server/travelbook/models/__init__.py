"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .package import Package
from .user import User, UserRole

__all__ = [
    # Accounts
    "User",
    "UserRole",

    # Catalogue
    "Package",

    # Reservations
    "Booking",
    "BookingStatus",
]
