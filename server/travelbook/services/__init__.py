"""Service layer package."""

from .auth_service import AuthService
from .booking_service import BookingService
from .media_service import MediaStorage, get_media_storage
from .package_service import PackageService

__all__ = [
    "AuthService",
    "BookingService",
    "MediaStorage",
    "PackageService",
    "get_media_storage",
]
