"""Date-range status classification for packages and bookings."""

from datetime import datetime
from typing import Optional

from ..schemas.package import PackageStatus


def classify_period(
    start_date: datetime,
    end_date: datetime,
    now: Optional[datetime] = None,
) -> PackageStatus:
    """
    Classify a date range relative to now.

    Returns:
        COMPLETED if the range ended before now, ACTIVE if now falls
        inside it (bounds inclusive), UPCOMING otherwise.
    """
    now = now or datetime.utcnow()
    if end_date < now:
        return PackageStatus.COMPLETED
    if start_date <= now <= end_date:
        return PackageStatus.ACTIVE
    return PackageStatus.UPCOMING


def booking_status(
    explicit_status: Optional[str],
    package_start: Optional[datetime],
    package_end: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Date-derived booking status, or the explicit one when no package dates are known."""
    if package_start is None or package_end is None:
        return explicit_status
    return classify_period(package_start, package_end, now).value


def display_status(
    explicit_status: Optional[str],
    derived_status: Optional[str] = None,
    package_start: Optional[datetime] = None,
    package_end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Resolve the status shown for a booking.

    Precedence: explicit status, then the derived booking status, then a
    classification of the package dates.
    """
    if explicit_status:
        return explicit_status
    if derived_status:
        return derived_status
    if package_start is not None and package_end is not None:
        return classify_period(package_start, package_end, now).value
    return None
