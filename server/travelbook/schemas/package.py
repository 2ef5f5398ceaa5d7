"""Package-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .common import CamelModel, ServiceSelection, UserSummary, UtcDateTime


class PackageStatus(str, Enum):
    """Date-derived package status."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class SortField(str, Enum):
    """Sortable package fields."""
    CREATED_AT = "createdAt"
    BASE_PRICE = "basePrice"
    START_DATE = "startDate"
    END_DATE = "endDate"
    FROM_LOCATION = "fromLocation"
    TO_LOCATION = "toLocation"


class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


class PackageData(CamelModel):
    """Validated fields for creating a package."""

    from_location: str = Field(..., min_length=1, max_length=255, description="Origin")
    to_location: str = Field(..., min_length=1, max_length=255, description="Destination")
    start_date: UtcDateTime = Field(..., description="Trip start (ISO 8601)")
    end_date: UtcDateTime = Field(..., description="Trip end (ISO 8601)")
    base_price: float = Field(..., ge=0, description="Price before service adjustments")
    included_services: ServiceSelection = Field(
        default_factory=ServiceSelection,
        description="Services covered by the base price"
    )
    food_price: float = Field(0, ge=0, description="Food service price")
    accommodation_price: float = Field(0, ge=0, description="Accommodation service price")
    description: str = Field("", max_length=5000, description="Free-form description")


class PackageUpdateData(CamelModel):
    """Validated fields for a partial package update."""

    from_location: Optional[str] = Field(None, min_length=1, max_length=255)
    to_location: Optional[str] = Field(None, min_length=1, max_length=255)
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    base_price: Optional[float] = Field(None, ge=0)
    included_services: Optional[ServiceSelection] = None
    food_price: Optional[float] = Field(None, ge=0)
    accommodation_price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=5000)


class PackageFilters(CamelModel):
    """Query filters for listing packages."""

    from_location: Optional[str] = Field(None, description="Case-insensitive substring of the origin")
    to_location: Optional[str] = Field(None, description="Case-insensitive substring of the destination")
    start_date: Optional[UtcDateTime] = Field(None, description="Packages starting on or after")
    end_date: Optional[UtcDateTime] = Field(None, description="Packages ending on or before")
    min_price: Optional[float] = Field(None, ge=0, description="Minimum base price")
    max_price: Optional[float] = Field(None, ge=0, description="Maximum base price")
    status: Optional[PackageStatus] = Field(None, description="Date-derived status")
    sort_by: SortField = Field(SortField.CREATED_AT, description="Sort field")
    sort_order: SortOrder = Field(SortOrder.DESC, description="Sort direction")
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(10, ge=1, le=100, description="Results per page")


class Package(CamelModel):
    """Package response schema."""

    id: str = Field(..., alias="_id", description="Unique package ID")
    from_location: str = Field(..., description="Origin")
    to_location: str = Field(..., description="Destination")
    start_date: datetime = Field(..., description="Trip start (ISO 8601)")
    end_date: datetime = Field(..., description="Trip end (ISO 8601)")
    base_price: float = Field(..., description="Price before service adjustments")
    included_services: ServiceSelection = Field(..., description="Services covered by the base price")
    food_price: float = Field(..., description="Food service price")
    accommodation_price: float = Field(..., description="Accommodation service price")
    description: str = Field("", description="Free-form description")
    images: list[str] = Field(default_factory=list, description="Image URLs")
    created_by: Optional[UserSummary] = Field(None, description="Creating admin")
    status: PackageStatus = Field(..., description="Date-derived status")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update time (ISO 8601)")


class PackageListResponse(CamelModel):
    """Paginated package listing."""

    success: bool = Field(True, description="Whether the operation succeeded")
    count: int = Field(..., ge=0, description="Number of packages in this page")
    total: int = Field(..., ge=0, description="Number of packages matching the filters")
    page: int = Field(..., ge=1, description="Current page")
    pages: int = Field(..., ge=0, description="Number of pages")
    data: list[Package] = Field(..., description="Packages in this page")


class PackageStatusCount(CamelModel):
    """Number of packages in a date-derived status."""

    id: PackageStatus = Field(..., alias="_id", description="Status")
    count: int = Field(..., ge=0, description="Number of packages")


class PackageBookingCount(CamelModel):
    """Number of bookings made against a package."""

    id: str = Field(..., alias="_id", description="Package ID")
    bookings_count: int = Field(..., ge=0, description="Number of bookings")
    package_name: str = Field(..., description="Route label")
    to_location: str = Field(..., description="Destination")
    start_date: datetime = Field(..., description="Trip start (ISO 8601)")
    end_date: datetime = Field(..., description="Trip end (ISO 8601)")


class PackageAnalytics(CamelModel):
    """Admin dashboard package analytics."""

    packages_count: list[PackageStatusCount] = Field(..., description="Packages per status")
    bookings_per_package: list[PackageBookingCount] = Field(..., description="Bookings per package")
