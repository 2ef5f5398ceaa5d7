"""Package router for package management operations."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_admin
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..models.user import User
from ..schemas.common import MessageResponse
from ..schemas.package import (
    Package,
    PackageAnalytics,
    PackageData,
    PackageFilters,
    PackageListResponse,
    PackageUpdateData,
)
from ..services.media_service import MediaStorage, get_media_storage
from ..services.package_service import PackageService
from .converters import package_to_schema
from .forms import parse_json_object, parse_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/packages", tags=["packages"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
STORAGE_DEPENDENCY = Depends(get_media_storage)
ADMIN_DEPENDENCY = Depends(require_admin)
IMAGES_FIELD = File(None, alias="images")


def _package_fields(
    from_location: Optional[str],
    to_location: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    base_price: Optional[str],
    included_services: Optional[str],
    food_price: Optional[str],
    accommodation_price: Optional[str],
    description: Optional[str],
) -> dict[str, Any]:
    """Collect raw form values keyed by schema field name."""
    return {
        "from_location": from_location,
        "to_location": to_location,
        "start_date": start_date,
        "end_date": end_date,
        "base_price": base_price,
        "included_services": parse_json_object(included_services, "includedServices"),
        "food_price": food_price,
        "accommodation_price": accommodation_price,
        "description": description,
    }


@router.post("/create", response_model=Package, status_code=status.HTTP_201_CREATED)
async def create_package(
    from_location: Optional[str] = Form(None, alias="fromLocation"),
    to_location: Optional[str] = Form(None, alias="toLocation"),
    start_date: Optional[str] = Form(None, alias="startDate"),
    end_date: Optional[str] = Form(None, alias="endDate"),
    base_price: Optional[str] = Form(None, alias="basePrice"),
    included_services: Optional[str] = Form(None, alias="includedServices"),
    food_price: Optional[str] = Form(None, alias="foodPrice"),
    accommodation_price: Optional[str] = Form(None, alias="accommodationPrice"),
    description: Optional[str] = Form(None),
    images: Optional[list[UploadFile]] = IMAGES_FIELD,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    storage: MediaStorage = STORAGE_DEPENDENCY,
) -> Package:
    """
    Create a new package.

    Multipart form; `includedServices` is a JSON object string and up to
    five `images` files may be attached.
    """
    data = parse_model(
        PackageData,
        _package_fields(
            from_location, to_location, start_date, end_date, base_price,
            included_services, food_price, accommodation_price, description,
        ),
    )
    package_service = PackageService(db, storage)

    try:
        package = await package_service.create_package(data, admin, images or [])
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in package creation",
            extra={"from_location": from_location, "to_location": to_location, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e

    return package_to_schema(package)


@router.get("/", response_model=PackageListResponse)
async def list_packages(
    from_location: Optional[str] = Query(None, alias="fromLocation"),
    to_location: Optional[str] = Query(None, alias="toLocation"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    package_status: Optional[str] = Query(None, alias="status"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: AsyncSession = DB_DEPENDENCY,
) -> PackageListResponse:
    """List packages with filtering, sorting and pagination."""
    filters = parse_model(
        PackageFilters,
        {
            "from_location": from_location,
            "to_location": to_location,
            "start_date": start_date,
            "end_date": end_date,
            "min_price": min_price,
            "max_price": max_price,
            "status": package_status,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "page": page,
            "limit": limit,
        },
    )
    package_service = PackageService(db)
    packages, total = await package_service.list_packages(filters)

    return PackageListResponse(
        count=len(packages),
        total=total,
        page=filters.page,
        pages=package_service.page_count(total, filters.limit),
        data=[package_to_schema(package) for package in packages],
    )


@router.get("/analytics", response_model=PackageAnalytics)
async def get_package_analytics(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> PackageAnalytics:
    """Packages per status and bookings per package. Admin only."""
    package_service = PackageService(db)
    analytics = await package_service.get_analytics()
    return PackageAnalytics.model_validate(analytics)


@router.get("/{package_id}", response_model=Package)
async def get_package(
    package_id: str,
    db: AsyncSession = DB_DEPENDENCY,
) -> Package:
    """Get a single package."""
    package_service = PackageService(db)
    package = await package_service.get_package_or_raise(package_id)
    return package_to_schema(package)


@router.put("/{package_id}", response_model=Package)
async def update_package(
    package_id: str,
    from_location: Optional[str] = Form(None, alias="fromLocation"),
    to_location: Optional[str] = Form(None, alias="toLocation"),
    start_date: Optional[str] = Form(None, alias="startDate"),
    end_date: Optional[str] = Form(None, alias="endDate"),
    base_price: Optional[str] = Form(None, alias="basePrice"),
    included_services: Optional[str] = Form(None, alias="includedServices"),
    food_price: Optional[str] = Form(None, alias="foodPrice"),
    accommodation_price: Optional[str] = Form(None, alias="accommodationPrice"),
    description: Optional[str] = Form(None),
    images: Optional[list[UploadFile]] = IMAGES_FIELD,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    storage: MediaStorage = STORAGE_DEPENDENCY,
) -> Package:
    """
    Partially update a package. Admin only.

    Uploading images replaces the existing set.
    """
    data = parse_model(
        PackageUpdateData,
        _package_fields(
            from_location, to_location, start_date, end_date, base_price,
            included_services, food_price, accommodation_price, description,
        ),
    )
    package_service = PackageService(db, storage)

    try:
        package = await package_service.update_package(package_id, data, images or [])
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in package update",
            extra={"package_id": package_id, "admin_id": str(admin.id), "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e

    return package_to_schema(package)


@router.delete("/{package_id}", response_model=MessageResponse)
async def delete_package(
    package_id: str,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    storage: MediaStorage = STORAGE_DEPENDENCY,
) -> MessageResponse:
    """Delete a package with its bookings and images. Admin only."""
    package_service = PackageService(db, storage)
    await package_service.delete_package(package_id)

    logger.info("Package removed by admin", extra={"package_id": package_id, "admin_id": str(admin.id)})

    return MessageResponse(message="Package deleted successfully")
