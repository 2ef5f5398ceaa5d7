"""Package service for business logic operations."""

import logging
import math
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking
from ..models.package import Package
from ..models.user import User
from ..schemas.package import (
    PackageData,
    PackageFilters,
    PackageStatus,
    PackageUpdateData,
    SortField,
    SortOrder,
)
from .lifecycle import classify_period
from .media_service import MediaStorage

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    SortField.CREATED_AT: Package.created_at,
    SortField.BASE_PRICE: Package.base_price,
    SortField.START_DATE: Package.start_date,
    SortField.END_DATE: Package.end_date,
    SortField.FROM_LOCATION: Package.from_location,
    SortField.TO_LOCATION: Package.to_location,
}


def parse_uuid(value: str, resource_type: str) -> UUID:
    """Parse an identifier from a request; malformed IDs are reported as not found."""
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(resource_type=resource_type, resource_id=str(value))


def _contains(column, text: str):
    """Case-insensitive substring match with LIKE wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def status_clause(status: PackageStatus, now: datetime):
    """SQL predicate equivalent to classify_period for the given status."""
    if status == PackageStatus.COMPLETED:
        return Package.end_date < now
    if status == PackageStatus.ACTIVE:
        return and_(Package.start_date <= now, Package.end_date >= now)
    return Package.start_date > now


class PackageService:
    """Service for package-related operations."""

    def __init__(self, db: AsyncSession, storage: Optional[MediaStorage] = None):
        self.db = db
        self.storage = storage

    @staticmethod
    def _check_dates(start_date: datetime, end_date: datetime) -> None:
        if start_date >= end_date:
            raise ValidationError(
                detail="End date must be after start date",
                errors={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
            )

    async def create_package(
        self,
        data: PackageData,
        creator: User,
        images: Sequence[UploadFile] = (),
    ) -> Package:
        """
        Create a new package.

        Args:
            data: Validated package fields
            creator: Admin creating the package
            images: Image uploads, at most five

        Returns:
            Created package entity, with its creator loaded

        Raises:
            ValidationError: If the dates are not ordered or an image is rejected
        """
        self._check_dates(data.start_date, data.end_date)

        image_urls = []
        if images and self.storage is not None:
            image_urls = await self.storage.save_package_images(images)

        package = Package(
            from_location=data.from_location,
            to_location=data.to_location,
            start_date=data.start_date,
            end_date=data.end_date,
            base_price=data.base_price,
            includes_food=data.included_services.food,
            includes_accommodation=data.included_services.accommodation,
            food_price=data.food_price,
            accommodation_price=data.accommodation_price,
            description=data.description,
            images=image_urls,
            created_by_id=creator.id,
        )

        try:
            self.db.add(package)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Package creation failed due to integrity constraint",
                extra={"from_location": data.from_location, "to_location": data.to_location, "error": str(e)}
            )
            if self.storage is not None:
                self.storage.delete_many(image_urls)
            raise ConflictError(detail="Package creation failed due to constraint violation")
        except Exception:
            await self.db.rollback()
            if self.storage is not None:
                self.storage.delete_many(image_urls)
            raise

        metrics_collector.record_package_created()
        logger.info(
            "Package created successfully",
            extra={
                "package_id": str(package.id),
                "from_location": package.from_location,
                "to_location": package.to_location,
                "images": len(image_urls),
                "created_by": str(creator.id),
            }
        )

        return await self.get_package_or_raise(package.id)

    async def get_package_by_id(self, package_id: UUID) -> Optional[Package]:
        """
        Get package by ID.

        Returns:
            Package with its creator loaded if found, None otherwise
        """
        stmt = (
            select(Package)
            .options(selectinload(Package.creator))
            .where(Package.id == package_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_package_or_raise(self, package_id: UUID | str) -> Package:
        """
        Get package by ID or raise NotFoundError.

        Raises:
            NotFoundError: If package not found
        """
        if not isinstance(package_id, UUID):
            package_id = parse_uuid(package_id, "package")

        package = await self.get_package_by_id(package_id)
        if not package:
            logger.warning("Package not found", extra={"package_id": str(package_id)})
            raise NotFoundError(resource_type="package", resource_id=str(package_id))
        return package

    async def list_packages(
        self,
        filters: PackageFilters,
        now: Optional[datetime] = None,
    ) -> tuple[list[Package], int]:
        """
        List packages matching the filters.

        Returns:
            The requested page of packages and the total number matching
        """
        now = now or datetime.utcnow()
        conditions = []

        if filters.from_location:
            conditions.append(_contains(Package.from_location, filters.from_location))
        if filters.to_location:
            conditions.append(_contains(Package.to_location, filters.to_location))
        if filters.start_date is not None:
            conditions.append(Package.start_date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(Package.end_date <= filters.end_date)
        if filters.min_price is not None:
            conditions.append(Package.base_price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Package.base_price <= filters.max_price)
        if filters.status is not None:
            conditions.append(status_clause(filters.status, now))

        count_stmt = select(func.count(Package.id)).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar_one()

        sort_column = SORT_COLUMNS[filters.sort_by]
        if filters.sort_order == SortOrder.ASC:
            ordering = (sort_column.asc(), Package.id.asc())
        else:
            ordering = (sort_column.desc(), Package.id.desc())

        stmt = (
            select(Package)
            .options(selectinload(Package.creator))
            .where(*conditions)
            .order_by(*ordering)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        result = await self.db.execute(stmt)
        packages = list(result.scalars().all())

        logger.debug(
            "Packages listed",
            extra={"total": total, "returned": len(packages), "page": filters.page}
        )
        return packages, total

    @staticmethod
    def page_count(total: int, limit: int) -> int:
        return math.ceil(total / limit) if total else 0

    async def update_package(
        self,
        package_id: str,
        data: PackageUpdateData,
        images: Sequence[UploadFile] = (),
    ) -> Package:
        """
        Apply a partial update.

        New images replace the old set; the old files are deleted once the
        update is committed.

        Raises:
            NotFoundError: If package not found
            ValidationError: If the merged dates are not ordered
        """
        package = await self.get_package_or_raise(package_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        start_date = changes.get("start_date", package.start_date)
        end_date = changes.get("end_date", package.end_date)
        self._check_dates(start_date, end_date)

        services = changes.pop("included_services", None)
        if services is not None:
            package.includes_food = services["food"]
            package.includes_accommodation = services["accommodation"]

        for field, value in changes.items():
            setattr(package, field, value)

        old_images: list[str] = []
        new_images: list[str] = []
        if images and self.storage is not None:
            new_images = await self.storage.save_package_images(images)
            if new_images:
                old_images = list(package.images or [])
                package.images = new_images

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            if new_images:
                self.storage.delete_many(new_images)
            raise

        if old_images and self.storage is not None:
            self.storage.delete_many(old_images)

        logger.info(
            "Package updated successfully",
            extra={
                "package_id": str(package.id),
                "fields": sorted(changes) + (["included_services"] if services is not None else []),
                "images_replaced": bool(old_images),
            }
        )

        return await self.get_package_or_raise(package.id)

    async def delete_package(self, package_id: str) -> None:
        """
        Delete a package, its bookings and its stored images.

        Raises:
            NotFoundError: If package not found
        """
        package = await self.get_package_or_raise(package_id)
        images = list(package.images or [])

        result = await self.db.execute(delete(Booking).where(Booking.package_id == package.id))
        await self.db.delete(package)
        await self.db.commit()

        if images and self.storage is not None:
            self.storage.delete_many(images)

        metrics_collector.record_package_deleted()
        logger.info(
            "Package deleted",
            extra={
                "package_id": str(package.id),
                "bookings_deleted": result.rowcount,
                "images_deleted": len(images),
            }
        )

    async def get_analytics(self, now: Optional[datetime] = None) -> dict:
        """
        Package counts per date-derived status and booking counts per package.

        Returns:
            Dict with `packages_count` and `bookings_per_package` lists
        """
        now = now or datetime.utcnow()

        dates = await self.db.execute(select(Package.start_date, Package.end_date))
        counts = {status: 0 for status in PackageStatus}
        for start_date, end_date in dates.all():
            counts[classify_period(start_date, end_date, now)] += 1

        bookings_count = func.count(Booking.id).label("bookings_count")
        stmt = (
            select(
                Package.id,
                Package.from_location,
                Package.to_location,
                Package.start_date,
                Package.end_date,
                bookings_count,
            )
            .outerjoin(Booking, Booking.package_id == Package.id)
            .group_by(
                Package.id,
                Package.from_location,
                Package.to_location,
                Package.start_date,
                Package.end_date,
            )
            .order_by(bookings_count.desc(), Package.start_date.asc())
        )
        rows = (await self.db.execute(stmt)).all()

        return {
            "packages_count": [
                {"id": status, "count": count} for status, count in counts.items() if count
            ],
            "bookings_per_package": [
                {
                    "id": str(row.id),
                    "bookings_count": row.bookings_count,
                    "package_name": f"{row.from_location} to {row.to_location}",
                    "to_location": row.to_location,
                    "start_date": row.start_date,
                    "end_date": row.end_date,
                }
                for row in rows
            ],
        }
