"""Package model definition."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class Package(Base):
    """Package entity representing an admin-defined travel offering."""

    __tablename__ = "packages"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Route and dates
    from_location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    to_location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    # Pricing
    base_price: Mapped[float] = mapped_column(Float, nullable=False)
    includes_food: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    includes_accommodation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    food_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    accommodation_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Foreign key to the admin who created the package
    created_by_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_package_base_price_non_negative"),
        CheckConstraint("food_price >= 0", name="ck_package_food_price_non_negative"),
        CheckConstraint("accommodation_price >= 0", name="ck_package_accommodation_price_non_negative"),
        CheckConstraint("start_date < end_date", name="ck_package_dates_ordered"),
    )

    # Relationships
    creator: Mapped["User | None"] = relationship("User", back_populates="packages")
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="package",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Package(id={self.id}, route='{self.from_location} -> {self.to_location}', "
            f"start_date={self.start_date}, end_date={self.end_date})>"
        )
