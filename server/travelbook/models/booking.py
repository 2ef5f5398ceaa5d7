"""Booking model definition."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .package import Package
    from .user import User


class BookingStatus(str, Enum):
    """Explicit booking status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """Booking entity representing a user's reservation against a package."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign keys
    package_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("packages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Selected services
    food: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accommodation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    total_price: Mapped[float] = mapped_column(Float, nullable=False)

    # Bookings are accepted on creation
    status: Mapped[BookingStatus] = mapped_column(
        String(16),
        nullable=False,
        default=BookingStatus.ACCEPTED.value,
        index=True
    )
    booking_date: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
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
        CheckConstraint(
            "status IN ('pending', 'accepted', 'cancelled', 'completed')",
            name="ck_booking_status_valid"
        ),
    )

    # Relationships
    package: Mapped["Package"] = relationship("Package", back_populates="bookings")
    user: Mapped["User"] = relationship("User", back_populates="bookings")

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, package_id={self.package_id}, user_id={self.user_id}, "
            f"total_price={self.total_price}, status={self.status})>"
        )
