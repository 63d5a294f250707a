from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from enum import Enum as PyEnum
from sqlalchemy import Integer, String, ForeignKey, Numeric, Enum, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base

if TYPE_CHECKING:
    from .hotel import Hotel
    from .room import Room

class BookingStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # One local booking per external calendar event
        UniqueConstraint("hotel_id", "external_uid", name="uq_bookings_hotel_external_uid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id"), nullable=False, index=True)
    room_id: Mapped[int | None] = mapped_column(ForeignKey("rooms.id"), nullable=True, index=True)
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    guest_phone: Mapped[str | None] = mapped_column(String(50))
    checkin_date: Mapped[datetime | None] = mapped_column(DateTime)
    checkout_date: Mapped[datetime | None] = mapped_column(DateTime)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # OTA sync bookkeeping
    ota_platform: Mapped[str | None] = mapped_column(String(50))
    external_uid: Mapped[str | None] = mapped_column(String(255))
    external_modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    hotel: Mapped["Hotel"] = relationship(back_populates="bookings")
    room: Mapped[Optional["Room"]] = relationship(back_populates="bookings")
