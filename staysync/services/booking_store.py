from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Booking, Room, RoomStatus
from .ical import as_utc

if TYPE_CHECKING:
    from .ota_sync import OTABookingCandidate


def _naive_utc(dt):
    # DateTime columns hold naive UTC, like datetime.utcnow defaults
    return as_utc(dt).replace(tzinfo=None) if dt is not None else None


class SqlBookingStore:
    """Booking persistence used by the OTA sync, over one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def bookings_for_hotel(self, hotel_id: int) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.hotel_id == hotel_id)
            .order_by(Booking.checkin_date.asc(), Booking.id.asc())
            .all()
        )

    def find_by_external_uid(self, hotel_id: int, external_uid: str) -> Optional[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.hotel_id == hotel_id, Booking.external_uid == external_uid)
            .first()
        )

    def _available_room_id(self, hotel_id: int) -> Optional[int]:
        room = (
            self.db.query(Room)
            .filter(Room.hotel_id == hotel_id, Room.status == RoomStatus.AVAILABLE.value)
            .order_by(Room.id.asc())
            .first()
        )
        return room.id if room else None

    def _apply(self, b: Booking, candidate: "OTABookingCandidate") -> None:
        b.guest_name = candidate.guest_name
        b.guest_email = candidate.guest_email
        b.guest_phone = candidate.guest_phone or None
        b.checkin_date = _naive_utc(candidate.check_in)
        b.checkout_date = _naive_utc(candidate.check_out)
        b.total_amount = candidate.total_amount
        b.status = candidate.status
        b.ota_platform = candidate.platform
        b.external_modified_at = _naive_utc(candidate.last_modified)

    def _commit(self, b: Booking) -> Booking:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(b)
        return b

    def create_from_candidate(self, hotel_id: int, candidate: "OTABookingCandidate") -> Booking:
        b = Booking(hotel_id=hotel_id, room_id=self._available_room_id(hotel_id), external_uid=candidate.external_id)
        self._apply(b, candidate)
        self.db.add(b)
        return self._commit(b)

    def update_from_candidate(self, booking: Booking, candidate: "OTABookingCandidate") -> Booking:
        self._apply(booking, candidate)
        return self._commit(booking)
