from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ..config import settings
from ..models import Booking, BookingStatus, Hotel, Room
from .currency import get_currency_symbol
from .ical import CRLF, CalendarEvent, EventStatus, escape_text, format_event

RoomLookup = Callable[[Optional[int]], Optional[Room]]


def booking_uid(booking_id) -> str:
    """Stable VEVENT uid for a local booking, so consumers can re-sync idempotently."""
    return f"booking-{booking_id}@{settings.FEED_UID_DOMAIN}"


def format_amount(amount, currency: str) -> str:
    value = Decimal(str(amount)) if amount is not None else Decimal("0")
    symbol = get_currency_symbol(currency) or f"{currency.upper()} "
    return f"{symbol}{value:,.2f}"


def booking_to_event(hotel: Hotel, booking: Booking, room: Optional[Room], now: datetime) -> CalendarEvent:
    room_number = room.number if room and room.number else "TBD"
    room_type = room.type if room and room.type else "TBD"
    description = "\n".join([
        f"Guest: {booking.guest_name}",
        f"Email: {booking.guest_email or ''}",
        f"Phone: {booking.guest_phone or 'N/A'}",
        f"Room: {room_type}",
        f"Total: {format_amount(booking.total_amount, hotel.currency or settings.DEFAULT_CURRENCY)}",
    ])
    created = booking.created_at or now
    return CalendarEvent(
        uid=booking_uid(booking.id),
        summary=f"{booking.guest_name} - Room {room_number}",
        description=description,
        # Missing stay dates fall back to "now" instead of failing the whole feed
        start=booking.checkin_date or now,
        end=booking.checkout_date or now,
        location=hotel.name,
        status=EventStatus.CONFIRMED if booking.status == BookingStatus.CONFIRMED else EventStatus.TENTATIVE,
        created=created,
        last_modified=created,
    )


def generate_feed(
    hotel: Hotel,
    bookings: Iterable[Booking],
    room_lookup: RoomLookup,
    stamp: Optional[datetime] = None,
) -> str:
    """Build the hotel's bookings calendar (one VEVENT per booking)."""
    now = stamp or datetime.now(timezone.utc)
    name = escape_text(hotel.name)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{settings.FEED_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{name} - Bookings",
        f"X-WR-CALDESC:Hotel bookings for {name}",
        f"X-WR-TIMEZONE:{settings.FEED_TIMEZONE}",
    ]
    for booking in bookings:
        event = booking_to_event(hotel, booking, room_lookup(booking.room_id), now)
        lines.append(format_event(event, stamp=now))
    lines.append("END:VCALENDAR")
    return CRLF.join(lines)
