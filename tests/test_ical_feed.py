"""Tests for the hotel bookings .ics feed."""

from datetime import datetime, timezone
from decimal import Decimal

from staysync.config import settings
from staysync.models import Booking, BookingStatus, Hotel, Room
from staysync.services.ical import CRLF, EventStatus, parse_feed
from staysync.services.ical_feed import booking_uid, format_amount, generate_feed
from staysync.services.ota_sync import extract_booking

STAMP = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


def _hotel(**overrides):
    fields = {"id": 1, "name": "Lagoon View", "slug": "lagoon-view", "currency": "NGN"}
    fields.update(overrides)
    return Hotel(**fields)


def _room(**overrides):
    fields = {"id": 5, "hotel_id": 1, "number": "12", "type": "Deluxe"}
    fields.update(overrides)
    return Room(**fields)


def _booking(**overrides):
    fields = {
        "id": 7,
        "hotel_id": 1,
        "room_id": 5,
        "guest_name": "Ada Obi",
        "guest_email": "ada@example.com",
        "guest_phone": "+2348011112222",
        "checkin_date": datetime(2026, 3, 1, 14, 0),
        "checkout_date": datetime(2026, 3, 4, 11, 0),
        "total_amount": Decimal("125000.50"),
        "status": BookingStatus.CONFIRMED,
        "created_at": datetime(2026, 1, 10, 9, 30),
    }
    fields.update(overrides)
    return Booking(**fields)


def _feed(bookings, rooms=None, hotel=None, stamp=STAMP):
    rooms_map = {r.id: r for r in (rooms if rooms is not None else [_room()])}
    return generate_feed(hotel or _hotel(), bookings, rooms_map.get, stamp=stamp)


class TestCalendarStructure:
    def test_header(self):
        lines = _feed([]).split(CRLF)
        assert lines[:8] == [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{settings.FEED_PRODID}",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "X-WR-CALNAME:Lagoon View - Bookings",
            "X-WR-CALDESC:Hotel bookings for Lagoon View",
            f"X-WR-TIMEZONE:{settings.FEED_TIMEZONE}",
        ]

    def test_ends_with_vcalendar(self):
        assert _feed([_booking()]).endswith("\r\nEND:VCALENDAR")

    def test_no_bookings_no_events(self):
        assert "BEGIN:VEVENT" not in _feed([])

    def test_one_event_per_booking(self):
        content = _feed([_booking(id=1), _booking(id=2), _booking(id=3)])
        assert content.count("BEGIN:VEVENT") == 3
        assert len(parse_feed(content)) == 3

    def test_crlf_only(self):
        content = _feed([_booking()])
        assert "\n" not in content.replace("\r\n", "")


class TestEvents:
    def test_uid_derived_from_booking_id(self):
        (event,) = parse_feed(_feed([_booking(id=42)]))
        assert event.uid == f"booking-42@{settings.FEED_UID_DOMAIN}"
        assert event.uid == booking_uid(42)

    def test_uids_stable_across_generations(self):
        bookings = [_booking(id=1), _booking(id=2)]
        first = [e.uid for e in parse_feed(_feed(bookings, stamp=STAMP))]
        second = [e.uid for e in parse_feed(_feed(bookings, stamp=datetime(2026, 6, 1, tzinfo=timezone.utc)))]
        assert first == second

    def test_summary_and_location(self):
        (event,) = parse_feed(_feed([_booking()]))
        assert event.summary == "Ada Obi - Room 12"
        assert event.location == "Lagoon View"

    def test_unknown_room(self):
        (event,) = parse_feed(_feed([_booking(room_id=None)], rooms=[]))
        assert event.summary == "Ada Obi - Room TBD"
        assert "Room: TBD" in event.description

    def test_description_lines(self):
        (event,) = parse_feed(_feed([_booking()]))
        assert event.description.split("\n") == [
            "Guest: Ada Obi",
            "Email: ada@example.com",
            "Phone: +2348011112222",
            "Room: Deluxe",
            "Total: ₦125,000.50",
        ]

    def test_carriage_return_in_guest_name_keeps_uid(self):
        (event,) = parse_feed(_feed([_booking(guest_name="Ada\rUID:spoofed")]))
        assert event.uid == booking_uid(7)
        assert event.summary == "Ada\nUID:spoofed - Room 12"
        assert event.description.startswith("Guest: Ada\nUID:spoofed\nEmail: ada@example.com")

    def test_missing_phone(self):
        (event,) = parse_feed(_feed([_booking(guest_phone=None)]))
        assert "Phone: N/A" in event.description

    def test_status_mapping(self):
        bookings = [
            _booking(id=1, status=BookingStatus.CONFIRMED),
            _booking(id=2, status=BookingStatus.PENDING),
            _booking(id=3, status=BookingStatus.CANCELLED),
        ]
        statuses = [e.status for e in parse_feed(_feed(bookings))]
        assert statuses == [EventStatus.CONFIRMED, EventStatus.TENTATIVE, EventStatus.TENTATIVE]

    def test_stay_dates(self):
        (event,) = parse_feed(_feed([_booking()]))
        assert event.start == datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)
        assert event.end == datetime(2026, 3, 4, 11, 0, tzinfo=timezone.utc)
        assert event.created == event.last_modified == datetime(2026, 1, 10, 9, 30, tzinfo=timezone.utc)

    def test_missing_stay_dates_fall_back_to_now(self):
        (event,) = parse_feed(_feed([_booking(checkin_date=None, checkout_date=None)]))
        assert event.start == STAMP
        assert event.end == STAMP

    def test_dtstamp_is_generation_time(self):
        assert "DTSTAMP:20260201T120000Z" in _feed([_booking()])


class TestFormatAmount:
    def test_known_symbol(self):
        assert format_amount(Decimal("1234567"), "NGN") == "₦1,234,567.00"

    def test_unknown_currency_uses_code(self):
        assert format_amount(10, "XOF") == "XOF 10.00"

    def test_missing_amount(self):
        assert format_amount(None, "USD") == "$0.00"


def test_feed_reimports_as_same_booking():
    (event,) = parse_feed(_feed([_booking()]))
    candidate = extract_booking(event, "direct")
    assert candidate.external_id == booking_uid(7)
    assert candidate.guest_name == "Ada Obi"
    assert candidate.guest_email == "ada@example.com"
    assert candidate.guest_phone == "+2348011112222"
    assert candidate.room_type == "Deluxe"
    assert candidate.total_amount == Decimal("125000.50")
    assert candidate.currency == "NGN"
    assert candidate.status == BookingStatus.CONFIRMED
