import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

import requests

from ..config import settings
from ..models import BookingStatus
from .currency import get_currency_code
from .ical import CalendarEvent, EventStatus, as_utc, parse_feed

logger = logging.getLogger(__name__)

UNKNOWN_GUEST = "Unknown Guest"
DEFAULT_ROOM_TYPE = "Standard"

# Labelled description lines, as written by the outbound feed
_EMAIL_RE = re.compile(r"Email:[ \t]*([^\\\n]*)")
_PHONE_RE = re.compile(r"Phone:[ \t]*([^\\\n]*)")
_ROOM_RE = re.compile(r"Room:[ \t]*([^\\\n]*)")
_TOTAL_RE = re.compile(r"Total:[ \t]*([^\d\n]*?)[ \t]*(\d[\d,]*(?:\.\d+)?)")

# One sync at a time per hotel within this process
_hotel_locks: dict[int, threading.Lock] = {}
_hotel_locks_guard = threading.Lock()


@dataclass
class OTABookingCandidate:
    external_id: str
    platform: str
    guest_name: str
    guest_email: str
    guest_phone: str
    check_in: datetime
    check_out: datetime
    room_type: str
    total_amount: Decimal
    currency: str
    status: BookingStatus
    last_modified: datetime


@dataclass
class SyncResult:
    synced: int = 0
    errors: list[str] = field(default_factory=list)


def _labelled(pattern: re.Pattern, text: str) -> str:
    m = pattern.search(text)
    return m.group(1).strip() if m else ""


def _total(text: str) -> tuple[Decimal, str]:
    m = _TOTAL_RE.search(text)
    if not m:
        return Decimal("0"), settings.DEFAULT_CURRENCY
    try:
        amount = Decimal(m.group(2).replace(",", ""))
    except InvalidOperation:
        amount = Decimal("0")
    return amount, get_currency_code(m.group(1)) or settings.DEFAULT_CURRENCY


def extract_booking(event: CalendarEvent, platform: str) -> OTABookingCandidate:
    """Map a parsed OTA event to a booking candidate. Cancelled events never get here."""
    guest_name = event.summary.split(" - ", 1)[0].strip() or UNKNOWN_GUEST
    phone = _labelled(_PHONE_RE, event.description)
    if phone.upper() == "N/A":
        phone = ""
    room_type = _labelled(_ROOM_RE, event.description)
    if not room_type or room_type.upper() == "TBD":
        room_type = DEFAULT_ROOM_TYPE
    amount, currency = _total(event.description)
    return OTABookingCandidate(
        external_id=event.uid,
        platform=platform.upper(),
        guest_name=guest_name,
        guest_email=_labelled(_EMAIL_RE, event.description),
        guest_phone=phone,
        check_in=event.start,
        check_out=event.end,
        room_type=room_type,
        total_amount=amount,
        currency=currency,
        status=BookingStatus.CONFIRMED if event.status == EventStatus.CONFIRMED else BookingStatus.PENDING,
        last_modified=event.last_modified,
    )


def fetch_feed(url: str) -> str:
    """GET an OTA calendar. Raises requests exceptions on network errors and non-2xx replies."""
    response = requests.get(
        url,
        timeout=settings.OTA_FETCH_TIMEOUT_SECONDS,
        headers={"Accept": "text/calendar, text/plain;q=0.9, */*;q=0.1"},
    )
    response.raise_for_status()
    # iCalendar is UTF-8 unless stated otherwise; many OTAs omit the charset
    return response.content.decode("utf-8", errors="ignore")


def _hotel_lock(hotel_id: int) -> threading.Lock:
    with _hotel_locks_guard:
        return _hotel_locks.setdefault(hotel_id, threading.Lock())


def _reconcile(hotel_id: int, platform: str, event: CalendarEvent, store) -> bool:
    """Create or update the booking for one event. Returns True when the store was written."""
    candidate = extract_booking(event, platform)
    existing = store.find_by_external_uid(hotel_id, candidate.external_id)
    if existing is None:
        store.create_from_candidate(hotel_id, candidate)
        logger.debug("Created booking for %s event %s", candidate.platform, event.uid)
        return True
    # Bookings never synced before compare against their creation time
    baseline = existing.external_modified_at or existing.created_at
    if baseline is None or as_utc(event.last_modified) > as_utc(baseline):
        store.update_from_candidate(existing, candidate)
        logger.debug("Updated booking %s from %s event %s", existing.id, candidate.platform, event.uid)
        return True
    return False


def sync_ota_bookings(hotel_id: int, platform: str, feed_url: str, store) -> SyncResult:
    """
    Pull an OTA iCal feed into the hotel's bookings.

    A failed fetch yields a single "Sync error" entry. Per-event failures are collected as
    "Event <uid>: <message>" and never stop the batch, so partial success is a normal result.
    Cancelled events are skipped without touching the store.
    """
    result = SyncResult()
    with _hotel_lock(hotel_id):
        try:
            events = parse_feed(fetch_feed(feed_url))
        except Exception as e:
            logger.warning("OTA sync for hotel %s from %s failed: %s", hotel_id, feed_url, e)
            result.errors.append(f"Sync error: {e}")
            return result

        for event in events:
            if event.status == EventStatus.CANCELLED:
                continue
            try:
                if _reconcile(hotel_id, platform, event, store):
                    result.synced += 1
            except Exception as e:
                logger.warning("OTA sync for hotel %s: event %s failed: %s", hotel_id, event.uid, e)
                result.errors.append(f"Event {event.uid}: {e}")

    logger.info(
        "OTA sync for hotel %s (%s): %d of %d events synced, %d errors",
        hotel_id, platform.upper(), result.synced, len(events), len(result.errors),
    )
    return result
