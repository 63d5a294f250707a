import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional

from dateutil import parser as dtparse

logger = logging.getLogger(__name__)

CRLF = "\r\n"

_LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")
_TIMESTAMP_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?$")
_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_ESCAPE_RE = re.compile(r"([,;\\])")
_UNESCAPE_RE = re.compile(r"\\([\\;,nN])")

_TEXT_FIELDS = {"SUMMARY": "summary", "DESCRIPTION": "description", "LOCATION": "location"}
_TIME_FIELDS = {"DTSTART": "start", "DTEND": "end", "CREATED": "created", "LAST-MODIFIED": "last_modified"}

REQUIRED_FIELDS = (
    "uid",
    "summary",
    "description",
    "start",
    "end",
    "location",
    "status",
    "created",
    "last_modified",
)


class EventStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    TENTATIVE = "TENTATIVE"
    CANCELLED = "CANCELLED"


@dataclass
class CalendarEvent:
    """One VEVENT. Timestamps are timezone-aware UTC datetimes."""

    uid: str
    summary: str
    description: str
    start: datetime
    end: datetime
    location: str
    status: EventStatus
    created: datetime
    last_modified: datetime


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ---------- formatting ----------

def format_timestamp(dt: datetime) -> str:
    return as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def escape_text(text: str) -> str:
    # Reserved characters first, so the backslash of "\n" is not escaped again.
    # Every line break (CRLF, CR, LF) becomes "\n"; a bare CR would start a new property line.
    return _LINE_BREAK_RE.sub(r"\\n", _ESCAPE_RE.sub(r"\\\1", text))


def format_event(event: CalendarEvent, stamp: Optional[datetime] = None) -> str:
    """Render one VEVENT block. DTSTAMP is the formatting time unless ``stamp`` is given."""
    stamp = stamp or datetime.now(timezone.utc)
    return CRLF.join([
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{format_timestamp(stamp)}",
        f"DTSTART:{format_timestamp(event.start)}",
        f"DTEND:{format_timestamp(event.end)}",
        f"SUMMARY:{escape_text(event.summary)}",
        f"DESCRIPTION:{escape_text(event.description)}",
        f"LOCATION:{escape_text(event.location)}",
        f"STATUS:{EventStatus(event.status).value}",
        f"CREATED:{format_timestamp(event.created)}",
        f"LAST-MODIFIED:{format_timestamp(event.last_modified)}",
        "END:VEVENT",
    ])


# ---------- parsing ----------

def unescape_text(text: str) -> str:
    def _sub(m: re.Match) -> str:
        ch = m.group(1)
        return "\n" if ch in "nN" else ch

    return _UNESCAPE_RE.sub(_sub, text)


def parse_timestamp(value: str) -> Optional[datetime]:
    """
    Parse DTSTART/DTEND/CREATED/LAST-MODIFIED values. Supports:
    - 20250105T120000Z (UTC; a missing Z is read as UTC too)
    - 20250105 (DATE, midnight UTC)
    - anything python-dateutil understands, as a fallback
    Returns None when the value cannot be read.
    """
    v = value.strip()
    try:
        m = _TIMESTAMP_RE.match(v) or _DATE_RE.match(v)
        if m:
            return datetime(*(int(p) for p in m.groups()), tzinfo=timezone.utc)
        return as_utc(dtparse.parse(v))
    except (ValueError, OverflowError):
        return None


def _iter_lines(text: str) -> Iterator[str]:
    # Unfold continuation lines (a leading space or tab continues the previous line)
    prev = None
    for raw in _LINE_BREAK_RE.split(text):
        if raw[:1] in (" ", "\t") and prev is not None:
            prev += raw[1:]
        else:
            if prev is not None:
                yield prev
            prev = raw
    if prev is not None:
        yield prev


def _set_field(cur: dict, key: str, value: str) -> None:
    if key == "UID":
        cur["uid"] = value
    elif key in _TEXT_FIELDS:
        cur[_TEXT_FIELDS[key]] = unescape_text(value)
    elif key in _TIME_FIELDS:
        dt = parse_timestamp(value)
        if dt is None:
            logger.debug("Unreadable %s value %r", key, value)
        else:
            cur[_TIME_FIELDS[key]] = dt
    elif key == "STATUS":
        try:
            cur["status"] = EventStatus(value.strip().upper())
        except ValueError:
            logger.debug("Unknown STATUS value %r", value)


def _build_event(cur: dict) -> Optional[CalendarEvent]:
    missing = [name for name in REQUIRED_FIELDS if name not in cur]
    if missing:
        logger.debug("Dropping VEVENT %s: missing %s", cur.get("uid", "<no uid>"), ", ".join(missing))
        return None
    return CalendarEvent(**cur)


def parse_feed(document: str) -> List[CalendarEvent]:
    """
    Parse the VEVENT blocks of an iCalendar document.

    Lines outside VEVENT blocks (calendar headers, VTIMEZONE, ...) are ignored, as are
    nested components such as VALARM. Events missing any of the required fields are
    dropped rather than reported, so one bad event never spoils the rest of the feed.
    """
    if not isinstance(document, str):
        raise TypeError(f"iCalendar document must be str, not {type(document).__name__}")

    events: List[CalendarEvent] = []
    cur: Optional[dict] = None
    nested = 0
    for line in _iter_lines(document):
        marker = line.strip().upper()
        if marker == "BEGIN:VEVENT":
            if cur is not None:
                logger.debug("Dropping unterminated VEVENT %s", cur.get("uid", "<no uid>"))
            cur = {}
            nested = 0
            continue
        if cur is None:
            continue
        if marker == "END:VEVENT":
            event = _build_event(cur)
            if event is not None:
                events.append(event)
            cur = None
            continue
        if marker.startswith("BEGIN:"):
            nested += 1
            continue
        if marker.startswith("END:") and nested:
            nested -= 1
            continue
        if nested or ":" not in line:
            continue
        # Split on first colon; left part may include parameters
        key, value = line.split(":", 1)
        _set_field(cur, key.split(";")[0].strip().upper(), value)
    return events
