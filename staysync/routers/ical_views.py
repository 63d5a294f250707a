import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..limiter import limiter
from ..models import Hotel, Room, User
from ..security import require_user
from ..services.booking_store import SqlBookingStore
from ..services.ical_feed import generate_feed
from ..services.ota_sync import sync_ota_bookings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calendar-sync"])

ICAL_MEDIA_TYPE = "text/calendar; charset=utf-8"

# ==== Schemas ====

class OTASyncIn(BaseModel):
    platform: str = Field(min_length=1, max_length=50)
    ical_url: str = Field(alias="icalUrl", min_length=1)

    class Config:
        populate_by_name = True

class OTASyncOut(BaseModel):
    synced: int
    errors: List[str]

# ==== Outbound feed ====

@router.get("/hotels/{hotel_id}/calendar.ics", response_class=Response)
def hotel_calendar_feed(hotel_id: int, db: Session = Depends(get_db)):
    """Public iCal feed of a hotel's bookings, for OTAs and calendar apps."""
    hotel = db.get(Hotel, hotel_id)
    if not hotel:
        raise HTTPException(status_code=404, detail="Hotel not found")
    rooms_map = {r.id: r for r in db.query(Room).filter(Room.hotel_id == hotel.id).all()}
    bookings = SqlBookingStore(db).bookings_for_hotel(hotel.id)
    body = generate_feed(hotel, bookings, rooms_map.get)
    return Response(
        content=body,
        media_type=ICAL_MEDIA_TYPE,
        headers={"Content-Disposition": f'inline; filename="hotel-{hotel.id}.ics"'},
    )

# ==== Inbound OTA sync ====

@router.post("/api/v1/hotels/{hotel_id}/ota-sync", response_model=OTASyncOut)
@limiter.limit(settings.RATE_LIMIT_SYNC)
def hotel_ota_sync(
    request: Request,
    hotel_id: int,
    payload: OTASyncIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    hotel = db.get(Hotel, hotel_id)
    if not hotel or not user.can_manage(hotel.id):
        raise HTTPException(status_code=404, detail="Hotel not found")
    logger.info("User %s started %s sync for hotel %s", user.id, payload.platform.upper(), hotel.id)
    # Partial success is reported in the body, never as an HTTP error
    result = sync_ota_bookings(hotel.id, payload.platform, payload.ical_url, SqlBookingStore(db))
    return OTASyncOut(synced=result.synced, errors=result.errors)
