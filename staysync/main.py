import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings
from .db import Base, engine, ensure_schema
from .limiter import limiter
from .routers import ical_views

# --- Logging configuration ---
_level = logging.DEBUG if getattr(settings, "DEBUG", False) else logging.INFO
logging.basicConfig(
    level=_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# Align uvicorn loggers with our level (useful under Docker Compose)
for _name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(_name).setLevel(_level)
logger = logging.getLogger("staysync.startup")
logger.info("Starting %s (DEBUG=%s)", settings.APP_NAME, getattr(settings, "DEBUG", False))

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description=(
        f"{settings.APP_NAME}: hotel booking calendars.\n\n"
        "Publishes each hotel's bookings as an iCal feed and pulls OTA iCal feeds "
        "(Booking.com, Airbnb, Expedia, Agoda) into the hotel's bookings."
    ),
    openapi_tags=[
        {
            "name": "calendar-sync",
            "description": "iCal feed export and OTA calendar import.",
        }
    ],
)

@app.on_event("startup")
def startup_event():
    """Creates missing tables and brings older databases up to date."""
    logger.info("Running startup tasks...")
    Base.metadata.create_all(bind=engine)
    ensure_schema()
    logger.info("Startup tasks complete.")


# Add the limiter to the app state
app.state.limiter = limiter
# Add the exception handler for rate limit exceeded errors
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(ical_views.router)

@app.get("/healthz")
@limiter.exempt
def healthz():
    return {"status": "ok"}
