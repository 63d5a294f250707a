import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = "StaySync"
    # Core settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Auth & Session
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "staysync_session")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./staysync.db")

    # Outbound iCal feed
    FEED_PRODID: str = os.getenv("FEED_PRODID", "-//StaySync//Hotel Management//EN")
    FEED_UID_DOMAIN: str = os.getenv("FEED_UID_DOMAIN", "staysync.local")
    FEED_TIMEZONE: str = os.getenv("FEED_TIMEZONE", "Africa/Lagos")
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "NGN").upper()

    # Inbound OTA sync
    OTA_FETCH_TIMEOUT_SECONDS: float = float(os.getenv("OTA_FETCH_TIMEOUT_SECONDS", "15"))

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    RATE_LIMIT_DEFAULT: str = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
    RATE_LIMIT_SYNC: str = os.getenv("RATE_LIMIT_SYNC", "10/minute")

settings = Settings()
