import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from .config import settings

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema(bind=None):
    """
    Lightweight, best-effort schema adjustments for environments created before OTA sync.
    - Ensure the OTA columns exist on bookings
    - Ensure one booking per (hotel, external uid) via a unique index
    Never fails app startup; problems are logged.
    """
    bind = bind or engine
    url = str(bind.url)
    try:
        with bind.begin() as conn:
            if url.startswith("sqlite"):
                res = conn.exec_driver_sql("PRAGMA table_info(bookings);")
                col_names = [row[1] for row in res]
                if "ota_platform" not in col_names:
                    conn.exec_driver_sql("ALTER TABLE bookings ADD COLUMN ota_platform VARCHAR(50);")
                if "external_uid" not in col_names:
                    conn.exec_driver_sql("ALTER TABLE bookings ADD COLUMN external_uid VARCHAR(255);")
                if "external_modified_at" not in col_names:
                    conn.exec_driver_sql("ALTER TABLE bookings ADD COLUMN external_modified_at DATETIME;")
                conn.exec_driver_sql(
                    "CREATE INDEX IF NOT EXISTS ix_bookings_hotel_id ON bookings(hotel_id);"
                )
                # SQLite: unique index works like constraint; NULL uids stay unconstrained
                conn.exec_driver_sql(
                    "CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_hotel_external_uid ON bookings(hotel_id, external_uid);"
                )
            else:
                # Postgres-compatible add-if-missing
                for ddl in [
                    "ALTER TABLE bookings ADD COLUMN IF NOT EXISTS ota_platform VARCHAR(50);",
                    "ALTER TABLE bookings ADD COLUMN IF NOT EXISTS external_uid VARCHAR(255);",
                    "ALTER TABLE bookings ADD COLUMN IF NOT EXISTS external_modified_at TIMESTAMP;",
                    "CREATE INDEX IF NOT EXISTS ix_bookings_hotel_id ON bookings(hotel_id);",
                    "CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_hotel_external_uid ON bookings(hotel_id, external_uid);",
                ]:
                    conn.exec_driver_sql(ddl)
    except Exception:
        logger.warning("Best-effort schema update failed", exc_info=True)
