"""Shared fixtures: an in-memory database and a few hotel records."""

import os

# Must be set before staysync.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from staysync.db import Base
from staysync.models import Booking, BookingStatus, Hotel, Room, RoomStatus, User, UserRole


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def hotel(db):
    h = Hotel(name="Lagoon View", slug="lagoon-view", currency="NGN")
    db.add(h)
    db.commit()
    db.refresh(h)
    return h


@pytest.fixture
def rooms(db, hotel):
    occupied = Room(hotel_id=hotel.id, number="101", type="Deluxe", status=RoomStatus.OCCUPIED.value)
    free = Room(hotel_id=hotel.id, number="102", type="Standard", status=RoomStatus.AVAILABLE.value)
    db.add_all([occupied, free])
    db.commit()
    return occupied, free


@pytest.fixture
def owner(db, hotel):
    user = User(email="owner@lagoonview.ng", role=UserRole.OWNER.value, hotel_id=hotel.id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def local_booking(db, hotel, rooms):
    b = Booking(
        hotel_id=hotel.id,
        room_id=rooms[0].id,
        guest_name="Ada Obi",
        guest_email="ada@example.com",
        guest_phone="+2348011112222",
        checkin_date=datetime(2026, 3, 1, 14, 0),
        checkout_date=datetime(2026, 3, 4, 11, 0),
        total_amount=Decimal("150000.00"),
        status=BookingStatus.CONFIRMED,
        created_at=datetime(2026, 1, 10, 9, 30),
    )
    db.add(b)
    db.commit()
    db.refresh(b)
    return b
