import os

# Must be set before stagebook.database is imported
os.environ.setdefault("PYTEST_RUN", "1")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stagebook.models import BookingStatus, RiderTemplate, User, UserRole
from stagebook.models.base import BaseModel
from stagebook.schemas import BookingCreate
from stagebook.services import booking_lifecycle


def make_session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    BaseModel.metadata.create_all(engine)
    return sessionmaker(bind=engine)


@pytest.fixture
def Session():
    return make_session_factory()


@pytest.fixture
def db(Session):
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    """Records notify(recipient_id, kind, payload) calls."""
    return Mock()


def add_user(db, email, role, **extra):
    user = User(
        email=email,
        password="x",
        first_name=extra.pop("first_name", email.split("@")[0].title()),
        last_name=extra.pop("last_name", "Test"),
        role=role,
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def artist(db):
    return add_user(db, "artist@test.com", UserRole.ARTIST, organization_name="The Echoes")


@pytest.fixture
def venue(db):
    return add_user(db, "venue@test.com", UserRole.VENUE, organization_name="The Blue Room")


@pytest.fixture
def outsider(db):
    return add_user(db, "other@test.com", UserRole.VENUE)


@pytest.fixture
def template(db, artist):
    rider = RiderTemplate(
        artist_id=artist.id,
        template_name="Club show",
        performance_type="Live band",
        performance_duration=90,
        number_of_performers=4,
        pa_system_required=False,
        microphone_type="SM58",
        monitor_mix_required=True,
        di_boxes_needed=2,
        catering_provided=True,
        dietary_restrictions=["vegetarian"],
        deposit_percentage=Decimal("30"),
    )
    db.add(rider)
    db.commit()
    db.refresh(rider)
    return rider


@pytest.fixture
def booking(db, artist, venue, template, notifier):
    booking = booking_lifecycle.create_booking(
        db,
        venue,
        BookingCreate(
            artist_id=artist.id,
            event_date=date(2026, 2, 15),
            event_time="20:00",
            venue_name="The Blue Room",
            venue_address="12 Long Street, Cape Town",
            total_fee=Decimal("5000"),
            deposit_amount=Decimal("1500"),
            rider_template_id=template.id,
        ),
        notifier,
    )
    notifier.reset_mock()
    return booking


@pytest.fixture
def confirmed_booking(db, booking, artist, notifier):
    booking_lifecycle.update_status(db, booking.id, artist.id, BookingStatus.CONFIRMED, notifier)
    notifier.reset_mock()
    return booking
