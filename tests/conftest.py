"""Pytest fixtures — SQLite database per test, API client and data helpers."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from partake.database import Base, get_db
from partake.main import app

# Import all models so they register with Base.metadata
from partake.models.user import User                  # noqa: F401
from partake.models.event import Event, EventStatus   # noqa: F401
from partake.models.attendee import EventAttendee     # noqa: F401
from partake.models.contribution import ContributionItem  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # WAL lets readers run while one writer commits (threaded tests)
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Service-level helpers
# ---------------------------------------------------------------------------
def make_user(db, name: str = "Test User") -> User:
    user = User(display_name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_event(db, organizer: User, max_attendees: int = 2, cost: str = "0.00",
               status: EventStatus = EventStatus.active, title: str = "Test Event") -> Event:
    ev = Event(
        title=title,
        organizer_id=organizer.user_id,
        max_attendees=max_attendees,
        cost_per_person=Decimal(cost),
        status=status,
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    return ev


def minutes(n: int) -> datetime:
    """A deterministic instant `n` minutes after T0."""
    return T0 + timedelta(minutes=n)


# ---------------------------------------------------------------------------
# API helpers: return the response JSON dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test User") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"display_name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, organizer_id: str, max_attendees: int = 2,
                      cost: str = "0.00", status: str = "ACTIVE", title: str = "Test Event") -> dict:
    """Helper — POST /api/events and return response JSON."""
    resp = client.post("/api/events/", json={
        "title": title,
        "organizer_id": organizer_id,
        "max_attendees": max_attendees,
        "cost_per_person": cost,
        "status": status,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def join_event(client: TestClient, event_id: int, user_id: str) -> dict:
    """Helper — POST /api/attendees/join and return response JSON."""
    resp = client.post("/api/attendees/join", json={"event_id": event_id, "user_id": user_id})
    assert resp.status_code == 201, resp.text
    return resp.json()
