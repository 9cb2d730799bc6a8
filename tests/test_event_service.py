"""
Tests for event and booking services
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.db import Base
from app.core.errors import (
    DanglingReferenceError,
    EmptyCollectionError,
    EventHasBookingsError,
    EventNotFoundError,
    UniqueConstraintViolation,
)
from app.services.booking_service import BookingService
from app.services.event_service import EventService
from app.services.repositories import BOOKINGS, EVENTS, SqlDocumentStore
from app.utils.slug import CounterTokenSource

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_event_service.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

class StaleSlugStore(SqlDocumentStore):
    """Store whose slug lookups miss concurrent writes, as in a create race"""

    def find_one(self, collection, filter):
        if collection == EVENTS and "slug" in filter:
            return None
        return super().find_one(collection, filter)

@pytest.fixture
def store(db_session):
    return SqlDocumentStore(db_session)

@pytest.fixture
def event_service(store):
    return EventService(store, token_source=CounterTokenSource())

@pytest.fixture
def booking_service(store):
    return BookingService(store)

@pytest.fixture
def event_data():
    return {
        "title": "Next.js Conf 2025",
        "description": "The Next.js conference",
        "overview": "Talks and workshops",
        "image": "/images/event4.png",
        "venue": "Online",
        "location": "Worldwide",
        "date": "2025-10-22",
        "time": "17:00",
        "mode": "online",
        "audience": "Web developers",
        "agenda": ["Keynote", "Workshops"],
        "organizer": "Vercel",
        "tags": ["react", "nextjs"],
    }

def test_create_event_persists_record(event_service, store, event_data):
    """Test that a valid event is persisted with slug and timestamps"""
    event = event_service.create_event(event_data)

    assert event["slug"] == "nextjs-conf-2025"
    assert event["created_at"] is not None
    assert store.find_one(EVENTS, {"id": event["id"]})["slug"] == "nextjs-conf-2025"

def test_create_events_with_colliding_titles(event_service, event_data):
    """Test that the second of two same-slug events gets a distinct slug"""
    first = event_service.create_event(event_data)
    event_data["title"] = "Next.js  Conf 2025!"
    second = event_service.create_event(event_data)

    assert first["slug"] == "nextjs-conf-2025"
    assert second["slug"] == "nextjs-conf-2025-1"

def test_write_time_slug_conflict_is_retried(db_session, event_data):
    """Test recovery when the pre-check misses a concurrently written slug"""
    service = EventService(StaleSlugStore(db_session), token_source=CounterTokenSource())

    first = service.create_event(event_data)
    second = service.create_event(event_data)

    assert first["slug"] == "nextjs-conf-2025"
    assert second["slug"] == "nextjs-conf-2025-1"
    assert second["id"] != first["id"]

def test_write_time_retry_with_timestamp_tokens_in_same_millisecond(db_session, event_data, monkeypatch):
    """Test that the retry slug is fresh even when the clock has not moved"""
    monkeypatch.setattr("app.utils.slug.time.time", lambda: 1700000000.123)
    service = EventService(StaleSlugStore(db_session))
    service.create_event(event_data)
    service.store.insert(EVENTS, {**service.validator.prepare(event_data), "slug": "nextjs-conf-2025-1700000000123"})

    event = service.create_event(event_data)

    assert event["slug"].startswith("nextjs-conf-2025-1700000000123")
    assert event["slug"] != "nextjs-conf-2025-1700000000123"
    assert SqlDocumentStore(db_session).count(EVENTS, {}) == 3

def test_write_time_retry_happens_once(db_session, event_data):
    """Test that a second write-time conflict propagates"""
    service = EventService(StaleSlugStore(db_session), token_source=lambda: "same")

    service.create_event(event_data)
    service.create_event(event_data)

    with pytest.raises(UniqueConstraintViolation):
        service.create_event(event_data)
    assert SqlDocumentStore(db_session).count(EVENTS, {}) == 2

def test_invalid_event_is_not_persisted(event_service, store, event_data):
    """Test that validation failures never reach the store"""
    event_data["tags"] = []

    with pytest.raises(EmptyCollectionError):
        event_service.create_event(event_data)
    assert store.count(EVENTS, {}) == 0

def test_get_event_by_slug(event_service, event_data):
    """Test slug lookups"""
    event = event_service.create_event(event_data)

    assert event_service.get_event_by_slug("NextJS-Conf-2025")["id"] == event["id"]
    with pytest.raises(EventNotFoundError):
        event_service.get_event_by_slug("missing")

def test_list_events_newest_first(event_service, event_data):
    """Test catalog ordering"""
    first = event_service.create_event(event_data)
    event_data["title"] = "React Summit"
    second = event_service.create_event(event_data)

    assert [e["id"] for e in event_service.list_events()] == [second["id"], first["id"]]

def test_update_event_changes_fields(event_service, event_data):
    """Test partial updates"""
    event = event_service.create_event(event_data)

    updated = event_service.update_event(event["id"], {"venue": "Vercel HQ", "mode": "HYBRID"})

    assert updated["venue"] == "Vercel HQ"
    assert updated["mode"] == "hybrid"
    assert updated["slug"] == event["slug"]

def test_update_event_title_rederives_slug(event_service, event_data):
    """Test that a new title yields a new slug"""
    event = event_service.create_event(event_data)

    updated = event_service.update_event(event["id"], {"title": "Next.js Conf 2026"})

    assert updated["slug"] == "nextjs-conf-2026"

def test_update_without_changes_returns_existing(event_service, event_data):
    """Test that a no-op update does not write"""
    event = event_service.create_event(event_data)

    assert event_service.update_event(event["id"], {}) == event

def test_update_missing_event(event_service):
    """Test updating an unknown event"""
    with pytest.raises(EventNotFoundError):
        event_service.update_event(9999, {"venue": "Nowhere"})

def test_create_booking(event_service, booking_service, event_data):
    """Test booking an email onto an event"""
    event = event_service.create_event(event_data)

    booking = booking_service.create_booking({"event_id": event["id"], "email": " Fan@Example.com "})

    assert booking["email"] == "fan@example.com"
    assert booking["event_id"] == event["id"]
    assert booking["created_at"] is not None

def test_booking_dangling_event(booking_service, store):
    """Test that bookings against unknown events are rejected and not stored"""
    with pytest.raises(DanglingReferenceError):
        booking_service.create_booking({"event_id": 9999, "email": "fan@example.com"})
    assert store.count(BOOKINGS, {}) == 0

def test_list_bookings(event_service, booking_service, event_data):
    """Test listing bookings for an event"""
    event = event_service.create_event(event_data)
    booking_service.create_booking({"event_id": event["id"], "email": "a@example.com"})
    booking_service.create_booking({"event_id": event["id"], "email": "b@example.com"})

    bookings = booking_service.list_bookings(event["id"])

    assert [b["email"] for b in bookings] == ["a@example.com", "b@example.com"]
    with pytest.raises(EventNotFoundError):
        booking_service.list_bookings(9999)

def test_delete_event_without_bookings(event_service, event_data):
    """Test deleting an unbooked event"""
    event = event_service.create_event(event_data)

    event_service.delete_event(event["id"])

    with pytest.raises(EventNotFoundError):
        event_service.get_event(event["id"])

def test_delete_event_with_bookings_is_blocked(event_service, booking_service, store, event_data):
    """Test that booked events cannot be deleted"""
    event = event_service.create_event(event_data)
    booking_service.create_booking({"event_id": event["id"], "email": "fan@example.com"})

    with pytest.raises(EventHasBookingsError) as exc_info:
        event_service.delete_event(event["id"])

    assert exc_info.value.booking_count == 1
    assert store.find_one(EVENTS, {"id": event["id"]}) is not None

def test_delete_missing_event(event_service):
    """Test deleting an unknown event"""
    with pytest.raises(EventNotFoundError):
        event_service.delete_event(9999)
