"""
Tests for booking validation and the event reference check
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.db import Base
from app.core.errors import DanglingReferenceError, InvalidFormatError, MissingFieldError
from app.services.booking_validator import BookingValidator, normalize_email
from app.services.repositories import EVENTS, FirestoreDocumentStore, SqlDocumentStore

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_booking_validator.db"
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

class CountingStore(SqlDocumentStore):
    """SQL store that records find_one lookups"""

    def __init__(self, db):
        super().__init__(db)
        self.lookups = []

    def find_one(self, collection, filter):
        self.lookups.append((collection, dict(filter)))
        return super().find_one(collection, filter)

@pytest.fixture
def store(db_session):
    return CountingStore(db_session)

@pytest.fixture
def sample_event(store):
    """Persist an event to book against"""
    return store.insert(EVENTS, {
        "title": "GitHub Universe 2025",
        "slug": "github-universe-2025",
        "description": "Developer conference",
        "overview": "Everything GitHub",
        "image": "/images/event2.png",
        "venue": "Fort Mason",
        "location": "San Francisco, CA, USA",
        "date": "2025-11-05",
        "time": "10:00",
        "mode": "offline",
        "audience": "Developers",
        "agenda": ["Keynote"],
        "organizer": "GitHub",
        "tags": ["devtools"],
    })

@pytest.fixture
def validator(store):
    return BookingValidator(store)

def test_prepare_valid_booking(validator, sample_event):
    """Test that email is trimmed and lowercased"""
    record = validator.prepare({"event_id": sample_event["id"], "email": "  User@Example.COM "})

    assert record == {"event_id": sample_event["id"], "email": "user@example.com"}

def test_missing_event_id(validator):
    """Test that event_id is required and checked first"""
    with pytest.raises(MissingFieldError) as exc_info:
        validator.prepare({"email": "user@@example.com"})
    assert exc_info.value.field == "event_id"
    assert exc_info.value.message == "Event ID is required"

def test_missing_email(validator, sample_event):
    """Test that email is required"""
    for email in (None, "", "   "):
        with pytest.raises(MissingFieldError) as exc_info:
            validator.prepare({"event_id": sample_event["id"], "email": email})
        assert exc_info.value.field == "email"
        assert exc_info.value.message == "Email is required"

@pytest.mark.parametrize("email", [
    "user@example.com",
    "user.name@example.com",
    "user+tag@example.co.uk",
    "user_name@example-domain.com",
    "123@example.com",
    "first.last+filter@sub.example.org",
])
def test_valid_emails(email):
    """Test accepted email shapes"""
    assert normalize_email(email) == email

@pytest.mark.parametrize("email", [
    "user@@example.com",
    "invalid",
    "@example.com",
    "user@",
    "user@domain",
    "user name@example.com",
    "user@exam ple.com",
    "user@example.com@other.com",
])
def test_invalid_emails(validator, sample_event, email):
    """Test rejected email shapes"""
    with pytest.raises(InvalidFormatError) as exc_info:
        validator.prepare({"event_id": sample_event["id"], "email": email})
    assert exc_info.value.field == "email"
    assert exc_info.value.message == "Invalid email format"

def test_dangling_event_reference(validator, store):
    """Test that bookings must point at an existing event"""
    with pytest.raises(DanglingReferenceError) as exc_info:
        validator.prepare({"event_id": 9999, "email": "user@example.com"})

    assert exc_info.value.field == "event_id"
    assert exc_info.value.message == "Referenced event does not exist"
    assert store.lookups == [(EVENTS, {"id": 9999})]

def test_new_booking_always_checks_event(validator, store, sample_event):
    """Test that creation performs exactly one event lookup"""
    validator.prepare({"event_id": sample_event["id"], "email": "user@example.com"})
    assert store.lookups == [(EVENTS, {"id": sample_event["id"]})]

def test_unchanged_event_id_skips_lookup(validator, store, sample_event):
    """Test that re-validating with the same event_id does not hit the store"""
    existing = {"id": 1, "event_id": sample_event["id"], "email": "old@example.com"}

    record = validator.prepare({"event_id": sample_event["id"], "email": "new@example.com"}, existing=existing)

    assert record["email"] == "new@example.com"
    assert store.lookups == []

def test_changed_event_id_is_checked(validator, store, sample_event):
    """Test that pointing a booking at another event re-runs the check"""
    existing = {"id": 1, "event_id": sample_event["id"], "email": "user@example.com"}

    with pytest.raises(DanglingReferenceError):
        validator.prepare({"event_id": 424242, "email": "user@example.com"}, existing=existing)
    assert store.lookups == [(EVENTS, {"id": 424242})]

def test_firestore_event_id_with_path_separator_is_dangling():
    """Test that an event_id Firestore cannot address is reported as a dangling reference"""
    client = MagicMock()
    validator = BookingValidator(FirestoreDocumentStore(client))

    with pytest.raises(DanglingReferenceError) as exc_info:
        validator.prepare({"event_id": "a/b", "email": "u@example.com"})
    assert exc_info.value.field == "event_id"
    client.collection.return_value.document.assert_not_called()
