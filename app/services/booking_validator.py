"""
Booking validation, including the check that the booked event exists
"""

import re
from typing import Any, Dict, Optional

from app.core.errors import DanglingReferenceError, InvalidFormatError, MissingFieldError
from app.services.repositories import EVENTS, DocumentStore

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: Any) -> str:
    """Trim and lowercase an email address, rejecting malformed ones"""
    if value is None:
        raise MissingFieldError("email")
    if not isinstance(value, str):
        raise InvalidFormatError("email")
    email = value.strip().lower()
    if not email:
        raise MissingFieldError("email")
    if not EMAIL_PATTERN.match(email):
        raise InvalidFormatError("email")
    return email


class BookingValidator:
    """Validates booking candidates against the event catalog"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def prepare(self, candidate: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Return a normalized booking record.

        The event lookup only runs when the booking is new or its event_id
        differs from the stored one.
        """
        event_id = candidate.get("event_id")
        if event_id is None or (isinstance(event_id, str) and not event_id.strip()):
            raise MissingFieldError("event_id")
        if isinstance(event_id, str):
            event_id = event_id.strip()

        record = {"event_id": event_id, "email": normalize_email(candidate.get("email"))}

        if existing is None or existing.get("event_id") != event_id:
            event = self.store.find_one(EVENTS, {"id": event_id})
            if event is None:
                raise DanglingReferenceError("event_id")
            record["event_id"] = event["id"]
        return record
