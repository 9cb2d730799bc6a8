"""
Booking service
"""

import logging
from typing import Any, Dict, List

from app.core.errors import EventNotFoundError
from app.services.booking_validator import BookingValidator
from app.services.repositories import BOOKINGS, EVENTS, DocumentStore

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking an email address onto an event"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.validator = BookingValidator(store)

    def create_booking(self, data: Dict[str, Any]) -> Dict[str, Any]:
        record = self.validator.prepare(data)
        booking = self.store.insert(BOOKINGS, record)
        logger.info("Created booking %s for event %s", booking["id"], booking["event_id"])
        return booking

    def list_bookings(self, event_id: Any) -> List[Dict[str, Any]]:
        """Bookings for an event, oldest first"""
        event = self.store.find_one(EVENTS, {"id": event_id})
        if event is None:
            raise EventNotFoundError(event_id)
        return self.store.find(BOOKINGS, {"event_id": event["id"]}, order_by="created_at")
