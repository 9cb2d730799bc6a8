"""
Event catalog service: validation, persistence and the deletion policy
"""

import logging
from typing import Any, Dict, List

from app.core.errors import EventHasBookingsError, EventNotFoundError, UniqueConstraintViolation
from app.services.event_validator import EventValidator, changed_fields, merge_candidate
from app.services.repositories import BOOKINGS, EVENTS, DocumentStore
from app.utils.slug import TokenSource, timestamp_token

logger = logging.getLogger(__name__)


class EventService:
    """Service for event catalog operations"""

    def __init__(self, store: DocumentStore, token_source: TokenSource = timestamp_token):
        self.store = store
        self.validator = EventValidator(store, token_source=token_source)

    def create_event(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and insert an event.

        A concurrent writer can claim the slug between the validator's
        lookup and the insert; in that case the slug is regenerated and the
        insert retried once.
        """
        record = self.validator.prepare(data)
        try:
            event = self.store.insert(EVENTS, record)
        except UniqueConstraintViolation as exc:
            if exc.field != "slug":
                raise
            logger.warning("Slug %r claimed concurrently, retrying with a new token", record["slug"])
            event = self.store.insert(EVENTS, self.validator.regenerate_slug(record))

        logger.info("Created event %s (%s)", event["id"], event["slug"])
        return event

    def update_event(self, event_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        existing = self.get_event(event_id)
        record = self.validator.prepare(merge_candidate(existing, changes), existing=existing)
        diff = changed_fields(record, existing)
        if not diff:
            return existing

        try:
            event = self.store.update(EVENTS, event_id, diff)
        except UniqueConstraintViolation as exc:
            if exc.field != "slug" or "slug" not in diff:
                raise
            retry = self.validator.regenerate_slug(record)
            event = self.store.update(EVENTS, event_id, {**diff, "slug": retry["slug"]})

        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def list_events(self) -> List[Dict[str, Any]]:
        """Return all events, newest first"""
        return self.store.find(EVENTS, order_by="-created_at")

    def get_event(self, event_id: Any) -> Dict[str, Any]:
        event = self.store.find_one(EVENTS, {"id": event_id})
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def get_event_by_slug(self, slug: str) -> Dict[str, Any]:
        event = self.store.find_one(EVENTS, {"slug": slug.strip().lower()})
        if event is None:
            raise EventNotFoundError(slug)
        return event

    def delete_event(self, event_id: Any) -> None:
        """Delete an event that no booking references.

        Raises:
            EventNotFoundError: the event does not exist.
            EventHasBookingsError: bookings still reference the event.
        """
        event = self.get_event(event_id)
        booking_count = self.store.count(BOOKINGS, {"event_id": event["id"]})
        if booking_count:
            raise EventHasBookingsError(event["id"], booking_count)

        if not self.store.delete(EVENTS, event["id"]):
            raise EventNotFoundError(event_id)
        logger.info("Deleted event %s (%s)", event["id"], event["slug"])
