"""
Admin API routes - event catalog management
"""

from fastapi import APIRouter, Depends

from app.schemas.booking import BookingResponse
from app.schemas.event import EventCreate, EventResponse, EventUpdate
from app.services.booking_service import BookingService
from app.services.event_service import EventService
from app.services.repositories import DocumentStore, get_store
from app.utils.responses import success_response

router = APIRouter()

@router.post("/events")
def create_event(event_data: EventCreate, store: DocumentStore = Depends(get_store)):
    """Create a new event"""
    event = EventService(store).create_event(event_data.model_dump())
    return success_response(
        message="Event created successfully",
        data=EventResponse(**event).model_dump(mode="json"),
        status_code=201
    )

@router.put("/events/{event_id}")
def update_event(event_id: str, event_data: EventUpdate, store: DocumentStore = Depends(get_store)):
    """Update an event; a changed title re-derives the slug"""
    event = EventService(store).update_event(event_id, event_data.model_dump(exclude_unset=True))
    return success_response(
        message="Event updated successfully",
        data=EventResponse(**event).model_dump(mode="json")
    )

@router.delete("/events/{event_id}")
def delete_event(event_id: str, store: DocumentStore = Depends(get_store)):
    """Delete an event with no bookings"""
    EventService(store).delete_event(event_id)
    return success_response(message="Event deleted successfully")

@router.get("/events/{event_id}/bookings")
def list_event_bookings(event_id: str, store: DocumentStore = Depends(get_store)):
    """List bookings for an event"""
    bookings = BookingService(store).list_bookings(event_id)
    return success_response(
        message="Bookings retrieved successfully",
        data=[BookingResponse(**booking).model_dump(mode="json") for booking in bookings]
    )
