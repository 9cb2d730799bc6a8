"""
Public API routes - event catalog and bookings
"""

from fastapi import APIRouter, Depends

from app.schemas.booking import BookingCreate, BookingResponse
from app.schemas.event import EventResponse, EventSummary
from app.services.booking_service import BookingService
from app.services.event_service import EventService
from app.services.repositories import DocumentStore, get_store
from app.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/events")
def list_events(store: DocumentStore = Depends(get_store)):
    """List all events, newest first"""
    events = EventService(store).list_events()
    return success_response(
        message="Events retrieved successfully",
        data=[EventSummary(**event).model_dump(mode="json") for event in events]
    )

@router.get("/events/{slug}")
def get_event(slug: str, store: DocumentStore = Depends(get_store)):
    """Get an event by its slug"""
    event = EventService(store).get_event_by_slug(slug)
    return success_response(
        message="Event retrieved successfully",
        data=EventResponse(**event).model_dump(mode="json")
    )

@router.post("/bookings")
def create_booking(booking_data: BookingCreate, store: DocumentStore = Depends(get_store)):
    """Book an email address onto an event"""
    booking = BookingService(store).create_booking(booking_data.model_dump())
    return success_response(
        message="Booking created successfully",
        data=BookingResponse(**booking).model_dump(mode="json"),
        status_code=201
    )
