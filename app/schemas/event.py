"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Any, Optional, List, Union
from pydantic import BaseModel, ConfigDict

class EventCreate(BaseModel):
    """Schema for creating an event.

    Fields are loosely typed; EventValidator reports missing or
    malformed values with field-level error codes.
    """
    title: Optional[Any] = None
    description: Optional[Any] = None
    overview: Optional[Any] = None
    image: Optional[Any] = None
    venue: Optional[Any] = None
    location: Optional[Any] = None
    date: Optional[Any] = None
    time: Optional[Any] = None
    mode: Optional[Any] = None
    audience: Optional[Any] = None
    agenda: Optional[Any] = None
    organizer: Optional[Any] = None
    tags: Optional[Any] = None

class EventUpdate(EventCreate):
    """Schema for updating an event; omitted fields keep their value"""

class EventResponse(BaseModel):
    """Event response"""
    model_config = ConfigDict(from_attributes=True)

    id: Union[int, str]
    title: str
    slug: str
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: str
    time: str
    mode: str
    audience: str
    agenda: List[str]
    organizer: str
    tags: List[str]
    created_at: datetime
    updated_at: datetime

class EventSummary(BaseModel):
    """Listing card shape: enough to render and link to an event"""
    model_config = ConfigDict(from_attributes=True)

    id: Union[int, str]
    title: str
    slug: str
    image: str
    location: str
    date: str
    time: str
