"""
Booking-related Pydantic schemas
"""

from datetime import datetime
from typing import Any, Optional, Union
from pydantic import BaseModel

class BookingCreate(BaseModel):
    """Booking request"""
    event_id: Optional[Union[int, str]] = None
    email: Optional[Any] = None

class BookingResponse(BaseModel):
    """Booking response"""
    id: Union[int, str]
    event_id: Union[int, str]
    email: str
    created_at: datetime
