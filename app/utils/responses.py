"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import status
from fastapi.responses import JSONResponse

from app.core.errors import DomainError, ErrorCode, InvalidEnumError
from app.schemas.common import StandardResponse, ErrorResponse

ERROR_STATUS = {
    ErrorCode.MISSING_FIELD: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_FORMAT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_ENUM: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.EMPTY_COLLECTION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.DANGLING_REFERENCE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.UNIQUE_CONSTRAINT_VIOLATION: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_HAS_BOOKINGS: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONNECTION_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def domain_error_response(exc: DomainError) -> JSONResponse:
    """Map a domain error to its HTTP error response"""
    details = {"field": exc.field} if exc.field else None
    if isinstance(exc, InvalidEnumError):
        details["allowed"] = list(exc.allowed)
    return error_response(
        message=exc.message,
        error_code=exc.code.value,
        details=details,
        status_code=ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
    )
