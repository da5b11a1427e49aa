"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import status
from fastapi.responses import JSONResponse

from seating_planner.core.errors import CapacityExceeded, NotFound, SeatingError, ValidationFailed
from seating_planner.schemas.common import StandardResponse, ErrorResponse

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
        content=response.model_dump(),
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
        content=response.model_dump(),
        status_code=status_code
    )

def seating_error_response(exc: SeatingError) -> JSONResponse:
    """Map a seating model error onto an error response"""
    if isinstance(exc, CapacityExceeded):
        return error_response(
            message=str(exc),
            error_code="CAPACITY_EXCEEDED",
            details={"table_num": exc.table_number, "capacity": exc.capacity},
            status_code=status.HTTP_409_CONFLICT
        )
    if isinstance(exc, NotFound):
        return error_response(
            message=str(exc),
            error_code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND
        )
    if isinstance(exc, ValidationFailed):
        return error_response(
            message=str(exc),
            error_code="VALIDATION_FAILED",
            status_code=422
        )
    return error_response(message=str(exc), error_code="SEATING_ERROR")
