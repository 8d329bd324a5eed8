"""
Common API Response Schemas

Standardized error responses, matching what the exception handlers in
app.main render.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Invalid offcut data (400) or request validation failed (422)
        - NOT_FOUND: Offcut, material, order item or batch not found (404)
        - CONFLICT: Offcut status does not allow the operation (409)
        - DATABASE_ERROR: Database operation failed (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "CONFLICT",
            "message": "Offcut is not available for reservation",
            "details": {
                "current_state": "RESERVED",
                "allowed_states": ["AVAILABLE"]
            },
            "timestamp": "2026-03-02T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context for debugging"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


class ValidationErrorResponse(ErrorResponse):
    """Request validation failure with the list of failing fields under details.errors."""
    error: str = Field(default="VALIDATION_ERROR", description="Always VALIDATION_ERROR")
    details: Dict[str, Any] = Field(
        ...,
        description="Validation error details with 'errors' list"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {
                    "errors": [
                        {
                            "field": "used_area_mm2",
                            "message": "Input should be greater than or equal to 1",
                            "type": "greater_than_equal"
                        }
                    ]
                },
                "timestamp": "2026-03-02T10:30:00Z"
            }
        }
