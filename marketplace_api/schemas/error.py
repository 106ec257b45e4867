"""
Error response schemas for API documentation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(None, description="Field name that caused the error", examples=["phone"])
    message: str = Field(..., description="Human-readable error message")
    type: Optional[str] = Field(None, description="Error type identifier", examples=["value_error"])
    input: Optional[Any] = Field(None, description="Input value that caused the error")


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["VALIDATION_ERROR"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
    details: Optional[List[ErrorDetail]] = None


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse


def error_responses(*status_codes: int) -> dict:
    """OpenAPI `responses` entries for the given status codes."""
    descriptions = {
        400: "Bad Request",
        401: "Authentication required",
        403: "Caller does not own the resource",
        404: "Resource not found",
        409: "Conflict",
        422: "Validation error",
        502: "Database or object storage failure",
    }
    return {
        code: {"description": descriptions.get(code, "Error"), "model": APIErrorResponse}
        for code in status_codes
    }
