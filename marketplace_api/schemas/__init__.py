"""
Pydantic schemas for request/response validation.
"""

from .auth import RegisterRequest, LoginRequest, UserResponse, TokenResponse
from .listing import (
    PricingTierInput,
    PricingTierResponse,
    ListingCreate,
    ListingUpdate,
    ListingSummary,
    ListingDetail,
    EditableListing,
    PhoneRevealResponse,
)
from .photo import (
    PhotoUpload,
    PhotoUploadRequest,
    PhotoResponse,
    PhotoView,
    EditablePhoto,
    SuccessResponse,
)
from .error import ErrorDetail, ErrorResponse, APIErrorResponse, error_responses

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "TokenResponse",
    "PricingTierInput",
    "PricingTierResponse",
    "ListingCreate",
    "ListingUpdate",
    "ListingSummary",
    "ListingDetail",
    "EditableListing",
    "PhoneRevealResponse",
    "PhotoUpload",
    "PhotoUploadRequest",
    "PhotoResponse",
    "PhotoView",
    "EditablePhoto",
    "SuccessResponse",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
    "error_responses",
]
