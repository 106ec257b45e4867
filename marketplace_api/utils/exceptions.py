"""
Custom exception classes for the Listings Marketplace API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return str(self.detail)


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST"
        )


# Authentication specific exceptions
class InvalidCredentialsError(UnauthorizedError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class TokenExpiredError(UnauthorizedError):
    """JWT token expired exception."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    """Invalid JWT token exception."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class AuthorizationError(ForbiddenError):
    """Caller is not the owner of the resource."""

    def __init__(self, resource: str = "resource"):
        super().__init__(f"You do not own this {resource}")


class DuplicateResourceError(ConflictError):
    """Duplicate resource exception."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' already exists")


# Listing and photo exceptions
class ListingNotFoundError(NotFoundError):
    """Listing not found exception."""

    def __init__(self, listing_id: str):
        super().__init__("Listing", listing_id)


class PhotoNotFoundError(NotFoundError):
    """Photo not found exception."""

    def __init__(self, photo_id: str):
        super().__init__("Photo", photo_id)


class PhotoLimitExceededError(ValidationError):
    """Photo scope would hold more photos than allowed."""

    def __init__(self, limit: int):
        super().__init__(f"Photo limit exceeded (maximum: {limit})")
        self.limit = limit


class InvalidImageError(ValidationError):
    """Uploaded photo payload is not an accepted image."""

    def __init__(self, detail: str, name: Optional[str] = None):
        message = f"Invalid image '{name}': {detail}" if name else f"Invalid image: {detail}"
        super().__init__(message)


class InvalidUrlError(ValidationError):
    """Value cannot be mapped to an object storage key."""

    def __init__(self, url: str):
        super().__init__(f"Cannot resolve an object key from '{url}'")
        self.url = url


# Storage exceptions
class StorageError(APIException):
    """Database or object store operation failed."""

    def __init__(self, detail: str = "Storage operation failed", error_code: str = "STORAGE_ERROR"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code
        )


class UploadError(StorageError):
    """Image could not be re-encoded or written to the object store."""

    def __init__(self, detail: str):
        super().__init__(f"Image upload failed: {detail}", error_code="UPLOAD_ERROR")


class AccessError(StorageError):
    """Signed URL could not be generated."""

    def __init__(self, detail: str):
        super().__init__(f"Image access failed: {detail}", error_code="ACCESS_ERROR")


class StorageDeleteError(StorageError):
    """Object could not be removed from the object store."""

    def __init__(self, detail: str):
        super().__init__(f"Image delete failed: {detail}", error_code="DELETE_ERROR")
