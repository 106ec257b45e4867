"""
Service layer for business logic implementation.
Contains services for authentication, listings, photos, object storage and error handling.
"""

from .auth import AuthService
from .listing import ListingService
from .photo import PhotoService
from .storage import ObjectStorageGateway, get_storage_gateway
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ListingService",
    "PhotoService",
    "ObjectStorageGateway",
    "get_storage_gateway",
    "ErrorHandlerService"
]
