"""
FastAPI dependency injection utilities for authentication, services and request context.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace_api.database import get_db
from marketplace_api.models.user import User
from marketplace_api.services.auth import AuthService
from marketplace_api.services.listing import ListingService
from marketplace_api.services.photo import PhotoService
from marketplace_api.services.storage import ObjectStorageGateway, get_storage_gateway
from marketplace_api.utils.exceptions import (
    APIException,
    UnauthorizedError,
    InactiveUserError,
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_photo_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorageGateway = Depends(get_storage_gateway)
) -> PhotoService:
    return PhotoService(db, storage)


async def get_listing_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorageGateway = Depends(get_storage_gateway)
) -> ListingService:
    return ListingService(db, storage)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except APIException:
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """
    Get current user if a valid token is provided, otherwise None.
    Used by public endpoints that record who called them.
    """
    if not credentials:
        return None

    try:
        user = await auth_service.get_current_user(credentials.credentials)
        return user if user.is_active else None
    except APIException:
        return None


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, honouring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else None
