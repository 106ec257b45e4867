"""
API route handlers for the Listings Marketplace API.
"""

from .auth import router as auth_router
from .listings import router as listings_router
from .photos import router as photos_router

__all__ = ["auth_router", "listings_router", "photos_router"]
