"""
Database models for the listings marketplace.
"""

from marketplace_api.models.user import User, UserRole
from marketplace_api.models.listing import Listing, PricingTier
from marketplace_api.models.photo import ListingPhoto
from marketplace_api.models.phone_view import PhoneView

__all__ = [
    "User",
    "UserRole",
    "Listing",
    "PricingTier",
    "ListingPhoto",
    "PhoneView",
]
