"""
Repository layer for data access operations.
Provides the listing record store, photo store and phone view audit log.
"""

from marketplace_api.repositories.base import BaseRepository
from marketplace_api.repositories.listing import ListingRepository
from marketplace_api.repositories.photo import PhotoRepository
from marketplace_api.repositories.phone_view import PhoneViewRepository
from marketplace_api.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "PhotoRepository",
    "PhoneViewRepository",
    "UserRepository"
]
