"""
Middleware package for the Listings Marketplace API.
"""

from .validation import ValidationMiddleware

__all__ = [
    "ValidationMiddleware",
]
