"""
Listing repository for listing records and their pricing tiers.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.orm import selectinload
from marketplace_api.repositories.base import BaseRepository
from marketplace_api.models.listing import Listing, PricingTier
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class ListingRepository(BaseRepository[Listing]):
    """Repository for listings with pricing management."""

    def __init__(self, db: AsyncSession, auto_commit: bool = True):
        super().__init__(Listing, db, auto_commit=auto_commit)

    async def get_with_details(self, listing_id: uuid.UUID) -> Optional[Listing]:
        """
        Get a listing with photos and pricing loaded.

        Rows already in the session are refreshed so that changes made with
        bulk statements earlier in the same transaction are visible.
        """
        try:
            query = (
                select(Listing)
                .where(Listing.id == listing_id)
                .options(selectinload(Listing.photos), selectinload(Listing.pricing))
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get listing {listing_id} with details: {e}")
            raise

    async def get_owned(self, listing_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[Listing]:
        """Get a listing with details only if it belongs to the given owner."""
        try:
            query = (
                select(Listing)
                .where(Listing.id == listing_id, Listing.owner_id == owner_id)
                .options(selectinload(Listing.photos), selectinload(Listing.pricing))
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(query)
            listing = result.scalar_one_or_none()

            if not listing:
                logger.debug(f"Listing {listing_id} not found for owner {owner_id}")
            return listing
        except Exception as e:
            logger.error(f"Failed to get listing {listing_id} for owner {owner_id}: {e}")
            raise

    async def list_public(self, skip: int = 0, limit: int = 100) -> List[Listing]:
        """Newest listings first."""
        return await self.get_multi(skip=skip, limit=limit, order_by="-created_at")

    async def list_by_owner(self, owner_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Listing]:
        return await self.get_multi(
            skip=skip,
            limit=limit,
            filters={"owner_id": owner_id},
            order_by="-created_at"
        )

    async def get_phone(self, listing_id: uuid.UUID) -> Optional[str]:
        try:
            result = await self.db.execute(select(Listing.phone).where(Listing.id == listing_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get phone for listing {listing_id}: {e}")
            raise

    async def replace_pricing(self, listing_id: uuid.UUID, tiers: List[Dict[str, Any]]) -> List[PricingTier]:
        """
        Replace every pricing tier of a listing with the given set.

        Args:
            listing_id: Listing whose pricing is replaced
            tiers: Dictionaries with 'duration' and 'price'

        Returns:
            Newly created pricing tiers in the order supplied
        """
        try:
            await self.db.execute(delete(PricingTier).where(PricingTier.listing_id == listing_id))

            pricing = [
                PricingTier(
                    listing_id=listing_id,
                    duration=tier["duration"],
                    price=tier["price"],
                    position=position
                )
                for position, tier in enumerate(tiers)
            ]
            self.db.add_all(pricing)
            await self._persist()

            logger.debug(f"Replaced pricing for listing {listing_id} with {len(pricing)} tiers")
            return pricing
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to replace pricing for listing {listing_id}: {e}")
            raise

    async def delete_pricing(self, listing_id: uuid.UUID) -> int:
        try:
            result = await self.db.execute(delete(PricingTier).where(PricingTier.listing_id == listing_id))
            await self._persist()
            return result.rowcount
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to delete pricing for listing {listing_id}: {e}")
            raise
