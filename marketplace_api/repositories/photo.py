"""
Photo repository for listing photo records.
Scope-wide rules (photo caps, a single main photo) are enforced by the services;
this layer only offers the scoped reads and writes they are built from.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_
from marketplace_api.repositories.base import BaseRepository
from marketplace_api.models.photo import ListingPhoto
from typing import Optional, List, Dict
import uuid
import logging

logger = logging.getLogger(__name__)


class PhotoRepository(BaseRepository[ListingPhoto]):
    """
    Repository for listing photos.

    A photo scope is either every photo of one listing, or the unattached
    uploads (listing_id is null) of one user.
    """

    def __init__(self, db: AsyncSession, auto_commit: bool = True):
        super().__init__(ListingPhoto, db, auto_commit=auto_commit)

    @staticmethod
    def _scope(user_id: uuid.UUID, listing_id: Optional[uuid.UUID]):
        if listing_id is not None:
            return ListingPhoto.listing_id == listing_id
        return and_(ListingPhoto.user_id == user_id, ListingPhoto.listing_id.is_(None))

    @staticmethod
    def _display_order():
        return (ListingPhoto.is_main.desc(), ListingPhoto.uploaded_at.asc(), ListingPhoto.id.asc())

    async def list_by_owner_and_listing(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID]
    ) -> List[ListingPhoto]:
        """
        Get a user's photos for one listing, or their unattached photos.

        Args:
            user_id: Owner of the photos
            listing_id: Listing ID, or None for unattached uploads

        Returns:
            Photos ordered main first, then by upload time
        """
        try:
            query = select(ListingPhoto).where(ListingPhoto.user_id == user_id)
            if listing_id is None:
                query = query.where(ListingPhoto.listing_id.is_(None))
            else:
                query = query.where(ListingPhoto.listing_id == listing_id)

            result = await self.db.execute(query.order_by(*self._display_order()))
            photos = list(result.scalars().all())
            logger.debug(f"Retrieved {len(photos)} photos for user {user_id}, listing {listing_id}")
            return photos
        except Exception as e:
            logger.error(f"Failed to list photos for user {user_id}, listing {listing_id}: {e}")
            raise

    async def list_for_listing(self, listing_id: uuid.UUID) -> List[ListingPhoto]:
        """Get every photo attached to a listing, main first."""
        try:
            query = (
                select(ListingPhoto)
                .where(ListingPhoto.listing_id == listing_id)
                .order_by(*self._display_order())
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to list photos for listing {listing_id}: {e}")
            raise

    async def list_main_for_listings(self, listing_ids: List[uuid.UUID]) -> Dict[uuid.UUID, str]:
        """
        Map listing IDs to the object key of their main photo.
        Listings without a main photo are absent from the result.
        """
        if not listing_ids:
            return {}

        try:
            query = select(ListingPhoto.listing_id, ListingPhoto.object_key).where(
                ListingPhoto.listing_id.in_(listing_ids),
                ListingPhoto.is_main.is_(True)
            )
            result = await self.db.execute(query)
            return {row.listing_id: row.object_key for row in result}
        except Exception as e:
            logger.error(f"Failed to get main photos for {len(listing_ids)} listings: {e}")
            raise

    async def insert(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID],
        object_key: str,
        is_main: bool = False
    ) -> ListingPhoto:
        """Insert a photo row for an already stored object."""
        return await self.create({
            "user_id": user_id,
            "listing_id": listing_id,
            "object_key": object_key,
            "is_main": is_main,
        })

    async def find_owned(self, photo_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ListingPhoto]:
        """Get a photo only if it belongs to the given user."""
        try:
            query = select(ListingPhoto).where(
                ListingPhoto.id == photo_id,
                ListingPhoto.user_id == user_id
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to find photo {photo_id} for user {user_id}: {e}")
            raise

    async def set_listing(self, photo_id: uuid.UUID, listing_id: Optional[uuid.UUID]) -> None:
        try:
            stmt = update(ListingPhoto).where(ListingPhoto.id == photo_id).values(listing_id=listing_id)
            await self.db.execute(stmt)
            await self._persist()
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to set listing {listing_id} on photo {photo_id}: {e}")
            raise

    async def set_main(self, photo_id: uuid.UUID, is_main: bool) -> None:
        """Set the main flag of a single photo. Other photos in its scope are left untouched."""
        try:
            stmt = update(ListingPhoto).where(ListingPhoto.id == photo_id).values(is_main=is_main)
            await self.db.execute(stmt)
            await self._persist()
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to set main={is_main} on photo {photo_id}: {e}")
            raise

    async def clear_main_in_scope(self, user_id: uuid.UUID, listing_id: Optional[uuid.UUID]) -> int:
        """Unset the main flag on every photo in a scope."""
        try:
            stmt = (
                update(ListingPhoto)
                .where(self._scope(user_id, listing_id), ListingPhoto.is_main.is_(True))
                .values(is_main=False)
            )
            result = await self.db.execute(stmt)
            await self._persist()
            return result.rowcount
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to clear main photo for user {user_id}, listing {listing_id}: {e}")
            raise

    async def count_in_scope(self, user_id: uuid.UUID, listing_id: Optional[uuid.UUID]) -> int:
        try:
            query = select(func.count(ListingPhoto.id)).where(self._scope(user_id, listing_id))
            result = await self.db.execute(query)
            return result.scalar()
        except Exception as e:
            logger.error(f"Failed to count photos for user {user_id}, listing {listing_id}: {e}")
            raise

    async def get_main_in_scope(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID]
    ) -> Optional[ListingPhoto]:
        try:
            query = select(ListingPhoto).where(
                self._scope(user_id, listing_id),
                ListingPhoto.is_main.is_(True)
            )
            result = await self.db.execute(query)
            return result.scalars().first()
        except Exception as e:
            logger.error(f"Failed to get main photo for user {user_id}, listing {listing_id}: {e}")
            raise

    async def first_in_scope(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID]
    ) -> Optional[ListingPhoto]:
        """Earliest uploaded photo of a scope."""
        try:
            query = (
                select(ListingPhoto)
                .where(self._scope(user_id, listing_id))
                .order_by(ListingPhoto.uploaded_at.asc(), ListingPhoto.id.asc())
                .limit(1)
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get first photo for user {user_id}, listing {listing_id}: {e}")
            raise

    async def attach_unattached(
        self,
        photo_ids: List[uuid.UUID],
        user_id: uuid.UUID,
        listing_id: uuid.UUID
    ) -> List[uuid.UUID]:
        """
        Attach photos to a listing.
        Only photos owned by the user and not yet attached are moved; the rest are skipped.

        Returns:
            IDs of the photos that were attached
        """
        if not photo_ids:
            return []

        try:
            query = select(ListingPhoto.id).where(
                ListingPhoto.id.in_(photo_ids),
                ListingPhoto.user_id == user_id,
                ListingPhoto.listing_id.is_(None)
            )
            result = await self.db.execute(query)
            attachable = list(result.scalars().all())

            if attachable:
                stmt = (
                    update(ListingPhoto)
                    .where(ListingPhoto.id.in_(attachable))
                    .values(listing_id=listing_id)
                )
                await self.db.execute(stmt)
                await self._persist()

            skipped = len(set(photo_ids)) - len(attachable)
            if skipped:
                logger.debug(f"Skipped {skipped} photos not attachable to listing {listing_id}")
            return attachable
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to attach photos to listing {listing_id}: {e}")
            raise

    async def delete_for_listing(self, listing_id: uuid.UUID) -> int:
        try:
            stmt = delete(ListingPhoto).where(ListingPhoto.listing_id == listing_id)
            result = await self.db.execute(stmt)
            await self._persist()
            return result.rowcount
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to delete photos of listing {listing_id}: {e}")
            raise
