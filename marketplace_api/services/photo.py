"""
Photo service for listing photo uploads and management.
Handles uploads into an owner's scope, listing, deletion with main photo promotion,
and main photo selection.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import uuid
import logging

from marketplace_api.models.photo import ListingPhoto
from marketplace_api.repositories.listing import ListingRepository
from marketplace_api.schemas.photo import PhotoUpload, PhotoResponse
from marketplace_api.services.base import StorageBackedService
from marketplace_api.services.storage import ObjectStorageGateway
from marketplace_api.utils.exceptions import (
    AuthorizationError,
    ListingNotFoundError,
    PhotoLimitExceededError,
    PhotoNotFoundError,
    ValidationError,
)
from marketplace_api.utils.file_utils import PhotoPayloadValidator

logger = logging.getLogger(__name__)


class PhotoService(StorageBackedService):
    """Service for a user's listing photos."""

    def __init__(self, db_session: AsyncSession, storage: ObjectStorageGateway):
        super().__init__(db_session, storage)
        self.listing_repo = ListingRepository(db_session, auto_commit=False)

    async def upload_photos(
        self,
        owner_id: uuid.UUID,
        photos: List[PhotoUpload],
        listing_id: Optional[uuid.UUID] = None
    ) -> List[PhotoResponse]:
        """
        Upload photos into the owner's unattached scope or into one of their listings.

        Every payload is validated before anything is stored. The first photo
        becomes main when the scope has no main photo yet.

        Args:
            owner_id: Uploading user
            photos: Base64 encoded photos
            listing_id: Listing to attach to, or None for unattached uploads

        Returns:
            Created photos with signed URLs

        Raises:
            ValidationError: If a payload is invalid or the scope would exceed the photo limit
            ListingNotFoundError: If listing_id does not exist
            AuthorizationError: If the listing belongs to someone else
            StorageError: If storing an image or a row fails
        """
        if not photos:
            raise ValidationError("At least one photo is required")

        decoded = PhotoPayloadValidator.validate_batch(
            [(photo.name, photo.type, photo.data) for photo in photos],
            max_count=self.max_photos
        )

        try:
            if listing_id is not None:
                listing = await self.listing_repo.get_by_id(listing_id)
                if not listing:
                    raise ListingNotFoundError(str(listing_id))
                if not listing.is_owned_by(owner_id):
                    raise AuthorizationError("listing")

            existing = await self.photo_repo.count_in_scope(owner_id, listing_id)
            if existing + len(decoded) > self.max_photos:
                raise PhotoLimitExceededError(self.max_photos)

            has_main = await self.photo_repo.get_main_in_scope(owner_id, listing_id) is not None
        except Exception as e:
            raise await self._failure("upload photos", e)

        keys = await self.storage.upload_images([photo.data for photo in decoded], owner_id)

        try:
            created = []
            for index, key in enumerate(keys):
                created.append(await self.photo_repo.insert(
                    owner_id,
                    listing_id,
                    key,
                    is_main=not has_main and index == 0
                ))
            await self.db.commit()
        except Exception as e:
            error = await self._failure("upload photos", e)
            await self.storage.discard_images(keys)
            raise error

        logger.info(f"Uploaded {len(created)} photos for user {owner_id} (listing: {listing_id})")
        return await self._with_urls(created)

    async def list_photos(
        self,
        owner_id: uuid.UUID,
        listing_id: Optional[uuid.UUID] = None
    ) -> List[PhotoResponse]:
        """
        List the owner's photos of one scope, main photo first.
        Photos whose URL cannot be signed are still listed, with a null URL.
        """
        try:
            photos = await self.photo_repo.list_by_owner_and_listing(owner_id, listing_id)
        except Exception as e:
            raise await self._failure("list photos", e)

        return await self._with_urls(photos)

    async def delete_photo(self, photo_id: uuid.UUID, caller_id: uuid.UUID) -> None:
        """
        Delete a photo and its stored object.

        The stored object goes first so a failure never leaves a row pointing at
        a deleted object. When the main photo is deleted the earliest remaining
        photo of the same scope is promoted.

        Raises:
            PhotoNotFoundError: If the photo does not exist
            AuthorizationError: If the caller does not own the photo
            StorageError: If the object or the row cannot be deleted
        """
        try:
            photo = await self._get_owned_photo(photo_id, caller_id)
            key, was_main = photo.object_key, photo.is_main
            user_id, listing_id = photo.user_id, photo.listing_id

            await self.storage.delete_image(key)
            await self.photo_repo.delete(photo_id)

            if was_main:
                await self._ensure_main(user_id, listing_id)

            await self.db.commit()
            logger.info(f"Deleted photo {photo_id} ({key})")
        except Exception as e:
            raise await self._failure("delete photo", e)

    async def set_main_photo(self, photo_id: uuid.UUID, caller_id: uuid.UUID) -> None:
        """
        Make a photo the main photo of its scope.
        Clearing the old main and setting the new one happen in one transaction.

        Raises:
            PhotoNotFoundError: If the photo does not exist
            AuthorizationError: If the caller does not own the photo
        """
        try:
            photo = await self._get_owned_photo(photo_id, caller_id)

            await self.photo_repo.clear_main_in_scope(photo.user_id, photo.listing_id)
            await self.photo_repo.set_main(photo_id, True)

            await self.db.commit()
            logger.info(f"Set photo {photo_id} as main (listing: {photo.listing_id})")
        except Exception as e:
            raise await self._failure("set main photo", e)

    async def _get_owned_photo(self, photo_id: uuid.UUID, caller_id: uuid.UUID) -> ListingPhoto:
        photo = await self.photo_repo.get_by_id(photo_id)
        if not photo:
            raise PhotoNotFoundError(str(photo_id))
        if photo.user_id != caller_id:
            logger.warning(f"User {caller_id} attempted to modify photo {photo_id} owned by {photo.user_id}")
            raise AuthorizationError("photo")
        return photo

    async def _with_urls(self, photos: List[ListingPhoto]) -> List[PhotoResponse]:
        urls = await self.storage.generate_signed_urls(
            [photo.object_key for photo in photos], self.signed_url_ttl
        )
        return [
            PhotoResponse(
                id=photo.id,
                listing_id=photo.listing_id,
                is_main=photo.is_main,
                url=urls.get(photo.object_key),
                uploaded_at=photo.uploaded_at,
            )
            for photo in photos
        ]
