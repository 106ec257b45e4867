"""
Shared plumbing for services that combine database rows with stored objects.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import uuid
import logging

from marketplace_api.config import get_settings
from marketplace_api.models.photo import ListingPhoto
from marketplace_api.repositories.photo import PhotoRepository
from marketplace_api.services.storage import ObjectStorageGateway
from marketplace_api.utils.exceptions import APIException, BadRequestError, StorageError

logger = logging.getLogger(__name__)
settings = get_settings()


class StorageBackedService:
    """
    Base class for services that own their database transaction.

    Repositories are created with auto_commit disabled, so every operation of
    a subclass commits once at the end or rolls back as a whole.
    """

    def __init__(self, db_session: AsyncSession, storage: ObjectStorageGateway):
        self.db = db_session
        self.storage = storage
        self.photo_repo = PhotoRepository(db_session, auto_commit=False)
        self.max_photos = settings.max_photos_per_scope
        self.signed_url_ttl = settings.signed_url_ttl_seconds

    async def _failure(self, action: str, error: Exception) -> APIException:
        """
        Roll back the current transaction and map an exception to the error to raise.

        Known API errors pass through, database errors become StorageError and
        anything else becomes BadRequestError.
        """
        await self.db.rollback()

        if isinstance(error, APIException):
            return error
        if isinstance(error, SQLAlchemyError):
            logger.error(f"Database error while trying to {action}: {error}")
            return StorageError(f"Database operation failed while trying to {action}")

        logger.error(f"Failed to {action}: {error}")
        return BadRequestError(f"Failed to {action}: {str(error)}")

    async def _forget_deleted_photos(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID],
        photo_ids: List[uuid.UUID]
    ) -> None:
        """
        Delete and commit the rows of photos whose objects are already gone.

        Used after a partly failed batch delete so that no row is left pointing
        at a deleted object. The scope keeps a main photo if any photo remains.
        """
        if not photo_ids:
            return

        try:
            await self.photo_repo.bulk_delete(photo_ids)
            await self._ensure_main(user_id, listing_id)
            await self.db.commit()
            logger.warning(f"Removed {len(photo_ids)} photo rows after a partial object delete")
        except Exception as e:
            raise await self._failure("remove deleted photos", e)

    async def _ensure_main(
        self,
        user_id: uuid.UUID,
        listing_id: Optional[uuid.UUID]
    ) -> Optional[ListingPhoto]:
        """
        Promote the earliest photo of a scope when the scope has photos but no main one.

        Returns:
            The promoted photo, or None when nothing changed
        """
        if await self.photo_repo.get_main_in_scope(user_id, listing_id) is not None:
            return None

        first = await self.photo_repo.first_in_scope(user_id, listing_id)
        if first is None:
            return None

        await self.photo_repo.set_main(first.id, True)
        logger.debug(f"Promoted photo {first.id} to main for user {user_id}, listing {listing_id}")
        return first
