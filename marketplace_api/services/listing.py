"""
Listing service for the listing lifecycle.
Handles creation with photo attachment, updates that reconcile photos and pricing,
deletion, phone reveals and the public and owner views of listings.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import uuid
import logging

from marketplace_api.models.listing import Listing
from marketplace_api.models.photo import ListingPhoto
from marketplace_api.models.user import User
from marketplace_api.repositories.listing import ListingRepository
from marketplace_api.repositories.phone_view import PhoneViewRepository
from marketplace_api.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingSummary,
    ListingDetail,
    EditableListing,
    PricingTierResponse,
)
from marketplace_api.schemas.photo import PhotoView, EditablePhoto
from marketplace_api.services.base import StorageBackedService
from marketplace_api.services.storage import ObjectStorageGateway
from marketplace_api.utils.exceptions import (
    AuthorizationError,
    ListingNotFoundError,
    PhotoLimitExceededError,
    ValidationError,
)
from marketplace_api.utils.file_utils import PhotoPayloadValidator
from marketplace_api.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


def _display_order(photos: List[ListingPhoto]) -> List[ListingPhoto]:
    return sorted(photos, key=lambda photo: (not photo.is_main, photo.uploaded_at, str(photo.id)))


class ListingService(StorageBackedService):
    """
    Service for the listing lifecycle.

    Mutations are owner-only and run in a single database transaction each.
    Stored objects are written before rows reference them and deleted before
    the rows that referenced them.
    """

    def __init__(self, db_session: AsyncSession, storage: ObjectStorageGateway):
        super().__init__(db_session, storage)
        self.listing_repo = ListingRepository(db_session, auto_commit=False)
        self.phone_view_repo = PhoneViewRepository(db_session, auto_commit=False)

    async def create_listing(self, owner_id: uuid.UUID, data: ListingCreate) -> Listing:
        """
        Create a listing, attach previously uploaded photos and insert its pricing.

        Only photos owned by the caller that are still unattached are attached;
        other ids are skipped silently.

        Args:
            owner_id: Creating user
            data: Listing fields, pricing, photo ids and optional main photo id

        Returns:
            Created listing with photos and pricing loaded

        Raises:
            ValidationError: If fields are invalid or too many photos are given
            StorageError: If a database write fails
        """
        fields = ValidationUtils.validate_listing_fields(data.listing_fields())
        photo_ids = list(dict.fromkeys(data.photo_ids))
        if len(photo_ids) > self.max_photos:
            raise PhotoLimitExceededError(self.max_photos)

        try:
            listing = await self.listing_repo.create({**fields, "owner_id": owner_id})
            listing_id = listing.id

            if data.pricing:
                await self.listing_repo.replace_pricing(
                    listing_id, [tier.model_dump() for tier in data.pricing]
                )

            attached = await self.photo_repo.attach_unattached(photo_ids, owner_id, listing_id)
            if attached:
                if data.main_photo_id is not None and data.main_photo_id in attached:
                    await self.photo_repo.clear_main_in_scope(owner_id, listing_id)
                    await self.photo_repo.set_main(data.main_photo_id, True)
                await self._ensure_main(owner_id, listing_id)
                # The attached set may have taken the main photo of the unattached uploads
                await self._ensure_main(owner_id, None)

            await self.db.commit()
            logger.info(f"Listing created: {listing_id} by user {owner_id} with {len(attached)} photos")
        except Exception as e:
            raise await self._failure("create listing", e)

        return await self.listing_repo.get_with_details(listing_id)

    async def update_listing(self, listing_id: uuid.UUID, caller_id: uuid.UUID, data: ListingUpdate) -> None:
        """
        Update a listing's fields, photos and pricing.

        Photos whose key is not in keep_images are deleted, new files are
        uploaded and attached, and the main image selection is applied. New
        objects are uploaded first and removed objects deleted next; all row
        changes are then committed together. If that commit fails the new
        objects are removed again. Repeating a failed update is safe.

        Raises:
            ListingNotFoundError: If the listing does not exist
            AuthorizationError: If the caller does not own the listing
            ValidationError: If fields, photos or the main image selection are invalid
            StorageError: If an object store or database step fails
        """
        fields = ValidationUtils.validate_listing_fields(data.listing_fields())

        try:
            listing = await self.listing_repo.get_by_id(listing_id)
            if not listing:
                raise ListingNotFoundError(str(listing_id))
            if not listing.is_owned_by(caller_id):
                logger.warning(f"User {caller_id} attempted to update listing {listing_id}")
                raise AuthorizationError("listing")

            current = await self.photo_repo.list_for_listing(listing_id)
            if data.keep_images is None:
                keep_keys = {photo.object_key for photo in current}
            else:
                keep_keys = {self.storage.extract_key_from_url(value) for value in data.keep_images}

            kept = {photo.object_key: photo.id for photo in current if photo.object_key in keep_keys}
            removed = [(photo.id, photo.object_key) for photo in current if photo.object_key not in keep_keys]
            current_main_id = next((photo.id for photo in current if photo.is_main), None)

            if len(kept) + len(data.new_files) > self.max_photos:
                raise PhotoLimitExceededError(self.max_photos)

            decoded = PhotoPayloadValidator.validate_batch(
                [(photo.name, photo.type, photo.data) for photo in data.new_files],
                max_count=self.max_photos
            )

            selected_key = None
            if not data.main_image_is_new_file and data.new_main_image_url:
                selected_key = self.storage.extract_key_from_url(data.new_main_image_url)
                if selected_key not in kept:
                    raise ValidationError("Selected main image is not one of the listing's kept photos")
        except Exception as e:
            raise await self._failure("update listing", e)

        new_keys = await self.storage.upload_images([photo.data for photo in decoded], caller_id)
        failures = await self.storage.delete_images([key for _, key in removed])
        if failures:
            await self.storage.discard_images(new_keys)
            await self._forget_deleted_photos(
                caller_id, listing_id, [photo_id for photo_id, key in removed if key not in failures]
            )
            logger.error(f"Listing {listing_id} not updated: {len(failures)} stored photos could not be deleted")
            raise next(iter(failures.values()))

        try:
            await self.photo_repo.bulk_delete([photo_id for photo_id, _ in removed])

            new_ids = []
            for key in new_keys:
                photo = await self.photo_repo.insert(caller_id, listing_id, key, is_main=False)
                new_ids.append(photo.id)

            target_id = None
            if data.main_image_is_new_file:
                target_id = new_ids[data.main_image_new_file_index]
            elif selected_key is not None:
                target_id = kept[selected_key]

            if target_id is not None and target_id != current_main_id:
                await self.photo_repo.clear_main_in_scope(caller_id, listing_id)
                await self.photo_repo.set_main(target_id, True)
            await self._ensure_main(caller_id, listing_id)

            await self.listing_repo.update(listing_id, fields)

            if data.pricing is not None:
                await self.listing_repo.replace_pricing(
                    listing_id, [tier.model_dump() for tier in data.pricing]
                )

            await self.db.commit()
            logger.info(
                f"Listing updated: {listing_id} (removed {len(removed)} photos, added {len(new_keys)})"
            )
        except Exception as e:
            error = await self._failure("update listing", e)
            await self.storage.discard_images(new_keys)
            raise error

    async def delete_listing(self, listing_id: uuid.UUID, caller: User) -> None:
        """
        Delete a listing with its photos, stored objects and pricing.
        Allowed for the owner and for administrators.

        Raises:
            ListingNotFoundError: If the listing does not exist
            AuthorizationError: If the caller is neither owner nor admin
            StorageError: If an object or row cannot be deleted
        """
        caller_id, caller_is_admin = caller.id, caller.is_admin

        try:
            listing = await self.listing_repo.get_by_id(listing_id)
            if not listing:
                raise ListingNotFoundError(str(listing_id))
            if not listing.is_owned_by(caller_id) and not caller_is_admin:
                logger.warning(f"User {caller_id} attempted to delete listing {listing_id}")
                raise AuthorizationError("listing")

            owner_id = listing.owner_id
            photos = await self.photo_repo.list_for_listing(listing_id)
            failures = await self.storage.delete_images([photo.object_key for photo in photos])
            if failures:
                await self._forget_deleted_photos(
                    owner_id, listing_id, [photo.id for photo in photos if photo.object_key not in failures]
                )
                logger.error(f"Listing {listing_id} not deleted: {len(failures)} stored photos could not be deleted")
                raise next(iter(failures.values()))

            await self.photo_repo.delete_for_listing(listing_id)
            await self.listing_repo.delete_pricing(listing_id)
            await self.listing_repo.delete(listing_id)

            await self.db.commit()
            logger.info(f"Listing deleted: {listing_id} by user {caller_id} ({len(photos)} photos)")
        except Exception as e:
            raise await self._failure("delete listing", e)

    async def reveal_phone(
        self,
        listing_id: uuid.UUID,
        viewer_id: Optional[uuid.UUID],
        ip_address: Optional[str]
    ) -> str:
        """
        Return a listing's phone number and record the reveal.
        Every call is recorded; repeated reveals are not merged or limited.

        Raises:
            ListingNotFoundError: If the listing does not exist
        """
        try:
            phone = await self.listing_repo.get_phone(listing_id)
            if phone is None:
                raise ListingNotFoundError(str(listing_id))

            await self.phone_view_repo.record(listing_id, viewer_id, ip_address)
            await self.db.commit()
            logger.info(f"Phone revealed for listing {listing_id} (viewer: {viewer_id or 'anonymous'}, ip: {ip_address})")
            return phone
        except Exception as e:
            raise await self._failure("reveal phone", e)

    async def get_public_listings(self, skip: int = 0, limit: int = 100) -> List[ListingSummary]:
        """Newest listings with the signed URL of their main photo."""
        try:
            listings = await self.listing_repo.list_public(skip=skip, limit=limit)
            return await self._summaries(listings)
        except Exception as e:
            raise await self._failure("get listings", e)

    async def get_my_listings(self, owner_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[ListingSummary]:
        try:
            listings = await self.listing_repo.list_by_owner(owner_id, skip=skip, limit=limit)
            return await self._summaries(listings)
        except Exception as e:
            raise await self._failure("get listings", e)

    async def get_listing_by_id(self, listing_id: uuid.UUID) -> ListingDetail:
        """
        Public view of a listing. Excludes the phone number and the owner.
        Photos whose URL cannot be signed are left out.
        """
        try:
            listing = await self.listing_repo.get_with_details(listing_id)
            if not listing:
                raise ListingNotFoundError(str(listing_id))

            photos = _display_order(listing.photos)
            urls = await self.storage.generate_signed_urls(
                [photo.object_key for photo in photos], self.signed_url_ttl
            )
            return ListingDetail(
                id=listing.id,
                title=listing.title,
                description=listing.description,
                location=listing.location,
                city=listing.city,
                postcode_outcode=listing.postcode_outcode,
                in_call=listing.in_call,
                out_call=listing.out_call,
                photos=[
                    PhotoView(url=urls[photo.object_key], is_main=photo.is_main)
                    for photo in photos
                    if photo.object_key in urls
                ],
                pricing=self._pricing(listing),
            )
        except Exception as e:
            raise await self._failure("get listing", e)

    async def get_editable_listing(self, listing_id: uuid.UUID, owner_id: uuid.UUID) -> EditableListing:
        """
        Full listing detail for its owner.
        Listings of other users are reported as not found.
        """
        try:
            listing = await self.listing_repo.get_owned(listing_id, owner_id)
            if not listing:
                raise ListingNotFoundError(str(listing_id))

            photos = _display_order(listing.photos)
            urls = await self.storage.generate_signed_urls(
                [photo.object_key for photo in photos], self.signed_url_ttl
            )
            return EditableListing(
                id=listing.id,
                title=listing.title,
                description=listing.description,
                location=listing.location,
                phone=listing.phone,
                city=listing.city,
                postcode_outcode=listing.postcode_outcode,
                postcode_incode=listing.postcode_incode,
                in_call=listing.in_call,
                out_call=listing.out_call,
                photos=[
                    EditablePhoto(
                        id=photo.id,
                        key=photo.object_key,
                        url=urls.get(photo.object_key),
                        is_main=photo.is_main,
                    )
                    for photo in photos
                ],
                pricing=self._pricing(listing),
                created_at=listing.created_at,
            )
        except Exception as e:
            raise await self._failure("get listing", e)

    async def _summaries(self, listings: List[Listing]) -> List[ListingSummary]:
        main_keys: Dict[uuid.UUID, str] = await self.photo_repo.list_main_for_listings(
            [listing.id for listing in listings]
        )
        urls = await self.storage.generate_signed_urls(main_keys.values(), self.signed_url_ttl)
        return [
            ListingSummary(
                id=listing.id,
                title=listing.title,
                location=listing.location,
                city=listing.city,
                image=urls.get(main_keys.get(listing.id)),
            )
            for listing in listings
        ]

    @staticmethod
    def _pricing(listing: Listing) -> List[PricingTierResponse]:
        return [
            PricingTierResponse(duration=tier.duration, price=tier.price)
            for tier in sorted(listing.pricing, key=lambda tier: tier.position)
        ]
