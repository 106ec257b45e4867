"""
ListingPhoto model for uploaded listing images.
Photos are uploaded first and attached to a listing later; rows only hold the object storage key.
"""

from sqlalchemy import String, Boolean, ForeignKey, Index, DateTime, Uuid, func, true
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marketplace_api.database import Base
import uuid
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace_api.models.listing import Listing


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ListingPhoto(Base):
    """
    Photo owned by a user, optionally attached to a listing.
    A null listing_id marks an unattached upload.
    """

    __tablename__ = "listing_photos"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID of the user who uploaded this photo"
    )

    listing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=True,
        comment="ID of the listing this photo is attached to, null while unattached"
    )

    object_key: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Object storage key of the re-encoded image"
    )

    is_main: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether this is the representative photo of its scope"
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        comment="When the photo was uploaded"
    )

    listing: Mapped[Optional["Listing"]] = relationship(
        "Listing",
        back_populates="photos",
        lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<ListingPhoto(id={self.id}, listing_id={self.listing_id}, is_main={self.is_main})>"

    @property
    def is_attached(self) -> bool:
        return self.listing_id is not None


# Scope listing: photos of one owner in one listing (or unattached), main first
photo_scope_index = Index(
    "idx_listing_photos_scope",
    ListingPhoto.user_id,
    ListingPhoto.listing_id,
    ListingPhoto.uploaded_at
)

photo_listing_index = Index(
    "idx_listing_photos_listing_id",
    ListingPhoto.listing_id,
    ListingPhoto.is_main.desc()
)

# At most one main photo per listing
main_photo_per_listing_index = Index(
    "uq_listing_photos_main_per_listing",
    ListingPhoto.listing_id,
    unique=True,
    postgresql_where=(ListingPhoto.is_main == true()) & ListingPhoto.listing_id.isnot(None),
    sqlite_where=(ListingPhoto.is_main == true()) & ListingPhoto.listing_id.isnot(None)
)

# At most one main photo among a user's unattached uploads
main_photo_per_unattached_scope_index = Index(
    "uq_listing_photos_main_unattached",
    ListingPhoto.user_id,
    unique=True,
    postgresql_where=(ListingPhoto.is_main == true()) & ListingPhoto.listing_id.is_(None),
    sqlite_where=(ListingPhoto.is_main == true()) & ListingPhoto.listing_id.is_(None)
)
