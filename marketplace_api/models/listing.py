"""
Listing and pricing tier models.
A listing is a location-tagged service offer with contact details, photos and pricing tiers.
"""

from sqlalchemy import String, Text, Boolean, Integer, ForeignKey, Index, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marketplace_api.database import Base
import uuid
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace_api.models.user import User
    from marketplace_api.models.photo import ListingPhoto


class Listing(Base):
    """Listing record owned by exactly one user."""

    __tablename__ = "listings"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who owns this listing"
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Listing description"
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Free-text location shown to visitors"
    )

    phone: Mapped[str] = mapped_column(
        String(13),
        nullable=False,
        comment="UK phone number in +44XXXXXXXXXX form"
    )

    city: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="City name"
    )

    postcode_outcode: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
        comment="Outward part of the UK postcode, e.g. W1"
    )

    postcode_incode: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        comment="Inward part of the UK postcode, e.g. 1AA"
    )

    in_call: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether the service is offered at the listing location"
    )

    out_call: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether the service is offered at the client's location"
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="listings",
        lazy="raise"
    )

    photos: Mapped[List["ListingPhoto"]] = relationship(
        "ListingPhoto",
        back_populates="listing",
        passive_deletes=True,
        order_by="ListingPhoto.uploaded_at",
        lazy="selectin"
    )

    pricing: Mapped[List["PricingTier"]] = relationship(
        "PricingTier",
        back_populates="listing",
        passive_deletes=True,
        order_by="PricingTier.position",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title}, owner_id={self.owner_id})>"

    @property
    def postcode(self) -> str:
        """Full postcode in display form, e.g. 'W1 1AA'."""
        return f"{self.postcode_outcode} {self.postcode_incode}"

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id


class PricingTier(Base):
    """Price for a service duration; replaced wholesale on each listing update."""

    __tablename__ = "listing_pricing"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID of the listing this tier belongs to"
    )

    duration: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Duration label, e.g. 1h"
    )

    price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Price in the smallest currency unit"
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Order in which the tier was supplied"
    )

    listing: Mapped["Listing"] = relationship(
        "Listing",
        back_populates="pricing",
        lazy="raise"
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_listing_pricing_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<PricingTier(listing_id={self.listing_id}, duration={self.duration}, price={self.price})>"


# Postcode lookups filter on both halves together
listing_postcode_index = Index(
    "idx_listings_postcode",
    Listing.postcode_outcode,
    Listing.postcode_incode
)

listing_owner_created_index = Index(
    "idx_listings_owner_created",
    Listing.owner_id,
    Listing.created_at.desc()
)

pricing_listing_index = Index(
    "idx_listing_pricing_listing_id",
    PricingTier.listing_id,
    PricingTier.position
)
