"""
PhoneView audit model.
One row is appended for every phone number reveal.
"""

from sqlalchemy import String, ForeignKey, Index, DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column
from marketplace_api.database import Base
import uuid
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhoneView(Base):
    """Append-only record of a phone number disclosure."""

    __tablename__ = "phone_views"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID of the listing whose phone was revealed"
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Viewer ID, null for anonymous visitors"
    )

    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="Viewer IP address"
    )

    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        comment="When the phone was revealed"
    )

    def __repr__(self) -> str:
        return f"<PhoneView(listing_id={self.listing_id}, user_id={self.user_id}, ip={self.ip_address})>"


phone_views_listing_index = Index(
    "idx_phone_views_listing_viewed",
    PhoneView.listing_id,
    PhoneView.viewed_at.desc()
)
