"""
Phone view repository. Append-only audit of phone number reveals.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from marketplace_api.repositories.base import BaseRepository
from marketplace_api.models.phone_view import PhoneView
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class PhoneViewRepository(BaseRepository[PhoneView]):

    def __init__(self, db: AsyncSession, auto_commit: bool = True):
        super().__init__(PhoneView, db, auto_commit=auto_commit)

    async def record(
        self,
        listing_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        ip_address: Optional[str]
    ) -> PhoneView:
        """Append one reveal event. Repeated reveals are never merged."""
        return await self.create({
            "listing_id": listing_id,
            "user_id": user_id,
            "ip_address": ip_address,
        })

    async def count_for_listing(self, listing_id: uuid.UUID) -> int:
        return await self.count({"listing_id": listing_id})
