"""
User repository for authentication and account lookups.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace_api.repositories.base import BaseRepository
from marketplace_api.models.user import User, UserRole
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, db: AsyncSession, auto_commit: bool = True):
        super().__init__(User, db, auto_commit=auto_commit)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user.

        Args:
            user_data: Must include email, hashed_password, full_name.
                       Optional: role (defaults to USER), is_active

        Returns:
            Created user instance

        Raises:
            ValueError: If the email is invalid or already registered
        """
        try:
            email = User.validate_email_format(user_data["email"])

            existing_user = await self.get_by_email(email)
            if existing_user:
                raise ValueError(f"User with email {email} already exists")

            create_data = {
                **user_data,
                "email": email,
                "role": user_data.get("role", UserRole.USER),
                "is_active": user_data.get("is_active", True)
            }

            created_user = await self.create(create_data)
            logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
            return created_user
        except ValueError as e:
            logger.error(f"User validation failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)."""
        try:
            normalized_email = email.lower().strip()
            result = await self.db.execute(select(User).where(User.email == normalized_email))
            user = result.scalar_one_or_none()

            if user:
                logger.debug(f"Retrieved user by email: {email}")
            else:
                logger.debug(f"User with email {email} not found")

            return user
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise
