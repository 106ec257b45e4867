"""
Authentication service for registration, login and token validation.
"""

from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace_api.repositories.user import UserRepository
from marketplace_api.models.user import User
from marketplace_api.schemas.auth import RegisterRequest
from marketplace_api.utils.auth import (
    create_access_token,
    verify_token,
    hash_password,
    verify_password,
)
from marketplace_api.utils.exceptions import (
    APIException,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    NotFoundError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for user accounts.
    Handles registration, credential checks and access token handling.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def register_user(self, data: RegisterRequest) -> User:
        """
        Register a new user account.

        Raises:
            DuplicateResourceError: If the email is already registered
            ValidationError: If the email or password is invalid
        """
        try:
            existing = await self.user_repo.get_by_email(data.email)
            if existing:
                raise DuplicateResourceError("User", data.email)

            user = await self.user_repo.create_user({
                "email": data.email,
                "hashed_password": hash_password(data.password),
                "full_name": data.full_name,
            })

            logger.info(f"User registered: {user.email} (ID: {user.id})")
            return user

        except APIException:
            raise
        except ValueError as e:
            raise ValidationError(str(e))
        except Exception as e:
            logger.error(f"Failed to register user {data.email}: {e}")
            raise BadRequestError(f"Failed to register user: {str(e)}")

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid
            InactiveUserError: If user account is inactive
        """
        try:
            if not email or not email.strip():
                raise ValidationError("Email is required")

            if not password or not password.strip():
                raise ValidationError("Password is required")

            user = await self.user_repo.get_by_email(email)

            if not user or not verify_password(password, user.hashed_password):
                logger.warning(f"Failed authentication attempt for email: {email}")
                raise InvalidCredentialsError()

            if not user.is_active:
                raise InactiveUserError()

            logger.info(f"User authenticated successfully: {user.email}")
            return user

        except (ValidationError, InvalidCredentialsError, InactiveUserError):
            raise
        except Exception as e:
            logger.error(f"Authentication error for {email}: {e}")
            raise InvalidCredentialsError()

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate user and create an access token.

        Returns:
            Tuple of (user, access_token)
        """
        user = await self.authenticate_user(email, password)
        access_token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role
        )

        return user, access_token

    async def get_current_user(self, token: str) -> User:
        """
        Get current user from access token.

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token is expired
            NotFoundError: If user not found
            InactiveUserError: If user account is inactive
        """
        try:
            token_payload = verify_token(token, token_type="access")
            user = await self.get_user_by_id(uuid.UUID(token_payload.user_id))

            if not user.is_active:
                raise InactiveUserError()

            return user

        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))
        except ValueError:
            raise InvalidTokenError("Invalid token subject")

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: If user not found
        """
        try:
            user = await self.user_repo.get_by_id(user_id)

            if not user:
                raise NotFoundError("User", str(user_id))

            return user

        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to get user by ID {user_id}: {e}")
            raise BadRequestError(f"Failed to retrieve user: {str(e)}")
