"""
Tests for token helpers and the authentication service.
"""

import uuid
from datetime import timedelta

import pytest
from jose import JWTError

from marketplace_api.models.user import UserRole
from marketplace_api.schemas.auth import RegisterRequest
from marketplace_api.services.auth import AuthService
from marketplace_api.utils.auth import create_access_token, hash_password, verify_password, verify_token
from marketplace_api.utils.exceptions import (
    DuplicateResourceError,
    InactiveUserError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)
from tests.conftest import TEST_PASSWORD, UserFactory


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token(user_id=user_id, email="owner@example.com", role=UserRole.ADMIN)

        payload = verify_token(token)

        assert payload.user_id == str(user_id)
        assert payload.email == "owner@example.com"
        assert payload.role == "admin"
        assert payload.exp.tzinfo is not None

    def test_expired_token(self):
        token = create_access_token(
            user_id=uuid.uuid4(), email="owner@example.com", role=UserRole.USER,
            expires_delta=timedelta(seconds=-10)
        )

        with pytest.raises(JWTError):
            verify_token(token)

    def test_wrong_token_type(self):
        token = create_access_token(user_id=uuid.uuid4(), email="owner@example.com", role=UserRole.USER)

        with pytest.raises(JWTError, match="Invalid token type"):
            verify_token(token, token_type="refresh")

    def test_password_hashing(self):
        hashed = hash_password(TEST_PASSWORD)

        assert hashed != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, hashed)
        assert not verify_password("otherpassword", hashed)

    def test_short_password(self):
        with pytest.raises(ValueError, match="at least 8 characters"):
            hash_password("short")


class TestAuthService:

    @pytest.mark.asyncio
    async def test_register_user(self, db_session):
        user = await AuthService(db_session).register_user(RegisterRequest(
            email="new@example.com", password=TEST_PASSWORD, full_name="New User"
        ))

        assert user.email == "new@example.com"
        assert user.role == UserRole.USER
        assert verify_password(TEST_PASSWORD, user.hashed_password)

    @pytest.mark.asyncio
    async def test_register_duplicate(self, db_session, owner):
        with pytest.raises(DuplicateResourceError):
            await AuthService(db_session).register_user(RegisterRequest(
                email="owner@example.com", password=TEST_PASSWORD, full_name="Again"
            ))

    @pytest.mark.asyncio
    async def test_login(self, db_session, owner_id):
        user, token = await AuthService(db_session).login("owner@example.com", TEST_PASSWORD)

        assert user.id == owner_id
        assert verify_token(token).user_id == str(owner_id)

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, owner):
        with pytest.raises(InvalidCredentialsError):
            await AuthService(db_session).authenticate_user("owner@example.com", "wrongpassword")

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(InvalidCredentialsError):
            await AuthService(db_session).authenticate_user("nobody@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_empty_credentials(self, db_session):
        with pytest.raises(ValidationError):
            await AuthService(db_session).authenticate_user("", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_inactive_user(self, db_session):
        await UserFactory.create_user(db_session, email="inactive@example.com", is_active=False)

        with pytest.raises(InactiveUserError):
            await AuthService(db_session).authenticate_user("inactive@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_current_user_from_token(self, db_session, owner_id):
        token = create_access_token(user_id=owner_id, email="owner@example.com", role=UserRole.USER)

        user = await AuthService(db_session).get_current_user(token)

        assert user.id == owner_id

    @pytest.mark.asyncio
    async def test_current_user_with_expired_token(self, db_session, owner_id):
        token = create_access_token(
            user_id=owner_id, email="owner@example.com", role=UserRole.USER,
            expires_delta=timedelta(seconds=-10)
        )

        with pytest.raises(TokenExpiredError):
            await AuthService(db_session).get_current_user(token)

    @pytest.mark.asyncio
    async def test_current_user_with_garbage_token(self, db_session):
        with pytest.raises(InvalidTokenError):
            await AuthService(db_session).get_current_user("garbage")

    @pytest.mark.asyncio
    async def test_current_user_deleted(self, db_session):
        token = create_access_token(user_id=uuid.uuid4(), email="ghost@example.com", role=UserRole.USER)

        with pytest.raises(NotFoundError):
            await AuthService(db_session).get_current_user(token)
