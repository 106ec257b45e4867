"""
Test configuration and fixtures for the listings marketplace API.
Provides database fixtures, an in-memory object store, test data factories and common test utilities.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"

import base64
import io
import uuid
from typing import AsyncGenerator, Dict, Optional

import pytest
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import marketplace_api.models  # noqa: F401
from marketplace_api.config import StorageConfig
from marketplace_api.database import Base, get_db, enable_sqlite_foreign_keys
from marketplace_api.main import app
from marketplace_api.models.user import User, UserRole
from marketplace_api.repositories.user import UserRepository
from marketplace_api.schemas.listing import ListingCreate
from marketplace_api.schemas.photo import PhotoUpload
from marketplace_api.services.listing import ListingService
from marketplace_api.services.photo import PhotoService
from marketplace_api.services.storage import ObjectStorageGateway, get_storage_gateway
from marketplace_api.utils.auth import create_access_token, hash_password


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_BUCKET = "test-bucket"
TEST_PASSWORD = "testpassword123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class InMemoryS3Client:
    """
    Stand-in for a boto3 S3 client that keeps objects in a dict.

    Failure injection:
        put_limit: number of puts that succeed before every further put fails
        fail_delete: every delete fails
        undeletable: keys whose delete fails
        unsignable: keys for which URL signing fails
    """

    def __init__(self):
        self.objects: Dict[str, dict] = {}
        self.put_limit: Optional[int] = None
        self.fail_delete = False
        self.undeletable = set()
        self.unsignable = set()
        self.put_count = 0
        self.deleted = []

    @staticmethod
    def _error(code: str, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": f"{operation} failed"}}, operation)

    def put_object(self, Bucket, Key, Body, ContentType=None, **kwargs):
        if self.put_limit is not None and self.put_count >= self.put_limit:
            raise self._error("InternalError", "PutObject")
        self.put_count += 1
        self.objects[Key] = {"Body": Body, "ContentType": ContentType}
        return {"ETag": '"test"'}

    def delete_object(self, Bucket, Key, **kwargs):
        if self.fail_delete or Key in self.undeletable:
            raise self._error("InternalError", "DeleteObject")
        self.objects.pop(Key, None)
        self.deleted.append(Key)
        return {}

    def head_object(self, Bucket, Key, **kwargs):
        if Key not in self.objects:
            raise self._error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key]["Body"])}

    def generate_presigned_url(self, ClientMethod, Params=None, ExpiresIn=3600, **kwargs):
        key = Params["Key"]
        if key in self.unsignable:
            raise self._error("AccessDenied", "GeneratePresignedUrl")
        return (
            f"https://{Params['Bucket']}.storage.test/{key}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=test"
        )


def make_image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    """Encode a solid colour image in the given format."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    img = Image.new(mode, size, fill)
    if fmt == "GIF":
        img = img.convert("P")

    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


def photo_payload(name: str = "photo.png", fmt: str = "PNG", **kwargs) -> PhotoUpload:
    data = make_image_bytes(fmt, **kwargs)
    return PhotoUpload(
        name=name,
        type=f"image/{fmt.lower()}",
        data=base64.b64encode(data).decode("ascii")
    )


def photo_payload_dict(name: str = "photo.png", fmt: str = "PNG") -> dict:
    return photo_payload(name, fmt).model_dump()


def listing_data(**overrides) -> dict:
    data = {
        "title": "Studio A",
        "description": "desc",
        "location": "Soho",
        "phone": "+447911123456",
        "city": "London",
        "postcode_outcode": "W1",
        "postcode_incode": "1AA",
        "in_call": True,
        "out_call": False,
        "pricing": [{"duration": "1h", "price": 5000}],
    }
    data.update(overrides)
    return data


def auth_headers(user_id: uuid.UUID, email: str, role: UserRole = UserRole.USER) -> dict:
    token = create_access_token(user_id=user_id, email=email, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
def s3_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        endpoint_url="https://nyc3.digitaloceanspaces.com",
        region="nyc3",
        bucket=TEST_BUCKET,
        access_key_id="test-access-key",
        secret_access_key="test-secret-key",
    )


@pytest.fixture
def storage(storage_config: StorageConfig, s3_client: InMemoryS3Client) -> ObjectStorageGateway:
    return ObjectStorageGateway(storage_config, client=s3_client)


@pytest.fixture
def photo_service(db_session: AsyncSession, storage: ObjectStorageGateway) -> PhotoService:
    return PhotoService(db_session, storage)


@pytest.fixture
def listing_service(db_session: AsyncSession, storage: ObjectStorageGateway) -> ListingService:
    return ListingService(db_session, storage)


class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        db_session: AsyncSession,
        email: str = None,
        full_name: str = "Test User",
        role: UserRole = UserRole.USER,
        is_active: bool = True
    ) -> User:
        return await UserRepository(db_session).create_user({
            "email": email or f"test{uuid.uuid4().hex[:8]}@example.com",
            "hashed_password": TEST_PASSWORD_HASH,
            "full_name": full_name,
            "role": role,
            "is_active": is_active,
        })


@pytest.fixture
async def owner(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(db_session, email="owner@example.com", full_name="Listing Owner")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(db_session, email="other@example.com", full_name="Other User")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(
        db_session, email="admin@example.com", full_name="Admin User", role=UserRole.ADMIN
    )


@pytest.fixture
async def owner_id(owner: User) -> uuid.UUID:
    return owner.id


@pytest.fixture
async def other_user_id(other_user: User) -> uuid.UUID:
    return other_user.id


@pytest.fixture
async def unattached_photos(photo_service: PhotoService, owner_id: uuid.UUID):
    """Five unattached uploads of the owner."""
    return await photo_service.upload_photos(
        owner_id, [photo_payload(f"photo{i}.png") for i in range(5)]
    )


@pytest.fixture
async def listing_id(listing_service: ListingService, owner_id: uuid.UUID) -> uuid.UUID:
    listing = await listing_service.create_listing(owner_id, ListingCreate(**listing_data()))
    return listing.id


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    storage: ObjectStorageGateway
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client sharing the test session and the in-memory object store."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_gateway] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers(owner: User) -> dict:
    return auth_headers(owner.id, owner.email)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return auth_headers(other_user.id, other_user.email)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user.id, admin_user.email, UserRole.ADMIN)
