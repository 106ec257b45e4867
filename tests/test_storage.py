"""
Tests for the object storage gateway against a real boto3 client with stubbed responses.
"""

import io
import uuid

import pytest
from botocore.stub import Stubber, ANY
from PIL import Image

from marketplace_api.config import StorageConfig
from marketplace_api.services.storage import ObjectStorageGateway
from marketplace_api.utils.exceptions import (
    AccessError,
    InvalidUrlError,
    StorageDeleteError,
    UploadError,
)
from tests.conftest import TEST_BUCKET, make_image_bytes


def make_gateway(addressing_style: str = "virtual", **overrides) -> ObjectStorageGateway:
    config = StorageConfig(
        endpoint_url="https://nyc3.digitaloceanspaces.com",
        region="nyc3",
        bucket=TEST_BUCKET,
        access_key_id="test-access-key",
        secret_access_key="test-secret-key",
        addressing_style=addressing_style,
        **overrides
    )
    return ObjectStorageGateway(config)


@pytest.fixture
def gateway() -> ObjectStorageGateway:
    return make_gateway()


@pytest.fixture
def stubber(gateway: ObjectStorageGateway):
    with Stubber(gateway.client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestUpload:
    """Image re-encoding and storage."""

    @pytest.mark.asyncio
    async def test_upload_image_stores_webp_under_owner_prefix(self, gateway, stubber):
        owner_id = uuid.uuid4()
        stubber.add_response(
            "put_object",
            {"ETag": '"abc"'},
            {"Bucket": TEST_BUCKET, "Key": ANY, "Body": ANY, "ContentType": "image/webp"}
        )

        key = await gateway.upload_image(make_image_bytes("JPEG"), owner_id)

        assert key.startswith(f"photos/user-{owner_id}/")
        assert key.endswith(".webp")

    @pytest.mark.asyncio
    async def test_upload_image_rejects_corrupt_image(self, gateway, stubber):
        with pytest.raises(UploadError):
            await gateway.upload_image(b"\xff\xd8\xff" + b"not really a jpeg", uuid.uuid4())

    @pytest.mark.asyncio
    async def test_upload_image_store_failure(self, gateway, stubber):
        stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)

        with pytest.raises(UploadError) as exc_info:
            await gateway.upload_image(make_image_bytes("PNG"), uuid.uuid4())

        assert exc_info.value.error_code == "UPLOAD_ERROR"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_upload_images_empty_batch(self, gateway, stubber):
        assert await gateway.upload_images([], uuid.uuid4()) == []


class TestReEncoding:
    """Pillow re-encoding through the configured limits."""

    @pytest.mark.asyncio
    async def test_large_image_is_fitted_into_bounding_box(self, storage, s3_client):
        key = await storage.upload_image(make_image_bytes("JPEG", size=(2400, 1200)), uuid.uuid4())

        with Image.open(io.BytesIO(s3_client.objects[key]["Body"])) as img:
            assert img.format == "WEBP"
            assert img.width <= 1200
            assert img.height <= 800
            assert img.size == (1200, 600)

    @pytest.mark.asyncio
    async def test_small_image_is_not_enlarged(self, storage, s3_client):
        key = await storage.upload_image(make_image_bytes("PNG", size=(64, 48)), uuid.uuid4())

        with Image.open(io.BytesIO(s3_client.objects[key]["Body"])) as img:
            assert img.size == (64, 48)

    @pytest.mark.asyncio
    async def test_gif_is_converted(self, storage, s3_client):
        key = await storage.upload_image(make_image_bytes("GIF"), uuid.uuid4())

        assert s3_client.objects[key]["ContentType"] == "image/webp"

    @pytest.mark.asyncio
    async def test_batch_upload_is_all_or_nothing(self, storage, s3_client):
        s3_client.put_limit = 1

        with pytest.raises(UploadError):
            await storage.upload_images([make_image_bytes("PNG") for _ in range(3)], uuid.uuid4())

        assert s3_client.objects == {}


class TestSignedUrls:
    """Signed URL generation and key recovery."""

    @pytest.mark.asyncio
    async def test_round_trip_virtual_host_style(self, gateway):
        key = gateway.build_key(uuid.uuid4())

        url = await gateway.generate_signed_url(key, 3600)

        assert "X-Amz-Signature=" in url
        assert "X-Amz-Expires=3600" in url
        assert gateway.extract_key_from_url(url) == key

    @pytest.mark.asyncio
    async def test_round_trip_path_style(self):
        gateway = make_gateway(addressing_style="path")
        key = gateway.build_key(uuid.uuid4())

        url = await gateway.generate_signed_url(key, 600)

        assert f"/{TEST_BUCKET}/" in url
        assert gateway.extract_key_from_url(url) == key

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, gateway):
        with pytest.raises(InvalidUrlError):
            await gateway.generate_signed_url("", 3600)

    @pytest.mark.asyncio
    async def test_missing_object_with_existence_check(self, gateway, stubber):
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        with pytest.raises(AccessError):
            await gateway.generate_signed_url("photos/user-x/missing.webp", 3600, verify_exists=True)

    @pytest.mark.asyncio
    async def test_batch_omits_failing_keys(self, storage, s3_client):
        good = storage.build_key(uuid.uuid4())
        bad = storage.build_key(uuid.uuid4())
        s3_client.unsignable.add(bad)

        urls = await storage.generate_signed_urls([good, bad, ""], 3600)

        assert list(urls) == [good]


class TestExtractKey:
    """URL to key parsing."""

    def test_bare_key_passes_through(self, gateway):
        assert gateway.extract_key_from_url("photos/user-1/abc.webp") == "photos/user-1/abc.webp"

    def test_public_url_without_query(self, gateway):
        url = f"https://{TEST_BUCKET}.nyc3.digitaloceanspaces.com/photos/user-1/abc.webp"
        assert gateway.extract_key_from_url(url) == "photos/user-1/abc.webp"

    def test_percent_encoded_path(self, gateway):
        url = f"https://{TEST_BUCKET}.nyc3.digitaloceanspaces.com/photos/user-1/a%20b.webp?X-Amz-Signature=x"
        assert gateway.extract_key_from_url(url) == "photos/user-1/a b.webp"

    @pytest.mark.parametrize("value", ["", "   ", "ftp://host/photos/x.webp", "https://host.example/"])
    def test_invalid_input(self, gateway, value):
        with pytest.raises(InvalidUrlError):
            gateway.extract_key_from_url(value)


class TestDelete:
    """Object deletion."""

    @pytest.mark.asyncio
    async def test_delete_image(self, gateway, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": TEST_BUCKET, "Key": "photos/user-1/abc.webp"})

        await gateway.delete_image("photos/user-1/abc.webp")

    @pytest.mark.asyncio
    async def test_missing_object_counts_as_deleted(self, gateway, stubber):
        stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)

        await gateway.delete_image("photos/user-1/gone.webp")

    @pytest.mark.asyncio
    async def test_delete_failure(self, gateway, stubber):
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(StorageDeleteError) as exc_info:
            await gateway.delete_image("photos/user-1/abc.webp")

        assert exc_info.value.error_code == "DELETE_ERROR"

    @pytest.mark.asyncio
    async def test_key_outside_prefix_rejected(self, gateway, stubber):
        with pytest.raises(InvalidUrlError):
            await gateway.delete_image("other/user-1/abc.webp")

    @pytest.mark.asyncio
    async def test_discard_images_only_logs_failures(self, storage, s3_client):
        s3_client.fail_delete = True

        await storage.discard_images(["photos/user-1/a.webp", "photos/user-1/b.webp"])

    @pytest.mark.asyncio
    async def test_delete_images_attempts_every_key(self, storage, s3_client):
        keys = ["photos/user-1/a.webp", "photos/user-1/b.webp", "photos/user-1/c.webp"]
        for key in keys:
            s3_client.objects[key] = {"Body": b"x", "ContentType": "image/webp"}
        s3_client.undeletable = {keys[0]}

        failures = await storage.delete_images(keys + [keys[1]])

        assert list(failures) == [keys[0]]
        assert isinstance(failures[keys[0]], StorageDeleteError)
        assert list(s3_client.objects) == [keys[0]]
        assert sorted(s3_client.deleted) == keys[1:]

    @pytest.mark.asyncio
    async def test_delete_images_success(self, storage, s3_client):
        assert await storage.delete_images(["photos/user-1/a.webp"]) == {}
