"""
Object storage gateway for listing photos.
Wraps an S3 compatible bucket: uploads re-encoded images, issues signed URLs,
deletes objects and maps URLs back to object keys.
"""

import asyncio
import logging
import uuid
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse, unquote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image

from marketplace_api.config import StorageConfig, get_settings
from marketplace_api.utils.exceptions import (
    AccessError,
    InvalidUrlError,
    StorageDeleteError,
    StorageError,
    UploadError,
    ValidationError,
)
from marketplace_api.utils.file_utils import ImageProcessor

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPE = "image/webp"
_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
_IMAGE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


class ObjectStorageGateway:
    """
    Gateway to the photo bucket.

    Callers only ever store object keys. URLs handed to clients are signed and
    expire, so the database never holds a URL.
    """

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.bucket = config.bucket
        self.client = client or self._create_client(config)

    @staticmethod
    def _create_client(config: StorageConfig):
        return boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": config.addressing_style},
            ),
        )

    def build_key(self, owner_id: uuid.UUID) -> str:
        """Object key for a new image of the given owner."""
        return f"{self.config.key_prefix}/user-{owner_id}/{uuid.uuid4()}.webp"

    async def upload_image(
        self,
        data: bytes,
        owner_id: uuid.UUID,
        *,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
        quality: Optional[int] = None
    ) -> str:
        """
        Re-encode an image to WebP and store it.

        Args:
            data: Raw image bytes (JPEG, PNG, WebP or GIF)
            owner_id: User the object key is namespaced under
            max_width: Bounding box width, defaults to the configured value
            max_height: Bounding box height, defaults to the configured value
            quality: WebP quality, defaults to the configured value

        Returns:
            Object key of the stored image

        Raises:
            UploadError: If the image cannot be re-encoded or the write fails
        """
        try:
            encoded = await asyncio.to_thread(
                ImageProcessor.to_webp,
                data,
                max_width or self.config.image_max_width,
                max_height or self.config.image_max_height,
                quality or self.config.image_quality,
            )
        except _IMAGE_ERRORS as e:
            logger.error(f"Failed to re-encode image for user {owner_id}: {e}")
            raise UploadError(f"could not process image ({e})")

        key = self.build_key(owner_id)
        await self._put(key, encoded)
        logger.info(f"Uploaded image {key} ({len(encoded)} bytes)")
        return key

    async def upload_images(self, images: Sequence[bytes], owner_id: uuid.UUID) -> List[str]:
        """
        Upload several images concurrently.

        Either every image is stored or none is: when any upload fails the
        ones that succeeded are removed again and the first failure is raised.

        Returns:
            Object keys in the same order as the input
        """
        if not images:
            return []

        results = await asyncio.gather(
            *(self.upload_image(data, owner_id) for data in images),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            await self.discard_images([result for result in results if isinstance(result, str)])
            failure = failures[0]
            if isinstance(failure, StorageError):
                raise failure
            raise UploadError(str(failure))

        return list(results)

    async def discard_images(self, keys: Iterable[str]) -> None:
        """Best-effort removal of objects that no row references. Failures are only logged."""
        for key in keys:
            try:
                await self.delete_image(key)
            except (StorageError, ValidationError) as e:
                logger.warning(f"Left orphaned object {key}: {e}")

    async def _put(self, key: str, body: bytes) -> None:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=IMAGE_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to store object {key}: {e}")
            raise UploadError(f"object store rejected the write ({e})")

    async def generate_signed_url(self, key: str, ttl_seconds: int, verify_exists: bool = False) -> str:
        """
        Create a time-limited GET URL for an object.

        Args:
            key: Object key
            ttl_seconds: Lifetime of the URL
            verify_exists: Check the object exists before signing

        Raises:
            InvalidUrlError: If the key is empty
            AccessError: If the object is missing or the URL cannot be signed
        """
        if not key:
            raise InvalidUrlError(key)

        try:
            if verify_exists:
                await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)

            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise AccessError(f"object {key} does not exist")
            raise AccessError(str(e))
        except BotoCoreError as e:
            raise AccessError(str(e))

    async def generate_signed_urls(self, keys: Iterable[str], ttl_seconds: int) -> Dict[str, str]:
        """
        Sign several keys concurrently.

        Keys that fail to sign are logged and left out of the result.

        Returns:
            Mapping of object key to signed URL
        """
        unique_keys = list(dict.fromkeys(keys))

        async def _sign(key: str):
            try:
                return key, await self.generate_signed_url(key, ttl_seconds)
            except (StorageError, ValidationError) as e:
                logger.warning(f"Omitting signed URL for {key!r}: {e}")
                return key, None

        results = await asyncio.gather(*(_sign(key) for key in unique_keys))
        return {key: url for key, url in results if url}

    async def delete_image(self, key: str) -> None:
        """
        Delete an object. A missing object counts as deleted.

        Raises:
            InvalidUrlError: If the key is outside the photo prefix
            StorageDeleteError: If the object store call fails
        """
        if not key or not key.startswith(f"{self.config.key_prefix}/"):
            raise InvalidUrlError(key)

        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
            logger.info(f"Deleted object {key}")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                logger.warning(f"Object {key} was already absent")
                return
            logger.error(f"Failed to delete object {key}: {e}")
            raise StorageDeleteError(str(e))
        except BotoCoreError as e:
            logger.error(f"Failed to delete object {key}: {e}")
            raise StorageDeleteError(str(e))

    async def delete_images(self, keys: Iterable[str]) -> Dict[str, Exception]:
        """
        Delete several objects concurrently.

        Every key is attempted even when some fail, so callers can tell which
        objects are already gone.

        Returns:
            Mapping of each key that could not be deleted to its error; empty on success
        """
        unique_keys = list(dict.fromkeys(keys))
        results = await asyncio.gather(
            *(self.delete_image(key) for key in unique_keys),
            return_exceptions=True,
        )

        failures = {}
        for key, result in zip(unique_keys, results):
            if isinstance(result, (StorageError, ValidationError)):
                failures[key] = result
            elif isinstance(result, BaseException):
                raise result
        return failures

    def extract_key_from_url(self, url: str) -> str:
        """
        Recover the object key from a signed or public URL.

        Values without an http(s) scheme are treated as keys already and returned unchanged.

        Raises:
            InvalidUrlError: If the value is empty or no key can be recovered
        """
        if not url or not url.strip():
            raise InvalidUrlError(url)

        value = url.strip()
        try:
            parsed = urlparse(value)
        except ValueError:
            raise InvalidUrlError(url)

        if not parsed.scheme:
            return value
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidUrlError(url)

        key = unquote(parsed.path).lstrip("/")

        # Path-style URLs carry the bucket as the first path segment
        bucket_prefix = f"{self.bucket}/"
        if key.startswith(bucket_prefix) and not parsed.netloc.startswith(f"{self.bucket}."):
            key = key[len(bucket_prefix):]

        if not key:
            raise InvalidUrlError(url)
        return key


@lru_cache()
def get_storage_gateway() -> ObjectStorageGateway:
    """Storage gateway built from application settings, shared across requests."""
    return ObjectStorageGateway(get_settings().storage_config())
