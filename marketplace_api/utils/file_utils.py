"""
Photo payload utilities: base64 decoding, signature-based type detection and Pillow re-encoding.
"""

import base64
import binascii
import io
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from PIL import Image, ImageOps

from marketplace_api.config import get_settings
from marketplace_api.utils.exceptions import InvalidImageError, PhotoLimitExceededError

settings = get_settings()


@dataclass(frozen=True)
class DecodedPhoto:
    """A validated upload: raw bytes plus the type detected from its signature."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class PhotoPayloadValidator:
    """Validation for base64 encoded photo payloads."""

    SUPPORTED_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

    # Maximum decoded size (10MB by default)
    MAX_FILE_SIZE = settings.max_photo_size

    @staticmethod
    def detect_image_type(data: bytes) -> Optional[str]:
        """
        Detect the image type from the leading magic bytes.

        Args:
            data: Raw file content

        Returns:
            MIME type, or None when the signature is not a supported image
        """
        if data[:3] == b"\xff\xd8\xff":
            return "image/jpeg"
        if data[:8] == b"\x89PNG\r\n\x1a\n":
            return "image/png"
        if data[:6] in (b"GIF87a", b"GIF89a"):
            return "image/gif"
        if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
            return "image/webp"
        return None

    @staticmethod
    def decode_base64(payload: str, name: Optional[str] = None) -> bytes:
        """
        Decode a base64 payload, with or without a data URL prefix.

        Raises:
            InvalidImageError: If the payload is not valid base64
        """
        if payload.startswith("data:"):
            header, _, payload = payload.partition(",")
            if not header.endswith(";base64"):
                raise InvalidImageError("data URL is not base64 encoded", name)

        try:
            return base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError):
            raise InvalidImageError("payload is not valid base64", name)

    @classmethod
    def validate_payload(
        cls,
        name: str,
        declared_type: Optional[str],
        payload: str,
        max_size: Optional[int] = None
    ) -> DecodedPhoto:
        """
        Decode and validate a single photo payload.

        The declared content type is informational only; the stored type is
        whatever the file signature says.

        Raises:
            InvalidImageError: If the payload is empty, too large or not a supported image
        """
        data = cls.decode_base64(payload, name)

        if not data:
            raise InvalidImageError("file is empty", name)

        max_allowed = max_size or cls.MAX_FILE_SIZE
        if len(data) > max_allowed:
            max_mb = max_allowed / (1024 * 1024)
            actual_mb = len(data) / (1024 * 1024)
            raise InvalidImageError(
                f"file size ({actual_mb:.1f}MB) exceeds maximum allowed size ({max_mb:.1f}MB)", name
            )

        detected = cls.detect_image_type(data)
        if detected is None:
            supported = ", ".join(cls.SUPPORTED_TYPES)
            raise InvalidImageError(f"unsupported file content. Supported types: {supported}", name)

        return DecodedPhoto(name=name, content_type=detected, data=data)

    @classmethod
    def validate_batch(
        cls,
        photos: Sequence[Tuple[str, Optional[str], str]],
        max_count: Optional[int] = None,
        max_size: Optional[int] = None
    ) -> List[DecodedPhoto]:
        """
        Validate every photo of an upload request before anything is stored.

        Args:
            photos: (name, declared content type, base64 payload) triples
            max_count: Maximum number of photos in one request

        Raises:
            PhotoLimitExceededError: If the request carries too many photos
            InvalidImageError: If any payload is invalid
        """
        limit = max_count or settings.max_photos_per_scope
        if len(photos) > limit:
            raise PhotoLimitExceededError(limit)

        return [
            cls.validate_payload(name, declared_type, payload, max_size=max_size)
            for name, declared_type, payload in photos
        ]


class ImageProcessor:
    """Pillow based image re-encoding. All methods are blocking."""

    @staticmethod
    def _prepare(img: Image.Image) -> Image.Image:
        img = ImageOps.exif_transpose(img)
        has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
        return img.convert("RGBA" if has_alpha else "RGB")

    @staticmethod
    def to_webp(data: bytes, max_width: int, max_height: int, quality: int) -> bytes:
        """
        Fit the image inside max_width x max_height (never enlarging) and encode it as WebP.

        Raises:
            OSError: If Pillow cannot decode or encode the image
        """
        with Image.open(io.BytesIO(data)) as source:
            img = ImageProcessor._prepare(source)
            img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)

            output = io.BytesIO()
            img.save(output, format="WEBP", quality=quality)
            return output.getvalue()
