"""
Pydantic schemas for listing photo uploads and responses.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid


class PhotoUpload(BaseModel):
    """A single base64 encoded photo."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Original file name",
        examples=["front.jpg"]
    )

    type: Optional[str] = Field(
        None,
        max_length=100,
        description="Declared MIME type; the stored type is detected from the file content",
        examples=["image/jpeg"]
    )

    data: str = Field(
        ...,
        min_length=1,
        description="Base64 encoded file content, optionally as a data URL"
    )


class PhotoUploadRequest(BaseModel):
    """Upload request for up to five photos."""

    photos: List[PhotoUpload] = Field(
        ...,
        min_length=1,
        max_length=5,
        description="Photos to upload"
    )

    listing_id: Optional[uuid.UUID] = Field(
        None,
        description="Listing to attach the photos to; omit to keep them unattached"
    )


class PhotoResponse(BaseModel):
    """Photo with a signed URL."""

    id: uuid.UUID
    listing_id: Optional[uuid.UUID] = None
    is_main: bool
    url: Optional[str] = Field(
        None,
        description="Time-limited URL; null when the URL could not be generated"
    )
    uploaded_at: Optional[datetime] = None


class PhotoView(BaseModel):
    """Photo as shown on a public listing page."""

    url: str
    is_main: bool


class EditablePhoto(BaseModel):
    """Photo as shown to the listing owner."""

    id: uuid.UUID
    key: str = Field(..., description="Object storage key; send it back in keep_images to keep the photo")
    url: Optional[str] = None
    is_main: bool


class SuccessResponse(BaseModel):
    success: bool = True
