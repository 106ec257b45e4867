"""
Pydantic schemas for listing requests and responses.
Handles listing field validation, pricing tiers and photo selection on update.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
import uuid

from marketplace_api.schemas.photo import PhotoUpload, PhotoView, EditablePhoto
from marketplace_api.utils.exceptions import ValidationError
from marketplace_api.utils.validators import ValidationUtils


class PricingTierInput(BaseModel):
    """Price for one service duration."""

    duration: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Duration label",
        examples=["1h"]
    )

    price: int = Field(
        ...,
        ge=0,
        description="Price in the smallest currency unit",
        examples=[5000]
    )

    @field_validator("duration")
    @classmethod
    def strip_duration(cls, v):
        if not v.strip():
            raise ValueError("Duration cannot be empty")
        return v.strip()


class PricingTierResponse(BaseModel):
    duration: str
    price: int


class ListingFields(BaseModel):
    """Scalar listing fields shared by create and update."""

    title: str = Field(..., min_length=1, max_length=200, examples=["Studio A"])
    description: str = Field(..., min_length=1, examples=["Bright studio close to the station"])
    location: str = Field(..., min_length=1, max_length=255, examples=["Soho"])
    phone: str = Field(
        ...,
        description="UK phone number: +44 followed by 10 digits",
        examples=["+447911123456"]
    )
    city: str = Field(..., min_length=1, max_length=100, examples=["London"])
    postcode_outcode: str = Field(..., min_length=2, max_length=4, examples=["W1"])
    postcode_incode: str = Field(..., min_length=3, max_length=3, examples=["1AA"])
    in_call: bool = False
    out_call: bool = False

    @field_validator("title", "description", "location", "city")
    @classmethod
    def validate_text(cls, v, info):
        """Reject whitespace-only text."""
        try:
            return ValidationUtils.validate_required_text(v, info.field_name)
        except ValidationError as e:
            raise ValueError(e.detail)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        try:
            return ValidationUtils.validate_uk_phone(v)
        except ValidationError as e:
            raise ValueError(e.detail)

    @model_validator(mode="after")
    def validate_postcode(self):
        try:
            self.postcode_outcode, self.postcode_incode = ValidationUtils.validate_postcode(
                self.postcode_outcode, self.postcode_incode
            )
        except ValidationError as e:
            raise ValueError(e.detail)
        return self

    def listing_fields(self) -> dict:
        return self.model_dump(include=set(ListingFields.model_fields))


class ListingCreate(ListingFields):
    """Schema for creating a listing."""

    pricing: List[PricingTierInput] = Field(default_factory=list)

    photo_ids: List[uuid.UUID] = Field(
        default_factory=list,
        max_length=5,
        description="Unattached photos of the caller to attach to the new listing"
    )

    main_photo_id: Optional[uuid.UUID] = Field(
        None,
        description="Which of photo_ids becomes the main photo"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
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
        }
    }


class ListingUpdate(ListingFields):
    """
    Schema for updating a listing.

    keep_images lists the photos (keys or previously issued URLs) to keep;
    every other photo of the listing is deleted. Omit it to keep all photos.
    The main image is chosen either by new_main_image_url among the kept
    photos, or by index into new_files when main_image_is_new_file is set.
    """

    pricing: Optional[List[PricingTierInput]] = Field(
        None,
        description="Replaces every pricing tier when given"
    )

    keep_images: Optional[List[str]] = None
    new_main_image_url: Optional[str] = None
    main_image_is_new_file: bool = False
    main_image_new_file_index: Optional[int] = Field(None, ge=0)
    new_files: List[PhotoUpload] = Field(default_factory=list, max_length=5)

    @model_validator(mode="after")
    def validate_main_image(self):
        if self.main_image_is_new_file:
            if self.main_image_new_file_index is None:
                raise ValueError("main_image_new_file_index is required when main_image_is_new_file is set")
            if self.main_image_new_file_index >= len(self.new_files):
                raise ValueError("main_image_new_file_index does not point at an uploaded file")
        return self


class ListingSummary(BaseModel):
    """Listing card with the main photo only."""

    id: uuid.UUID
    title: str
    location: str
    city: str
    image: Optional[str] = Field(None, description="Signed URL of the main photo")


class ListingDetail(BaseModel):
    """Public listing page. Contact details are only available through the reveal endpoint."""

    id: uuid.UUID
    title: str
    description: str
    location: str
    city: str
    postcode_outcode: str
    in_call: bool
    out_call: bool
    photos: List[PhotoView]
    pricing: List[PricingTierResponse]


class EditableListing(BaseModel):
    """Full listing detail for its owner."""

    id: uuid.UUID
    title: str
    description: str
    location: str
    phone: str
    city: str
    postcode_outcode: str
    postcode_incode: str
    in_call: bool
    out_call: bool
    photos: List[EditablePhoto]
    pricing: List[PricingTierResponse]
    created_at: Optional[datetime] = None


class PhoneRevealResponse(BaseModel):
    phone: str
