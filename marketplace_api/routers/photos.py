"""
Photo API endpoints.
Handles base64 photo uploads, listing the caller's photos, deletion and main photo selection.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from marketplace_api.models.user import User
from marketplace_api.services.photo import PhotoService
from marketplace_api.schemas.photo import PhotoUploadRequest, PhotoResponse, SuccessResponse
from marketplace_api.schemas.error import error_responses
from marketplace_api.utils.dependencies import get_current_active_user, get_photo_service
from marketplace_api.utils.exceptions import APIException, BadRequestError

router = APIRouter(prefix="/photos", tags=["Photos"])


@router.post(
    "",
    response_model=List[PhotoResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Upload photos",
    description=(
        "Upload up to five base64 encoded JPEG, PNG or WebP photos of at most 10MB each. "
        "Photos are stored as WebP. Without listing_id they stay unattached until a listing is created."
    ),
    responses=error_responses(401, 403, 404, 422, 502)
)
async def upload_photos(
    upload: PhotoUploadRequest,
    current_user: User = Depends(get_current_active_user),
    photo_service: PhotoService = Depends(get_photo_service)
) -> List[PhotoResponse]:
    try:
        return await photo_service.upload_photos(current_user.id, upload.photos, upload.listing_id)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to upload photos: {str(e)}")


@router.get(
    "",
    response_model=List[PhotoResponse],
    summary="List my photos",
    description="Photos of one of the caller's listings, or the caller's unattached uploads.",
    responses=error_responses(401)
)
async def list_photos(
    listing_id: Optional[UUID] = Query(None, description="Listing ID; omit for unattached uploads"),
    current_user: User = Depends(get_current_active_user),
    photo_service: PhotoService = Depends(get_photo_service)
) -> List[PhotoResponse]:
    try:
        return await photo_service.list_photos(current_user.id, listing_id)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to list photos: {str(e)}")


@router.delete(
    "/{photo_id}",
    response_model=SuccessResponse,
    summary="Delete a photo",
    responses=error_responses(401, 403, 404, 502)
)
async def delete_photo(
    photo_id: UUID,
    current_user: User = Depends(get_current_active_user),
    photo_service: PhotoService = Depends(get_photo_service)
) -> SuccessResponse:
    try:
        await photo_service.delete_photo(photo_id, current_user.id)
        return SuccessResponse()
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to delete photo: {str(e)}")


@router.post(
    "/{photo_id}/main",
    response_model=SuccessResponse,
    summary="Set the main photo",
    responses=error_responses(401, 403, 404, 502)
)
async def set_main_photo(
    photo_id: UUID,
    current_user: User = Depends(get_current_active_user),
    photo_service: PhotoService = Depends(get_photo_service)
) -> SuccessResponse:
    try:
        await photo_service.set_main_photo(photo_id, current_user.id)
        return SuccessResponse()
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to set main photo: {str(e)}")
