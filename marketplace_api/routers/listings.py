"""
Listing API endpoints.
Provides listing creation, update and deletion for owners, public browsing,
and the phone reveal endpoint.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from typing import List, Optional
from uuid import UUID

from marketplace_api.models.user import User
from marketplace_api.services.listing import ListingService
from marketplace_api.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingSummary,
    ListingDetail,
    EditableListing,
    PhoneRevealResponse,
)
from marketplace_api.schemas.photo import SuccessResponse
from marketplace_api.schemas.error import error_responses
from marketplace_api.utils.dependencies import (
    get_current_active_user,
    get_optional_current_user,
    get_listing_service,
    get_client_ip,
)
from marketplace_api.utils.exceptions import APIException, BadRequestError


router = APIRouter(prefix="/listings", tags=["Listings"])


@router.post(
    "",
    response_model=EditableListing,
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing",
    description="Create a listing and attach previously uploaded photos of the caller.",
    responses=error_responses(401, 422, 502)
)
async def create_listing(
    listing_data: ListingCreate,
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> EditableListing:
    try:
        listing = await listing_service.create_listing(current_user.id, listing_data)
        return await listing_service.get_editable_listing(listing.id, listing.owner_id)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to create listing: {str(e)}")


@router.get(
    "",
    response_model=List[ListingSummary],
    summary="List listings",
    description="Newest listings first, each with the URL of its main photo."
)
async def list_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingSummary]:
    try:
        return await listing_service.get_public_listings(skip=skip, limit=limit)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to list listings: {str(e)}")


@router.get(
    "/mine",
    response_model=List[ListingSummary],
    summary="List my listings",
    responses=error_responses(401)
)
async def list_my_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingSummary]:
    try:
        return await listing_service.get_my_listings(current_user.id, skip=skip, limit=limit)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to list listings: {str(e)}")


@router.get(
    "/{listing_id}",
    response_model=ListingDetail,
    summary="Get a listing",
    description="Public listing page. The phone number is only available through the reveal endpoint.",
    responses=error_responses(404)
)
async def get_listing(
    listing_id: UUID,
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingDetail:
    try:
        return await listing_service.get_listing_by_id(listing_id)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to get listing: {str(e)}")


@router.get(
    "/{listing_id}/edit",
    response_model=EditableListing,
    summary="Get a listing for editing",
    description="Full listing detail including phone number and photo keys. Owner only.",
    responses=error_responses(401, 404)
)
async def get_editable_listing(
    listing_id: UUID,
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> EditableListing:
    try:
        return await listing_service.get_editable_listing(listing_id, current_user.id)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to get listing: {str(e)}")


@router.put(
    "/{listing_id}",
    response_model=SuccessResponse,
    summary="Update a listing",
    description=(
        "Replace the listing fields, keep or delete existing photos, upload new ones "
        "and choose the main photo in one request."
    ),
    responses=error_responses(401, 403, 404, 422, 502)
)
async def update_listing(
    listing_id: UUID,
    listing_data: ListingUpdate,
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> SuccessResponse:
    try:
        await listing_service.update_listing(listing_id, current_user.id, listing_data)
        return SuccessResponse()
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to update listing: {str(e)}")


@router.delete(
    "/{listing_id}",
    response_model=SuccessResponse,
    summary="Delete a listing",
    description="Delete a listing with its photos and pricing. Owner or admin only.",
    responses=error_responses(401, 403, 404, 502)
)
async def delete_listing(
    listing_id: UUID,
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> SuccessResponse:
    try:
        await listing_service.delete_listing(listing_id, current_user)
        return SuccessResponse()
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to delete listing: {str(e)}")


@router.post(
    "/{listing_id}/reveal-phone",
    response_model=PhoneRevealResponse,
    summary="Reveal a listing's phone number",
    description="Returns the phone number and records the view. Authentication is optional.",
    responses=error_responses(404)
)
async def reveal_phone(
    listing_id: UUID,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> PhoneRevealResponse:
    try:
        phone = await listing_service.reveal_phone(
            listing_id,
            current_user.id if current_user else None,
            get_client_ip(request)
        )
        return PhoneRevealResponse(phone=phone)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to reveal phone: {str(e)}")
