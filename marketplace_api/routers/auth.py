"""
Authentication API endpoints for registration, login and user information.
"""

from fastapi import APIRouter, Depends, status
from marketplace_api.models.user import User
from marketplace_api.services.auth import AuthService
from marketplace_api.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    TokenResponse,
)
from marketplace_api.schemas.error import error_responses
from marketplace_api.utils.dependencies import (
    get_auth_service,
    get_current_active_user,
)
from marketplace_api.utils.exceptions import (
    APIException,
    BadRequestError,
    InvalidCredentialsError,
)
from marketplace_api.config import settings


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses=error_responses(409, 422)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    try:
        user = await auth_service.register_user(register_data)
        return UserResponse.model_validate(user)
    except APIException:
        raise
    except Exception as e:
        raise BadRequestError(f"Failed to register user: {str(e)}")


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns a JWT access token",
    responses=error_responses(401, 403, 422)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """
    Authenticate user and return a JWT access token.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    try:
        user, access_token = await auth_service.login(
            email=login_data.email,
            password=login_data.password
        )

        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user)
        )

    except APIException:
        raise
    except Exception:
        raise InvalidCredentialsError()


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    responses=error_responses(401, 403)
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> UserResponse:
    return UserResponse.model_validate(current_user)
