"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
import logging

from marketplace_api.config import settings
from marketplace_api.database import test_database_connection, create_tables, close_db_connection
from marketplace_api.routers import auth_router, listings_router, photos_router
from marketplace_api.utils.exceptions import APIException
from marketplace_api.services.error_handler import ErrorHandlerService
from marketplace_api.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")
    elif settings.create_tables_on_startup:
        await create_tables()

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Listings marketplace API.

    ## Features

    * **Listings**: Create, update and delete listings with pricing tiers and UK contact details
    * **Photos**: Upload up to five photos per listing, stored as WebP in S3-compatible object storage
    * **Main photo**: Every listing with photos has exactly one main photo
    * **Phone reveal**: Phone numbers are shown on request and every reveal is recorded

    ## Authentication

    Owner endpoints require authentication. Use the `/api/v1/auth/login` endpoint to obtain a JWT token,
    then include it in the Authorization header as `Bearer <token>`.
    """,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "User registration and login"
        },
        {
            "name": "Listings",
            "description": "Listing management, browsing and phone reveal"
        },
        {
            "name": "Photos",
            "description": "Listing photo upload and management"
        },
        {
            "name": "Health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(
    ValidationMiddleware,
    max_request_size=settings.max_request_size,
    enable_request_logging=settings.debug
)

app.include_router(auth_router, prefix=settings.api_v1_prefix)
app.include_router(listings_router, prefix=settings.api_v1_prefix)
app.include_router(photos_router, prefix=settings.api_v1_prefix)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorHandlerService.handle_validation_error(exc.errors(), request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc.errors(), request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    """Basic API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "healthy",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with database connectivity test.
    Used by container health checks and load balancers.
    """
    db_healthy = await test_database_connection()

    if not db_healthy:
        logger.error("Health check failed: database connection failed")
        raise HTTPException(
            status_code=503,
            detail="Database connection failed"
        )

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "marketplace_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
