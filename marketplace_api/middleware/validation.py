"""
Validation middleware for request preprocessing and request logging.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from marketplace_api.services.error_handler import ErrorHandlerService
from marketplace_api.utils.dependencies import get_client_ip
from marketplace_api.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)


class ValidationMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request validation and preprocessing.
    Assigns a request ID, enforces the request size limit and the JSON content
    type of API writes, and logs requests and responses.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 80 * 1024 * 1024,  # 5 base64 photos of 10MB plus fields
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        try:
            self._validate_request_size(request)
            self._validate_headers(request)

            if self.enable_request_logging:
                self._log_request(request, request_id)

            response = await call_next(request)

            if self.enable_request_logging:
                processing_time = time.time() - start_time
                self._log_response(request, response, request_id, processing_time)

            response.headers["X-Request-ID"] = request_id
            return response

        except BadRequestError as exc:
            return ErrorHandlerService.handle_api_exception(exc, request)
        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Middleware error [{request_id}]: {type(exc).__name__} - {str(exc)}",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                    "processing_time": processing_time
                },
                exc_info=True
            )
            return ErrorHandlerService.handle_unexpected_error(exc, request)

    def _validate_request_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If the declared content length is invalid or over the limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return

        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")

        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )

    def _validate_headers(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If an API write carries a non-JSON body
        """
        if request.method not in ("POST", "PUT", "PATCH"):
            return

        content_type = request.headers.get("content-type", "")
        if request.url.path.startswith("/api/") and content_type and not content_type.startswith("application/json"):
            raise BadRequestError(
                f"Unsupported content type '{content_type}'. Expected 'application/json'"
            )

    def _log_request(self, request: Request, request_id: str) -> None:
        logger.info(
            f"Request [{request_id}]: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query_params": str(request.query_params),
                "client_ip": get_client_ip(request),
                "user_agent": request.headers.get("user-agent", "unknown")
            }
        )

    def _log_response(
        self,
        request: Request,
        response: Response,
        request_id: str,
        processing_time: float
    ) -> None:
        logger.info(
            f"Response [{request_id}]: {response.status_code} - {processing_time:.3f}s",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "processing_time": processing_time,
                "path": request.url.path,
                "method": request.method
            }
        )
