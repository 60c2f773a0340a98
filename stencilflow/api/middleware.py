"""Middleware and exception handlers for the FastAPI application.

Services raise the exceptions of ``stencilflow.core.exceptions``; the handlers here
turn them into status codes so route handlers never build error responses.
"""

import time
import traceback
import uuid
from typing import Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from stencilflow.core.config import settings
from stencilflow.core.exceptions import (
    ConflictException,
    ExternalServiceError,
    InviteExpiredException,
    NotFoundException,
    PermissionException,
    RateLimitExceededException,
    StencilFlowException,
    UnauthenticatedException,
    unpack_validation_error,
)
from stencilflow.core.logging import logger

INTERNAL_ERROR_DETAIL = "Internal Server Error"


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request, with an X-Request-ID header.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


def _internal_error_response() -> JSONResponse:
    content = {"detail": INTERNAL_ERROR_DETAIL}
    if settings.DEBUG:
        content["trace"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    The client gets a generic 500; the details only go to the log.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")
        return _internal_error_response()


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (Union[RequestValidationError, ValidationError]): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity status response that details the validation
            errors. Each error message is a dictionary where the key is the location
            of the validation error in the request, and the value is the associated error message.

    Example of JSON output:
        {
            "errors": [
                {"body.email": "value is not a valid email address"},
                {"body.name": "String should have at least 1 character"}
            ]
        }

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.url.path}: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def unauthenticated_exception_handler(
    request: Request, exc: UnauthenticatedException
) -> JSONResponse:
    """Exception handler for UnauthenticatedException.

    Returns:
    -------
        JSONResponse: A 401 Unauthorized response with a Bearer challenge.

    """
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def rate_limit_exceeded_exception_handler(
    request: Request, exc: RateLimitExceededException
) -> JSONResponse:
    """Exception handler for RateLimitExceededException.

    Returns:
    -------
        JSONResponse: A 429 Too Many Requests response carrying the window in its headers.

    """
    retry_after = max(0, exc.reset - int(time.time()))
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc)},
        headers={
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": str(exc.remaining),
            "X-RateLimit-Reset": str(exc.reset),
            "Retry-After": str(retry_after),
        },
    )


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Exception handler for ExternalServiceError.

    Returns:
    -------
        JSONResponse: A generic 500 response. The provider's error is only logged.

    """
    logger.error(f"External service error on {request.url.path}: {exc}")
    return _internal_error_response()


async def stencilflow_exception_handler(
    request: Request, exc: StencilFlowException
) -> JSONResponse:
    """Generic exception handler for all StencilFlowException types.

    Maps exception types to HTTP status codes by walking the exception's class
    hierarchy, so subclasses inherit the status of their base.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (StencilFlowException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: HTTP response with appropriate status code and error details.

    """
    status_code_map = {
        # 401 Unauthorized - No usable identity
        UnauthenticatedException: 401,
        # 403 Forbidden - Role or plan does not allow the action
        PermissionException: 403,
        # 404 Not Found - Missing, or hidden from the caller
        NotFoundException: 404,
        # 409 Conflict - The request would break a state invariant
        ConflictException: 409,
        # 410 Gone - The invite existed but expired
        InviteExpiredException: 410,
        # 429 Too Many Requests
        RateLimitExceededException: 429,
    }

    for exc_type in type(exc).__mro__:
        if exc_type in status_code_map:
            return JSONResponse(
                status_code=status_code_map[exc_type], content={"detail": str(exc)}
            )

    logger.error(f"Unmapped {type(exc).__name__} on {request.url.path}: {exc}")
    return _internal_error_response()
