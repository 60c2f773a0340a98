"""Main module of the FastAPI application.

This module sets up the FastAPI application, the middleware that logs requests and
unhandled exceptions, and the handlers that map service exceptions to status codes.
"""

import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from stencilflow.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    external_service_exception_handler,
    log_requests,
    rate_limit_exceeded_exception_handler,
    stencilflow_exception_handler,
    unauthenticated_exception_handler,
    validation_exception_handler,
)
from stencilflow.api.v1.api import api_router
from stencilflow.core.config import settings
from stencilflow.core.exceptions import (
    ExternalServiceError,
    RateLimitExceededException,
    StencilFlowException,
    UnauthenticatedException,
)
from stencilflow.core.logging import logger
from stencilflow.core.redis_client import redis_client
from stencilflow.db.init_db import init_db
from stencilflow.db.session import AsyncSessionLocal


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Runs alembic migrations, seeds the first superuser and checks Redis on startup,
    and closes the Redis connection on shutdown.
    """
    if settings.RUN_ALEMBIC_MIGRATIONS:
        logger.info("Running alembic migrations...")
        env = os.environ.copy()
        project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        env["PYTHONPATH"] = project_dir
        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=project_dir,
            env=env,
        )

    async with AsyncSessionLocal() as db:
        await init_db(db)

    if settings.redis_enabled:
        await redis_client.is_reachable()

    yield

    await redis_client.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(exception_logging_middleware)
app.middleware("http")(log_requests)
app.middleware("http")(add_request_id)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(UnauthenticatedException)(unauthenticated_exception_handler)
app.exception_handler(RateLimitExceededException)(rate_limit_exceeded_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(StencilFlowException)(stencilflow_exception_handler)

CORS_ORIGINS = [
    "http://localhost:3000",
    "https://app.stencilflow.com",
]

if settings.ADDITIONAL_CORS_ORIGINS:
    additional_origins = settings.ADDITIONAL_CORS_ORIGINS.replace(";", ",").split(",")
    CORS_ORIGINS.extend(origin.strip() for origin in additional_origins if origin.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
