"""API routes for the FastAPI application."""

from fastapi import APIRouter

from stencilflow.api.v1.endpoints import (
    admin,
    billing,
    health,
    invites,
    organizations,
    users,
)

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
api_router.include_router(invites.router, prefix="/invites", tags=["invites"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
