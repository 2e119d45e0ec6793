"""
API v1 Router - Aggregates all v1 endpoints.
Base Path: /api/v1
"""

from fastapi import APIRouter

from nitroauth.api.v1 import admin, auth, health, sites, validate

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(validate.router, prefix="/validate", tags=["validate"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(sites.router, prefix="/admin/sites", tags=["sites"])
