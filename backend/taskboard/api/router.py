"""Taskboard API Router - aggregates all /api routes."""

from fastapi import APIRouter

from taskboard.api import access, admin

# Main API router - all routes will be prefixed with /api
api_router = APIRouter(prefix="/api")

# Include routers
api_router.include_router(admin.router)
api_router.include_router(access.router)
