"""
API v2 router - aggregates all endpoint modules (RESTful structure).
"""

from fastapi import APIRouter

from dpla_api.api.v2.endpoints import health, items

api_router = APIRouter(prefix="/v2")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(items.router, tags=["items"])
