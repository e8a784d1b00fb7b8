"""
Main API router
"""
from fastapi import APIRouter

from hrportal.api.v1 import (
    health,
    version,
    requests,
    audit,
    notifications,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
