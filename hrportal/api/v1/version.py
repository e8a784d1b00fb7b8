"""
Version and metadata endpoint
"""
from fastapi import APIRouter
from hrportal.core.config import settings
from hrportal.core.constants import SERVICE_NAME

router = APIRouter()


@router.get("/version")
async def get_version():
    """Application version and environment"""
    return {
        "service": SERVICE_NAME,
        "version": settings.VERSION or "1.0.0",
        "env": settings.APP_ENV,
    }
